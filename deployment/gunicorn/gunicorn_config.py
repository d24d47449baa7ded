import multiprocessing
import os

bind = os.getenv("GUNICORN_BIND", "unix:/var/www/gmchicks/gmchicks-backend/gunicorn.sock")
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"
worker_tmp_dir = "/dev/shm"
max_requests = 1000
max_requests_jitter = 100
# Daraja gives up on a callback after about 30s
timeout = 60
keepalive = 5

# Logging
accesslog = "/var/log/gmchicks-backend/access.log"
errorlog = "/var/log/gmchicks-backend/error.log"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = "gmchicks-backend"

daemon = False
pidfile = "/var/run/gmchicks-backend/gunicorn.pid"
user = "deploy"
group = "deploy"
umask = 0o007


def when_ready(server):
    server.log.info("GM Chicks backend ready. Spawning workers")


def worker_abort(worker):
    worker.log.info(f"Worker {worker.pid} received SIGABRT signal")
