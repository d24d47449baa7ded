"""
Service health check for load balancers and uptime probes.
"""

import logging

from django.core.cache import cache
from django.db import connection
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

logger = logging.getLogger(__name__)


class HealthCheckView(APIView):
    """
    GET /health/

    200 when the database and cache answer, 503 otherwise.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        report = {
            'status': 'healthy',
            'timestamp': timezone.now().isoformat(),
            'database': 'healthy',
            'cache': 'healthy',
        }

        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
        except Exception as exc:
            logger.error(f"Health check database failure: {exc}")
            report['database'] = 'unhealthy'

        try:
            cache.set('health_check', 'ok', 10)
            if cache.get('health_check') != 'ok':
                report['cache'] = 'unhealthy'
        except Exception as exc:
            logger.error(f"Health check cache failure: {exc}")
            report['cache'] = 'unhealthy'

        if report['database'] != 'healthy' or report['cache'] != 'healthy':
            report['status'] = 'unhealthy'
            return Response(report, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(report)
