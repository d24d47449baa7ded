"""
Status transition validation and cache-backed distributed locks.

Used by the order and visit workflows:
1. State machine validation for operator status updates
2. Per-key locks that serialize check-then-insert sequences across workers
"""

from django.core.cache import cache
import uuid
import logging
import time
from typing import Dict, List, Optional

from core.exceptions import ConflictError, InvalidRequestError

logger = logging.getLogger(__name__)


# ==============================================================================
# STATE MACHINE FOR STATUS TRANSITIONS
# ==============================================================================

class StatusTransitionError(InvalidRequestError):
    """Raised when an invalid status transition is attempted."""
    default_code = 'INVALID_TRANSITION'


def validate_status_transition(current_status: str, new_status: str,
                               transitions: Dict[str, List[str]],
                               resource_type: str = 'resource') -> bool:
    """
    Validate that a status transition is allowed.

    Args:
        current_status: Current status of the resource
        new_status: Proposed new status
        transitions: Dict mapping status to list of valid next statuses
        resource_type: Name of resource for error messages

    Returns:
        True if transition is valid

    Raises:
        StatusTransitionError if transition is invalid
    """
    if current_status == new_status:
        return True  # No change is always valid

    valid_transitions = transitions.get(current_status, [])

    if new_status not in valid_transitions:
        raise StatusTransitionError(
            f"Invalid {resource_type} status transition: {current_status} -> {new_status}. "
            f"Valid transitions: {valid_transitions}"
        )

    return True


# ==============================================================================
# LOCKING UTILITIES
# ==============================================================================

class LockUnavailableError(ConflictError):
    """Raised when a distributed lock cannot be acquired in time."""
    default_code = 'BUSY'


def acquire_distributed_lock(lock_name: str, ttl_seconds: int = 30,
                             lock_value: Optional[str] = None) -> Optional[str]:
    """
    Acquire a distributed lock using cache.

    Args:
        lock_name: Unique name for the lock
        ttl_seconds: Lock timeout
        lock_value: Owner token to store; a fresh one is generated if omitted

    Returns:
        The owner token if the lock was acquired, None otherwise
    """
    lock_key = f"lock:{lock_name}"
    lock_value = lock_value or str(uuid.uuid4())

    # cache.add() is atomic
    acquired = cache.add(lock_key, lock_value, ttl_seconds)

    if acquired:
        logger.debug(f"Acquired lock: {lock_name}")
        return lock_value

    logger.debug(f"Failed to acquire lock: {lock_name}")
    return None


def release_distributed_lock(lock_name: str, lock_value: Optional[str] = None) -> bool:
    """
    Release a distributed lock. Returns False if it was not held.

    With lock_value, the lock is only deleted while it still holds that
    token, so a holder whose TTL ran out cannot free a lock another
    worker has since taken.
    """
    lock_key = f"lock:{lock_name}"

    if lock_value is not None and cache.get(lock_key) != lock_value:
        logger.warning(f"Lock {lock_name} expired before release")
        return False

    result = cache.delete(lock_key)

    if result:
        logger.debug(f"Released lock: {lock_name}")

    return result


class DistributedLock:
    """
    Context manager for distributed locks.

    Locks are only shared between processes when the cache is shared
    (REDIS_ENABLED=True). With the local-memory cache they serialize
    threads of a single process.

    Usage:
        with DistributedLock(f"visits:{visit_date}"):
            # Only one holder at a time
            admit_booking(...)
    """

    def __init__(self, lock_name: str, ttl_seconds: int = 30,
                 wait: bool = True, max_wait: float = 10.0):
        self.lock_name = lock_name
        self.ttl_seconds = ttl_seconds
        self.wait = wait
        self.max_wait = max_wait
        self.lock_value = None

    @property
    def acquired(self) -> bool:
        return self.lock_value is not None

    def __enter__(self):
        start_time = time.time()

        while True:
            self.lock_value = acquire_distributed_lock(self.lock_name, self.ttl_seconds)

            if self.acquired:
                return self

            if not self.wait:
                raise LockUnavailableError(
                    "Another request is being processed. Please try again."
                )

            elapsed = time.time() - start_time
            if elapsed > self.max_wait:
                logger.warning(f"Timeout waiting for lock: {self.lock_name} after {elapsed:.2f}s")
                raise LockUnavailableError(
                    "Another request is being processed. Please try again."
                )

            time.sleep(0.1)

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.acquired:
            release_distributed_lock(self.lock_name, self.lock_value)
            self.lock_value = None
        return False
