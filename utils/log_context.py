"""
Timed logging context for service operations.

Each LogContext logs an operation's start and its duration or failure,
tagged with a short request id.
"""
import logging
import time
import uuid

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.duration = None
        self.request_id = kwargs.pop('request_id', None) or new_request_id()
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {self.duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": self.duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {self.duration:.2f}s",
                extra={"request_id": self.request_id, "duration": self.duration, **self.extra}
            )
        # never swallow the exception
        return False
