import logging
import time
import uuid
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger("LOGGING")


def _user_info(request):
    user = getattr(request, "user", None)
    if user and user.is_authenticated:
        return f"{user.username} (ID: {user.id}, role: {user.role})"
    return "anonymous"


class RequestResponseLoggingMiddleware(MiddlewareMixin):
    """
    Middleware to log incoming requests and outgoing responses.
    Each request gets a trace id that is also returned in the X-Trace-ID header.
    """

    def process_request(self, request):
        """Log the basic info of the incoming request."""
        request.trace_id = str(uuid.uuid4())
        request.started_at = time.monotonic()
        logger.info(
            f"Trace ID: {request.trace_id} | Request: {request.method} {request.path} | User: {_user_info(request)}"
        )
        return None

    def process_response(self, request, response):
        """Log the response status and duration for the same request."""
        trace_id = getattr(request, "trace_id", "N/A")
        started_at = getattr(request, "started_at", None)
        duration = f"{(time.monotonic() - started_at) * 1000:.0f}ms" if started_at else "N/A"

        logger.info(
            f"Trace ID: {trace_id} | Response: {response.status_code} | {duration} | User: {_user_info(request)}"
        )
        response["X-Trace-ID"] = trace_id
        return response
