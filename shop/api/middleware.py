"""
Middleware for request logging and error handling.
"""
import json
import logging
import time
from uuid import uuid4

from django.http import JsonResponse

from shop.domain.exceptions import ShopError
from shop.infra.pii_masker import mask_pii_in_dict, mask_uuid

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Error handler for API responses."""

    ERROR_CODES = {
        "VALIDATION_ERROR": 400,
        "INVALID_SESSION": 400,
        "UNAUTHORIZED": 401,
        "FORBIDDEN": 403,
        "NOT_FOUND": 404,
        "INSUFFICIENT_STOCK": 409,
        "INVALID_STATE": 409,
        "EXTERNAL_SERVICE_FAILURE": 502,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def status_for(cls, error: ShopError) -> int:
        return cls.ERROR_CODES.get(error.code, 400)

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """Handle error and return JSON response."""
        if isinstance(error, ShopError):
            status_code = cls.status_for(error)
            log = logger.error if status_code >= 500 else logger.warning
            log(
                "request_failed",
                extra={
                    "error_code": error.code,
                    "error": error.message,
                    "status": status_code,
                },
            )
            return JsonResponse(
                {
                    "error": {
                        "code": error.code,
                        "message": error.message,
                    }
                },
                status=status_code,
            )

        # Log unexpected errors
        logger.error(
            "unexpected_error",
            extra={
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=error,
        )

        return JsonResponse(
            {
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                }
            },
            status=500,
        )


class RequestLoggingMiddleware:
    """Assigns a request id and logs every API request with PII masked."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.request_id = request_id
        started = time.monotonic()

        logger.info(
            "api_request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.path,
                "body": self._masked_body(request),
            },
        )

        response = self.get_response(request)
        response["X-Request-ID"] = request_id

        customer = getattr(request, "customer", None)
        logger.info(
            "api_response",
            extra={
                "request_id": request_id,
                "user_id": mask_uuid(str(customer.id)) if customer else None,
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return response

    def _masked_body(self, request):
        if request.content_type != "application/json" or not request.body:
            return None
        try:
            payload = json.loads(request.body)
        except ValueError:
            return None
        return mask_pii_in_dict(payload) if isinstance(payload, dict) else None

    def process_exception(self, request, exception):
        """Last-resort JSON error for API paths; other paths keep Django's handling."""
        if request.path.startswith("/api/"):
            return ErrorHandler.handle_error(exception)
        return None
