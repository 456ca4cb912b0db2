from __future__ import annotations

from failures.integration import capture_exception
from failures.services.context import current_request


class FailureCaptureMiddleware:
    """Exposes the current request to the context collectors and reports view exceptions."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        token = current_request.set(request)
        try:
            return self.get_response(request)
        finally:
            current_request.reset(token)

    def process_exception(self, request, exception):
        capture_exception(exception)
        # Let Django's own handling produce the response.
        return None
