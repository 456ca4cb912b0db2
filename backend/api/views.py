from __future__ import annotations

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from failures.integration import get_status


@require_http_methods(["GET"])
def status_view(request):
    status = get_status()
    return JsonResponse(status, status=503 if status.get("error") else 200)
