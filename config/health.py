from django.db import connection
from drf_spectacular.utils import extend_schema
from pricing.selectors import latest_reference_update
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response


@extend_schema(tags=["Health Endpoint"], summary="Health check")
@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):
    """Liveness plus database reachability and reference price freshness."""

    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
    latest = latest_reference_update()
    return Response({"status": "ok", "reference_prices_updated_at": latest.isoformat() if latest else None})
