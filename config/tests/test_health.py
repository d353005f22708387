import pytest
from pricing.tests.factories import MetalPriceFactory
from rest_framework.test import APIClient


@pytest.mark.django_db
def test_health_reports_reference_price_freshness():
    client = APIClient()
    r = client.get("/health/")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "reference_prices_updated_at": None}

    MetalPriceFactory()
    assert client.get("/health/").json()["reference_prices_updated_at"] is not None
