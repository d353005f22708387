from common.exceptions import InsufficientStock, NotFound, Unavailable, domain_exception_handler
from rest_framework.exceptions import ValidationError


def test_domain_error_rendered_with_code_and_details():
    exc = InsufficientStock(product_id="p1", variant_id="v1", available=1, requested=3)
    response = domain_exception_handler(exc, {})
    assert response.status_code == 409
    assert response.data["code"] == "insufficient_stock"
    assert response.data["available"] == 1
    assert response.data["requested"] == 3
    assert response.data["detail"] == "Insufficient stock. Available: 1, Requested: 3"


def test_forbidden_unavailable_is_403():
    assert domain_exception_handler(Unavailable("no", forbidden=True), {}).status_code == 403
    assert domain_exception_handler(Unavailable("no"), {}).status_code == 409


def test_not_found_message_defaults_to_class_name():
    assert NotFound().as_payload() == {"detail": "NotFound", "code": "not_found"}


def test_drf_errors_fall_through_to_default_handler():
    response = domain_exception_handler(ValidationError({"quantity": ["bad"]}), {})
    assert response.status_code == 400
    assert response.data == {"quantity": ["bad"]}
