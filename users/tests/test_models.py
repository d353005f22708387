import pytest
from cart.tests.factories import AdminUserFactory, UserFactory
from common.choices import AuthProvider
from django.contrib.auth import get_user_model
from django.db import IntegrityError


@pytest.mark.django_db
def test_email_is_normalized_and_unique():
    user = UserFactory(email="  Asha.Menon@Example.COM ")
    assert user.email == "asha.menon@example.com"
    with pytest.raises(IntegrityError):
        UserFactory(email="asha.menon@example.com")


@pytest.mark.django_db
def test_roles_and_defaults():
    client = UserFactory()
    admin = AdminUserFactory()
    assert not client.is_store_admin
    assert admin.is_store_admin
    assert client.auth_provider == AuthProvider.LOCAL
    assert client.check_password("pass")


@pytest.mark.django_db
def test_display_name_falls_back_to_username():
    user = get_user_model().objects.create_user(username="meera", email="meera@example.com", password="x")
    assert user.display_name == "meera"
    user.first_name, user.last_name = "Meera", "Nair"
    assert user.display_name == "Meera Nair"
    user.name = "Meera N."
    assert user.display_name == "Meera N."
