import threading
from typing import List

import pytest
from cart.models import Cart, CartItem
from cart.services import add_item
from cart.tests.factories import CartFactory, UserFactory
from catalog.tests.factories import ProductVariantFactory
from common.exceptions import Conflict
from django.db import close_old_connections, connection


@pytest.mark.django_db
def test_writers_holding_the_same_version_cannot_both_commit():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=10)
    pid, vid = variant.product.product_id, variant.variant_id
    seen = CartFactory(user=user).version

    add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=2, expected_version=seen)
    with pytest.raises(Conflict):
        add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=5, expected_version=seen)

    cart = Cart.objects.get(user=user)
    assert cart.version == seen + 1
    assert cart.total_items == 2
    assert CartItem.objects.get(cart=cart).quantity == 2


def _add_worker(barrier: threading.Barrier, user, variant, version, successes: List[int], errors: List[Exception]):
    close_old_connections()
    barrier.wait()
    try:
        add_item(
            user_id=user.id,
            product_id=variant.product.product_id,
            variant_id=variant.variant_id,
            quantity=1,
            expected_version=version,
        )
        successes.append(1)
    except Conflict as exc:
        errors.append(exc)
    finally:
        connection.close()


def _run_pair(user, variant, version):
    barrier = threading.Barrier(2)
    successes: List[int] = []
    errors: List[Exception] = []
    threads = [
        threading.Thread(target=_add_worker, args=(barrier, user, variant, version, successes, errors))
        for _ in range(2)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return successes, errors


@pytest.mark.django_db(transaction=True)
def test_threaded_adds_for_one_user_are_serialized():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=10)
    CartFactory(user=user)

    successes, errors = _run_pair(user, variant, None)

    cart = Cart.objects.get(user=user)
    assert len(successes) == 2
    assert not errors
    # Both increments land; neither overwrites the other
    assert CartItem.objects.get(cart=cart).quantity == 2
    assert cart.total_items == 2
    assert cart.version == 2


@pytest.mark.django_db(transaction=True)
def test_threaded_adds_with_same_version_let_one_win():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=10)
    version = CartFactory(user=user).version

    successes, errors = _run_pair(user, variant, version)

    cart = Cart.objects.get(user=user)
    assert len(successes) == 1
    assert len(errors) == 1
    assert CartItem.objects.get(cart=cart).quantity == 1
    assert cart.version == version + 1
