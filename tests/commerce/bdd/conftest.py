"""Shared BDD fixtures and step definitions for checkout scenarios."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from commerce.cart.items import AddOrUpdateCartItem
from commerce.cart.management import UpdateCart
from commerce.errors import error_kind
from commerce.order.order import Order
from commerce.order.payment import RecordPayment
from commerce.order.placement import CreateOrderFromCart

USER_ID = "user-001"


@pytest.fixture()
def user_id():
    return USER_ID


@pytest.fixture()
def outcome():
    """Container for the latest estimate, order and captured error."""
    return {"estimate": None, "order": None, "error": None}


@pytest.fixture(autouse=True)
def _wired(collaborators):
    yield


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a cart holding {quantity:d} of "{sku}" at {unit_price:d} {currency} each'))
def _(user_id, quantity, sku, unit_price, currency):
    current_domain.process(
        AddOrUpdateCartItem(
            user_id=user_id,
            product_id=f"prod-{sku.lower()}",
            sku=sku,
            quantity=quantity,
            unit_price=unit_price,
            currency=currency,
        ),
        asynchronous=False,
    )


@given(parsers.cfparse('the cart ships to "{address_id}"'))
def _(user_id, address_id):
    current_domain.process(UpdateCart(user_id=user_id, shipping_address_id=address_id), asynchronous=False)


@given("the cart has become a paid order")
def _(user_id, outcome):
    order = current_domain.process(CreateOrderFromCart(user_id=user_id), asynchronous=False)
    current_domain.process(
        RecordPayment(
            order_id=order.id,
            provider="fake",
            intent_id="pi_bdd_001",
            amount=order.totals.total,
            currency=order.currency,
        ),
        asynchronous=False,
    )
    outcome["order"] = current_domain.repository_for(Order).get(order.id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the request fails with kind "{kind}"'))
def _(outcome, kind):
    assert outcome["error"] is not None
    assert error_kind(outcome["error"]).value == kind


@then(parsers.cfparse('the order status is "{status}"'))
def _(outcome, status):
    order = current_domain.repository_for(Order).get(outcome["order"].id)
    assert order.status == status
