"""BDD tests for checkout pricing and order guards."""

from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when

from commerce.cart.estimation import estimate_cart
from commerce.cart.promotions import ApplyPromotion
from commerce.checkout.creation import CreateCheckoutSession
from commerce.errors import CommerceError
from commerce.order.cancellation import CancelOrder

scenarios("features/checkout_scenarios.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the cart is estimated")
def _(user_id, outcome):
    outcome["estimate"] = estimate_cart(user_id)


@when(parsers.cfparse('the promotion "{code}" is applied'))
def _(user_id, save20, code):
    current_domain.process(ApplyPromotion(user_id=user_id, code=code), asynchronous=False)


@when("a checkout session is created")
def _(user_id, outcome):
    outcome["session"] = current_domain.process(CreateCheckoutSession(user_id=user_id), asynchronous=False)


@when(parsers.cfparse('the order is cancelled expecting status "{status}"'))
def _(outcome, status):
    try:
        current_domain.process(
            CancelOrder(order_id=outcome["order"].id, expected_status=status), asynchronous=False
        )
    except CommerceError as exc:
        outcome["error"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the subtotal is {amount:d}"))
def _(outcome, amount):
    assert outcome["estimate"].estimate.subtotal == amount


@then(parsers.cfparse("the discount is {amount:d}"))
def _(outcome, amount):
    assert outcome["estimate"].estimate.discount == amount


@then(parsers.cfparse("the shipping is {amount:d}"))
def _(outcome, amount):
    assert outcome["estimate"].estimate.shipping == amount


@then(parsers.cfparse('the only warning is "{warning}"'))
def _(outcome, warning):
    assert outcome["estimate"].warnings == (warning,)


@then("the provider is asked for the estimated total")
def _(outcome, provider):
    total = outcome["estimate"].estimate.total
    assert outcome["session"].amount == total
    assert provider.calls[0]["amount"] == total
