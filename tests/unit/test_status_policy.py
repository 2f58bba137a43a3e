"""Unit tests for the order status authorization policy and transition table.

Both are pure functions; no database involved.
"""

import pytest
from libs.auth.models import Role
from services.order_service.errors import AuthorizationError, IllegalTransitionError
from services.order_service.models import Order, OrderStatus
from services.order_service.services.status import (
    FORWARD_TRANSITIONS,
    Actor,
    AdvanceStatus,
    CancelOrder,
    OverrideStatus,
    authorize,
    validate_transition,
)

OWNER = Actor(user_id=1, role=Role.CUSTOMER)
STRANGER = Actor(user_id=2, role=Role.CUSTOMER)
VENDOR = Actor(user_id=3, role=Role.VENDOR)
ADMIN = Actor(user_id=4, role=Role.ADMIN)


def _order(owner_id=1, status=OrderStatus.PENDING):
    return Order(user_id=owner_id, status=status)


# ---------------------------------------------------------------------------
# authorize
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize("actor", [VENDOR, ADMIN])
def test_vendor_and_admin_may_advance(actor):
    authorize(actor, AdvanceStatus(to=OrderStatus.CONFIRMED), _order())


@pytest.mark.unit
def test_customer_may_not_advance_even_own_order():
    with pytest.raises(AuthorizationError):
        authorize(OWNER, AdvanceStatus(to=OrderStatus.CONFIRMED), _order())


@pytest.mark.unit
def test_only_admin_may_override():
    authorize(ADMIN, OverrideStatus(to=OrderStatus.DELIVERED), _order())
    for actor in (OWNER, VENDOR):
        with pytest.raises(AuthorizationError):
            authorize(actor, OverrideStatus(to=OrderStatus.DELIVERED), _order())


@pytest.mark.unit
def test_only_owner_may_cancel():
    authorize(OWNER, CancelOrder(), _order(owner_id=OWNER.user_id))
    for actor in (STRANGER, VENDOR, ADMIN):
        with pytest.raises(AuthorizationError):
            authorize(actor, CancelOrder(), _order(owner_id=OWNER.user_id))


@pytest.mark.unit
def test_unknown_command_is_rejected():
    with pytest.raises(TypeError):
        authorize(ADMIN, object(), _order())


# ---------------------------------------------------------------------------
# validate_transition
# ---------------------------------------------------------------------------

ALLOWED = [(src, dst) for src, targets in FORWARD_TRANSITIONS.items() for dst in targets]
DISALLOWED = [
    (src, dst)
    for src in OrderStatus
    for dst in OrderStatus
    if dst not in FORWARD_TRANSITIONS.get(src, frozenset())
]


@pytest.mark.unit
@pytest.mark.parametrize("current,target", ALLOWED)
def test_forward_table_transitions_are_accepted(current, target):
    assert validate_transition(current, AdvanceStatus(to=target)) == target


@pytest.mark.unit
@pytest.mark.parametrize("current,target", DISALLOWED)
def test_transitions_outside_table_are_rejected(current, target):
    with pytest.raises(IllegalTransitionError) as exc:
        validate_transition(current, AdvanceStatus(to=target))

    assert exc.value.current == current
    assert exc.value.requested == target
    assert current.value in exc.value.message
    assert target.value in exc.value.message


@pytest.mark.unit
def test_pending_to_shipped_is_illegal():
    with pytest.raises(IllegalTransitionError, match="pending to shipped"):
        validate_transition(OrderStatus.PENDING, AdvanceStatus(to=OrderStatus.SHIPPED))


@pytest.mark.unit
def test_terminal_states_have_no_forward_moves():
    for status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        assert status.is_terminal
        assert status not in FORWARD_TRANSITIONS


@pytest.mark.unit
@pytest.mark.parametrize("current", [OrderStatus.PENDING, OrderStatus.CONFIRMED])
def test_cancel_allowed_before_processing(current):
    assert validate_transition(current, CancelOrder()) == OrderStatus.CANCELLED


@pytest.mark.unit
@pytest.mark.parametrize(
    "current",
    [s for s in OrderStatus if s not in (OrderStatus.PENDING, OrderStatus.CONFIRMED)],
)
def test_cancel_rejected_from_later_states(current):
    with pytest.raises(IllegalTransitionError):
        validate_transition(current, CancelOrder(reason="changed my mind"))


@pytest.mark.unit
@pytest.mark.parametrize("target", list(OrderStatus))
def test_override_accepts_any_target(target):
    assert validate_transition(OrderStatus.PENDING, OverrideStatus(to=target)) == target
    assert validate_transition(OrderStatus.DELIVERED, OverrideStatus(to=target)) == target
