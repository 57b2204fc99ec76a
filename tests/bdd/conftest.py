"""Shared BDD fixtures and step definitions for the marketplace."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from support import actor_for, place_order, register_customer, register_vendor

from marketplace.errors import Forbidden, InvalidTransition
from marketplace.order.lifecycle import OrderLifecycle
from marketplace.order.order import Order


@pytest.fixture()
def world():
    """Scratch space shared between steps of one scenario."""
    return {"error": None}


def stored_order(world) -> Order:
    return current_domain.repository_for(Order).get(world["order"].id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a vendor with a menu")
def _(world):
    world["vendor"] = register_vendor()


@given("a customer within the vendor's service radius")
def _(world):
    world["customer"] = register_customer()


@given("the customer has placed an order")
def _(world):
    world["order"] = place_order(world["vendor"], world["customer"])


@given(parsers.re(r"the (?P<role>\w+) moved the order to (?P<status>[A-Z_]+)$"))
def _(world, role, status):
    OrderLifecycle().transition(world["order"].id, status, actor=actor_for(role, world["vendor"], world["customer"]))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.parse("the order status is {status}"))
def _(world, status):
    assert stored_order(world).status == status


@then(parsers.parse("the order history ends with {status} by {actor_type}"))
def _(world, status, actor_type):
    last = stored_order(world).status_history()[-1]
    assert last.status == status
    assert last.actor_type == actor_type


@then(parsers.parse('the last history note is "{note}"'))
def _(world, note):
    assert stored_order(world).status_history()[-1].note == note


@then(parsers.parse("the order has {count:d} history entries"))
def _(world, count):
    assert len(stored_order(world).status_history()) == count


@then("the change is refused as forbidden")
def _(world):
    assert isinstance(world["error"], Forbidden)


@then("the change is refused as an invalid transition")
def _(world):
    assert isinstance(world["error"], InvalidTransition)
