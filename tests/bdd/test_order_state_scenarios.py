"""BDD tests for the order state machine."""

from pytest_bdd import parsers, scenarios, when
from support import actor_for

from marketplace.errors import MarketplaceError
from marketplace.order.lifecycle import OrderLifecycle

scenarios("features/order_state_machine.feature")


def _attempt(world, role, status, note=None):
    actor = actor_for(role, world["vendor"], world["customer"])
    try:
        OrderLifecycle().transition(world["order"].id, status, note=note, actor=actor)
    except MarketplaceError as exc:
        world["error"] = exc


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.re(r'the (?P<role>\w+) moves the order to (?P<status>[A-Z_]+) with note "(?P<note>[^"]*)"$'))
def _(world, role, status, note):
    _attempt(world, role, status, note)


@when(parsers.re(r"the (?P<role>\w+) moves the order to (?P<status>[A-Z_]+)$"))
def _(world, role, status):
    _attempt(world, role, status)
