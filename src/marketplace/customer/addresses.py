"""Customer onboarding and the address collaborator used at order placement."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.customer.customer import Address, Customer
from marketplace.domain import marketplace


@marketplace.command(part_of="Customer")
class RegisterCustomer:
    mobile = String(required=True, max_length=20)
    name = String(max_length=255)
    telegram_chat_id = String(max_length=64)


@marketplace.command(part_of="Customer")
class AddAddress:
    customer_id = Identifier(required=True)
    title = String(required=True, max_length=100)
    lat = Float(required=True)
    lng = Float(required=True)
    full_address = Text()
    is_default = Boolean(default=False)


@marketplace.command_handler(part_of=Customer)
class CustomerCommandHandler:
    @handle(RegisterCustomer)
    def register_customer(self, command):
        customer = Customer.register(
            mobile=command.mobile,
            name=command.name,
            telegram_chat_id=command.telegram_chat_id,
        )
        current_domain.repository_for(Customer).add(customer)
        return str(customer.id)

    @handle(AddAddress)
    def add_address(self, command):
        repo = current_domain.repository_for(Customer)
        customer = repo.get(command.customer_id)
        address = customer.add_address(
            title=command.title,
            lat=command.lat,
            lng=command.lng,
            full_address=command.full_address,
            is_default=command.is_default,
        )
        repo.add(customer)
        return str(address.id)


def ensure_default_address(customer_id) -> tuple[Customer, Address]:
    """Return the customer and their default address.

    Raises ``ObjectNotFoundError`` for an unknown customer and
    ``ValidationError`` when no default address is set.
    """
    customer = current_domain.repository_for(Customer).get(customer_id)

    address = customer.default_address
    if address is None:
        raise ValidationError({"address": ["Default address is required to place orders"]})
    return customer, address
