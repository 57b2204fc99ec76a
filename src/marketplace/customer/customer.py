"""Customer aggregate root with its address book.

Only the parts the fulfillment core consumes live here: contact handles for
notifications and the default delivery address, which is snapshotted onto
each order at placement.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, String, Text

from marketplace.domain import marketplace
from marketplace.matching.geo import GeoPoint


@marketplace.entity(part_of="Customer")
class Address:
    """A delivery location. At most one address is the default."""

    title = String(required=True, max_length=100)
    lat = Float(required=True, min_value=-90.0, max_value=90.0)
    lng = Float(required=True, min_value=-180.0, max_value=180.0)
    full_address = Text()
    is_default = Boolean(default=False)

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


@marketplace.aggregate
class Customer:
    mobile = String(required=True, max_length=20, unique=True)
    name = String(max_length=255)
    telegram_chat_id = String(max_length=64)
    addresses = HasMany(Address)
    registered_at = DateTime()

    @invariant.post
    def at_most_one_default_address(self):
        defaults = [a for a in self.addresses if a.is_default]
        if len(defaults) > 1:
            raise ValidationError({"addresses": ["Only one address can be the default"]})

    @classmethod
    def register(cls, mobile, name=None, telegram_chat_id=None):
        return cls(
            mobile=mobile,
            name=name,
            telegram_chat_id=telegram_chat_id,
            registered_at=datetime.now(UTC),
        )

    def add_address(self, title, lat, lng, full_address=None, is_default=False) -> Address:
        """Add an address; the first address always becomes the default."""
        make_default = is_default or not self.addresses
        address = Address(
            title=title,
            lat=lat,
            lng=lng,
            full_address=full_address,
            is_default=make_default,
        )
        with atomic_change(self):
            if make_default:
                for existing in self.addresses:
                    if existing.is_default:
                        existing.is_default = False
            self.add_addresses(address)
        return address

    def set_default_address(self, address_id):
        target = next((a for a in self.addresses if str(a.id) == str(address_id)), None)
        if target is None:
            raise ValidationError({"address_id": [f"Address {address_id} not found"]})
        with atomic_change(self):
            for address in self.addresses:
                address.is_default = str(address.id) == str(address_id)

    @property
    def default_address(self) -> Address | None:
        return next((a for a in self.addresses if a.is_default), None)
