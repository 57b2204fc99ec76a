"""Acting user as handed to the core by the authentication collaborator."""

from dataclasses import dataclass
from enum import Enum


class ActorRole(Enum):
    ADMIN = "admin"
    VENDOR = "vendor"
    CUSTOMER = "customer"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation.

    For vendors ``id`` is the vendor id, for customers the customer id.
    """

    id: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role is ActorRole.VENDOR

    @property
    def is_customer(self) -> bool:
        return self.role is ActorRole.CUSTOMER

    @classmethod
    def admin(cls, admin_id: str = "admin") -> "Actor":
        return cls(id=admin_id, role=ActorRole.ADMIN)

    @classmethod
    def vendor(cls, vendor_id: str) -> "Actor":
        return cls(id=str(vendor_id), role=ActorRole.VENDOR)

    @classmethod
    def customer(cls, customer_id: str) -> "Actor":
        return cls(id=str(customer_id), role=ActorRole.CUSTOMER)


SYSTEM = Actor(id="system", role=ActorRole.SYSTEM)
