"""Vendor matcher — eligibility checks in front of the geo matcher.

Checks run in a fixed order so the caller always sees the most fundamental
rejection first: inactive vendor, then daily capacity, then distance, then
the cash-on-delivery confirmation for courier deliveries.
"""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from marketplace.config import get_settings
from marketplace.errors import CapacityExceeded, CodConfirmationRequired, VendorInactive
from marketplace.matching.geo import GeoPoint, MatchResult, Tariff, match_location
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


class VendorMatcher:
    def __init__(self, tariff: Tariff | None = None):
        self._tariff = tariff

    @property
    def tariff(self) -> Tariff:
        return self._tariff or Tariff.from_settings(get_settings())

    def orders_today(self, vendor, now: datetime) -> int:
        repo = current_domain.repository_for(Order)
        return repo.count_for_vendor_on(str(vendor.id), now.date().isoformat())

    def match(self, vendor, customer_point: GeoPoint, cod_confirmed: bool = False, now=None) -> MatchResult:
        now = now or datetime.now(UTC)

        if not vendor.is_active:
            raise VendorInactive("Vendor is not accepting orders", vendor_id=str(vendor.id))

        if vendor.max_daily_orders:
            count = self.orders_today(vendor, now)
            if count >= vendor.max_daily_orders:
                logger.info(
                    "Vendor daily capacity reached",
                    vendor_id=str(vendor.id),
                    orders_today=count,
                    max_daily_orders=vendor.max_daily_orders,
                )
                raise CapacityExceeded(
                    "Vendor has reached its daily order capacity",
                    vendor_id=str(vendor.id),
                    max_daily_orders=vendor.max_daily_orders,
                )

        result = match_location(vendor.location, vendor.service_radius_km, customer_point, self.tariff)

        if result.out_of_zone and not cod_confirmed:
            raise CodConfirmationRequired(
                "Courier delivery is paid on delivery; confirm cash on delivery to continue",
                delivery_fee=result.fee,
                distance_km=round(result.distance_km, 3),
            )

        logger.debug(
            "Vendor matched",
            vendor_id=str(vendor.id),
            delivery_type=result.delivery_type.value,
            distance_km=round(result.distance_km, 3),
            fee=result.fee,
        )
        return result
