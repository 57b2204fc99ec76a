"""Geo matching — classify a delivery and price it from two coordinates.

Pure functions, no persistence. The vendor's service radius decides between
in-house delivery and an external courier; a hard ceiling distance decides
whether anyone can deliver at all.

    distance <= service radius         → IN_ZONE_INTERNAL, fixed internal fee
    service radius < distance <= max   → OUT_OF_ZONE_COURIER, metered fee, COD
    distance > max                     → OutOfServiceArea
"""

import math
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from marketplace.errors import OutOfServiceArea

EARTH_RADIUS_KM = 6371.0


class DeliveryType(Enum):
    IN_ZONE_INTERNAL = "IN_ZONE_INTERNAL"
    OUT_OF_ZONE_COURIER = "OUT_OF_ZONE_COURIER"


class DeliveryProvider(Enum):
    IN_HOUSE = "IN_HOUSE"
    COURIER = "COURIER"


class CourierStatus(Enum):
    PENDING = "PENDING"
    REQUESTED = "REQUESTED"
    ASSIGNED = "ASSIGNED"
    PICKED_UP = "PICKED_UP"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lng}")


@dataclass(frozen=True)
class Tariff:
    """Delivery pricing knobs. Fees are whole rials."""

    internal_fee: int = 0
    base_fee: int = 0
    per_km_rate: int = 0
    peak_multiplier: float = 1.0
    max_distance_km: float = 30.0

    @classmethod
    def from_settings(cls, settings) -> "Tariff":
        return cls(
            internal_fee=settings.internal_delivery_fee,
            base_fee=settings.courier_base_fee,
            per_km_rate=settings.courier_per_km_fee,
            peak_multiplier=settings.courier_peak_multiplier,
            max_distance_km=settings.courier_max_km,
        )


@dataclass(frozen=True)
class PricingBreakdown:
    base_fee: int
    per_km_rate: int
    peak_multiplier: float
    computed_fee: int
    distance_km: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MatchResult:
    delivery_type: DeliveryType
    delivery_provider: DeliveryProvider
    courier_status: CourierStatus
    fee: int
    distance_km: float
    pricing: PricingBreakdown

    @property
    def out_of_zone(self) -> bool:
        return self.delivery_type is DeliveryType.OUT_OF_ZONE_COURIER


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometres."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.lng - a.lng)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    # Rounding can push h a hair outside [0, 1] for antipodal or identical points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def courier_fee(distance_km: float, tariff: Tariff) -> int:
    """max(0, base + distance × per-km × peak), rounded half-up to a whole rial."""
    raw = Decimal(tariff.base_fee) + (
        Decimal(str(distance_km)) * Decimal(tariff.per_km_rate) * Decimal(str(tariff.peak_multiplier))
    )
    fee = raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, int(fee))


def match_location(
    vendor_point: GeoPoint,
    service_radius_km: float,
    customer_point: GeoPoint,
    tariff: Tariff,
) -> MatchResult:
    distance = haversine_km(vendor_point, customer_point)

    if distance > tariff.max_distance_km:
        raise OutOfServiceArea(
            "Delivery address is outside every provider's service area",
            distance_km=round(distance, 3),
            max_distance_km=tariff.max_distance_km,
        )

    if distance <= service_radius_km:
        return MatchResult(
            delivery_type=DeliveryType.IN_ZONE_INTERNAL,
            delivery_provider=DeliveryProvider.IN_HOUSE,
            courier_status=CourierStatus.PENDING,
            fee=tariff.internal_fee,
            distance_km=distance,
            pricing=PricingBreakdown(
                base_fee=tariff.internal_fee,
                per_km_rate=0,
                peak_multiplier=1.0,
                computed_fee=tariff.internal_fee,
                distance_km=round(distance, 3),
            ),
        )

    fee = courier_fee(distance, tariff)
    return MatchResult(
        delivery_type=DeliveryType.OUT_OF_ZONE_COURIER,
        delivery_provider=DeliveryProvider.COURIER,
        courier_status=CourierStatus.REQUESTED,
        fee=fee,
        distance_km=distance,
        pricing=PricingBreakdown(
            base_fee=tariff.base_fee,
            per_km_rate=tariff.per_km_rate,
            peak_multiplier=tariff.peak_multiplier,
            computed_fee=fee,
            distance_km=round(distance, 3),
        ),
    )
