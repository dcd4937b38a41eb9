"""
Zone resolution

Maps a destination address to the first configured zone that covers it.
Zones are checked in (sort_order, id) order; there is no specificity
ranking, so a broad zone configured first shadows narrower ones.
"""
import logging
from typing import Iterable, Optional

from shipping_engine.schemas.shipping import ShippingAddress, ShippingZoneSchema

logger = logging.getLogger(__name__)

WILDCARD = "*"


def postal_code_matches(pattern: str, postal_code: str) -> bool:
    """
    Match a postal code against an exact value or a single-wildcard pattern.

    "94*" matches "94105" but not "95105"; "*9" matches any code ending in 9.
    """
    pattern = pattern.strip().upper()
    postal_code = postal_code.strip().upper()

    if WILDCARD not in pattern:
        return pattern == postal_code

    prefix, _, suffix = pattern.partition(WILDCARD)
    if len(postal_code) < len(prefix) + len(suffix):
        return False
    return postal_code.startswith(prefix) and postal_code.endswith(suffix)


def zone_matches(zone: ShippingZoneSchema, address: ShippingAddress) -> bool:
    if address.country_code.upper() not in {c.upper() for c in zone.country_codes}:
        return False

    # Empty or missing lists leave the country match unrestricted
    if zone.regions:
        region = address.region.casefold()
        if region not in {r.casefold() for r in zone.regions}:
            return False

    if zone.postal_codes:
        if not any(postal_code_matches(p, address.postal_code) for p in zone.postal_codes):
            return False

    return True


def resolve_zone(
    zones: Iterable[ShippingZoneSchema],
    address: ShippingAddress,
) -> Optional[ShippingZoneSchema]:
    """
    Find the zone covering an address.

    Args:
        zones: Candidate zones (inactive ones are skipped)
        address: Destination

    Returns:
        First matching active zone in configured order, or None
    """
    ordered = sorted(
        (z for z in zones if z.is_active),
        key=lambda z: (z.sort_order, z.id),
    )
    for zone in ordered:
        if zone_matches(zone, address):
            logger.debug(
                f"[SHIPPING] Zone {zone.id} ({zone.name}) matched "
                f"{address.country_code}/{address.region}/{address.postal_code}"
            )
            return zone

    logger.debug(
        f"[SHIPPING] No zone for {address.country_code}/{address.region}/{address.postal_code}"
    )
    return None
