"""Health classification for temperatures, attributes and whole devices.

Device health and temperature health are separate signals: ``device_health``
never looks at the temperature.
"""

from __future__ import annotations

from enum import IntEnum

from smartdash.model import Attribute, Device

# ── Thresholds ──────────────────────────────────────────────────────────────

TEMP_CAUTION = 50.0
TEMP_BAD = 55.0

# Reallocated, current pending and offline uncorrectable sector counts
SECTOR_COUNT_IDS: frozenset[int] = frozenset({0x05, 0xC5, 0xC6})


class Health(IntEnum):
    """Verdict ordered by severity so ``max()`` picks the worst."""

    GOOD = 0
    CAUTION = 1
    BAD = 2


_LABELS = {Health.GOOD: "Good", Health.CAUTION: "Caution", Health.BAD: "Bad"}


def health_label(health: Health) -> str:
    return _LABELS[health]


# ── Classifiers ─────────────────────────────────────────────────────────────


def temperature_health(
    temp: float, caution: float = TEMP_CAUTION, bad: float = TEMP_BAD
) -> Health:
    if temp < caution:
        return Health.GOOD
    if temp < bad:
        return Health.CAUTION
    return Health.BAD


def attribute_health(attr: Attribute) -> Health:
    """Classify one attribute.

    A current value below a defined threshold is Bad. Otherwise a nonzero raw
    count on one of the sector-count attributes is Caution, whatever the
    normalized score says.
    """
    if attr.threshold is not None and attr.current < attr.threshold:
        return Health.BAD
    if attr.id in SECTOR_COUNT_IDS and attr.raw != 0:
        return Health.CAUTION
    return Health.GOOD


def worst_attribute(device: Device) -> Attribute | None:
    """Return the first attribute with the highest severity, or None if empty."""
    worst: Attribute | None = None
    worst_health = Health.GOOD
    for attr in device.attributes:
        h = attribute_health(attr)
        if worst is None or h > worst_health:
            worst, worst_health = attr, h
    return worst


def device_health(device: Device) -> Health:
    """Maximum severity over all attributes; a device without any is Good."""
    return max((attribute_health(a) for a in device.attributes), default=Health.GOOD)
