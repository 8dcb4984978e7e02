"""Immutable snapshot of one storage device and its S.M.A.R.T. attributes."""

from __future__ import annotations

from dataclasses import dataclass, field

POWER_ON_HOURS_ID = 0x09
POWER_CYCLE_COUNT_ID = 0x0C


@dataclass(frozen=True)
class Attribute:
    """One S.M.A.R.T. attribute row.

    ``id`` is not unique within a device and ``worst`` may exceed ``current``
    in vendor data; neither is checked here.
    """

    id: int
    name: str
    current: int
    worst: int
    threshold: int | None
    raw: int


@dataclass(frozen=True)
class Device:
    device_name: str
    model: str
    firmware: str
    serial: str
    size: int | None = None
    temperature: float | None = None
    standard: str = ""
    rpm: int = 0
    attributes: tuple[Attribute, ...] = field(default_factory=tuple)

    def _raw_of(self, attr_id: int) -> int | None:
        for attr in self.attributes:
            if attr.id == attr_id:
                return attr.raw
        return None

    @property
    def power_on_count(self) -> int | None:
        return self._raw_of(POWER_CYCLE_COUNT_ID)

    @property
    def power_on_hours(self) -> int | None:
        return self._raw_of(POWER_ON_HOURS_ID)
