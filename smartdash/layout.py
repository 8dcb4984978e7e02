"""Dashboard layout: turns devices, selection and terminal size into panels.

Nothing here touches curses. Each panel is a list of styled text spans in
panel coordinates plus the screen rectangle it is shown in; the render
backend copies spans into a pad and displays the visible part.

Screen layout::

    row 0      title bar
    rows 1-4   device strip (one column per device, scrolls horizontally)
    rows 5-    detail panel for the selected device (80 columns, centered)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Sequence

from smartdash.health import (
    TEMP_BAD,
    TEMP_CAUTION,
    Health,
    attribute_health,
    device_health,
    health_label,
    temperature_health,
    worst_attribute,
)
from smartdash.model import Device

# ── Constants ──────────────────────────────────────────────────────────────

PRODUCT = "smartdash"
VERSION = "1.0.0"

TITLE_HEIGHT = 1
STRIP_HEIGHT = 4
DETAIL_WIDTH = 80
DETAIL_TOP = TITLE_HEIGHT + STRIP_HEIGHT
DETAIL_BASE_HEIGHT = 10

SIZE_UNITS = ("Byte", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB", "ZiB", "YiB")
SERIAL_MASK = "*" * 20
DEGREE_C = "°C"

LEGEND = (
    " Status  ID AttributeName                "
    "Current Worst Threshold   Raw Values "
)

_LEFT_COL = DETAIL_WIDTH // 5
_RIGHT_COL = DETAIL_WIDTH * 3 // 5


class Style(IntEnum):
    """Colour roles; the backend maps each to a curses colour pair."""

    PLAIN = 0
    GOOD = 1
    CAUTION = 2
    BAD = 3
    ACCENT = 4
    LEGEND = 7
    TITLE = 8


HEALTH_STYLE = {
    Health.GOOD: Style.GOOD,
    Health.CAUTION: Style.CAUTION,
    Health.BAD: Style.BAD,
}

# Good attribute rows are drawn as plain accent text, not as a badge
_ROW_STYLE = {
    Health.GOOD: Style.ACCENT,
    Health.CAUTION: Style.CAUTION,
    Health.BAD: Style.BAD,
}


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Span:
    y: int
    x: int
    text: str
    style: Style = Style.PLAIN
    bold: bool = False


@dataclass
class Panel:
    """Content of ``height`` x ``width`` cells shown at (``top``, ``left``).

    Only ``rows`` x ``cols`` cells starting at panel column ``scroll_x`` are
    visible on screen.
    """

    height: int
    width: int
    top: int
    left: int
    rows: int
    cols: int
    scroll_x: int = 0
    spans: list[Span] = field(default_factory=lambda: list[Span]())

    def add(
        self, y: int, x: int, text: str, style: Style = Style.PLAIN, bold: bool = False
    ) -> int:
        """Append a span and return the column just past it."""
        self.spans.append(Span(y, x, text, style, bold))
        return x + len(text)

    def text_at(self, y: int) -> str:
        """Flatten row ``y`` to plain text (later spans overwrite earlier ones)."""
        line = [" "] * self.width
        for span in self.spans:
            if span.y != y:
                continue
            for i, ch in enumerate(span.text):
                if 0 <= span.x + i < self.width:
                    line[span.x + i] = ch
        return "".join(line)


@dataclass
class Frame:
    title: Panel
    strip: Panel
    detail: Panel


@dataclass
class DisplayOptions:
    hide_serial: bool = False
    raw_hex: bool = True
    temp_caution: float = TEMP_CAUTION
    temp_bad: float = TEMP_BAD

    def temperature_health(self, temp: float) -> Health:
        return temperature_health(temp, self.temp_caution, self.temp_bad)


# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_size(n: int | float) -> str:
    """Human-readable byte count (binary prefixes, capped at YiB)."""
    v = float(n)
    for unit in SIZE_UNITS[:-1]:
        if v < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} {SIZE_UNITS[-1]}"


def fmt_temperature(temp: float | None) -> str:
    if temp is None:
        return f"-- {DEGREE_C}"
    return f"{temp:.1f} {DEGREE_C}"


def fmt_attribute_row(
    label: str,
    attr_id: int,
    name: str,
    current: int,
    worst: int,
    threshold: int | None,
    raw: int,
    raw_hex: bool,
) -> str:
    thresh = "--" if threshold is None else str(threshold)
    raw_text = f"{raw:012X}" if raw_hex else f"{raw:012d}"
    return (
        f" {label:<7s} {attr_id:02X} {name[:28]:<28s} {current:7d} {worst:5d}"
        f" {thresh:>9s} {raw_text} "
    )


def _status_box(label: str) -> list[str]:
    inner = (" " * ((11 - len(label)) // 2 - 1) + label).ljust(8)
    return ["+--------+", f"|{inner}|", "+--------+"]


# ── Panel builders ─────────────────────────────────────────────────────────


def build_title(rows: int, cols: int) -> Panel:
    width = max(cols, 1)
    panel = Panel(TITLE_HEIGHT, width, 0, 0, max(0, min(TITLE_HEIGHT, rows)), cols)
    panel.add(0, 0, "-" * width, Style.ACCENT)
    title = f" {PRODUCT}-{VERSION} "
    panel.add(0, max(0, (width - len(title)) // 2), title, Style.TITLE)
    return panel


def _strip_scroll(
    starts: list[int], widths: list[int], selected: int, cols: int
) -> int:
    if not starts:
        return 0
    end = starts[selected] + widths[selected]
    if end <= cols:
        return 0
    # scroll right just far enough, but never past the column's start
    return min(end - cols, starts[selected])


def build_device_strip(
    devices: Sequence[Device],
    selected: int,
    options: DisplayOptions,
    rows: int,
    cols: int,
) -> Panel:
    starts: list[int] = []
    widths: list[int] = []
    x = 0
    for dev in devices:
        starts.append(x)
        widths.append(len(dev.device_name) + 1)
        x += widths[-1]

    # labels and temperatures may be wider than a short device name
    width = max([x, 1] + [s + 8 for s in starts])
    panel = Panel(
        STRIP_HEIGHT,
        width,
        TITLE_HEIGHT,
        0,
        max(0, min(STRIP_HEIGHT, rows - TITLE_HEIGHT)),
        cols,
        scroll_x=_strip_scroll(starts, widths, selected, cols),
    )

    for i, dev in enumerate(devices):
        col = starts[i]
        health = device_health(dev)
        panel.add(0, col, f"{health_label(health):<7s}", HEALTH_STYLE[health])

        if dev.temperature is not None:
            style = HEALTH_STYLE[options.temperature_health(dev.temperature)]
            panel.add(1, col, fmt_temperature(dev.temperature), style)
        else:
            panel.add(1, col, fmt_temperature(None))

        if i == selected:
            panel.add(2, col, dev.device_name, Style.ACCENT, bold=True)
            panel.add(3, col, "-" * len(dev.device_name), Style.ACCENT)
        else:
            panel.add(2, col, dev.device_name)
    return panel


def build_detail(
    device: Device,
    options: DisplayOptions,
    rows: int,
    cols: int,
) -> Panel:
    """Bordered summary plus attribute table for one device."""
    height = DETAIL_BASE_HEIGHT + len(device.attributes)
    left = max(0, (cols - DETAIL_WIDTH) // 2)
    panel = Panel(
        height,
        DETAIL_WIDTH,
        DETAIL_TOP,
        left,
        max(0, min(rows - DETAIL_TOP, height)),
        max(0, min(DETAIL_WIDTH, cols - left)),
    )

    # Border
    edge = "+" + "-" * (DETAIL_WIDTH - 2) + "+"
    panel.add(0, 0, edge)
    for y in range(1, height - 1):
        panel.add(y, 0, "|")
        panel.add(y, DETAIL_WIDTH - 1, "|")
    panel.add(height - 1, 0, edge)

    # Header
    size = fmt_size(device.size) if device.size is not None else "--"
    header = f" {device.model} [{size}] "[: DETAIL_WIDTH - 2]
    header_x = max(1, (DETAIL_WIDTH - len(header)) // 2)
    panel.add(0, header_x, header, Style.ACCENT, bold=True)

    # Identity
    x = panel.add(2, _LEFT_COL, "Firmware:", Style.ACCENT)
    panel.add(2, x, f" {device.firmware}", Style.ACCENT, bold=True)
    x = panel.add(3, _LEFT_COL, "Serial:  ", Style.ACCENT)
    serial = SERIAL_MASK if options.hide_serial else device.serial
    panel.add(3, x, f" {serial}", Style.ACCENT, bold=True)

    # Status badge
    health = device_health(device)
    panel.add(1, 1, "Status", Style.ACCENT)
    for i, line in enumerate(_status_box(health_label(health))):
        panel.add(2 + i, 2, line, HEALTH_STYLE[health])

    # Temperature badge
    if device.temperature is not None:
        panel.add(5, 1, "Temperature", Style.ACCENT)
        style = HEALTH_STYLE[options.temperature_health(device.temperature)]
        panel.add(6, 2, f"  {fmt_temperature(device.temperature)}  ", style)
    else:
        panel.add(5, 1, "Temperature")
        panel.add(6, 2, f"  {fmt_temperature(None)}  ")

    # Power-on counters
    for y, label, value, unit in (
        (2, "Power On Count:", device.power_on_count, "count"),
        (3, "Power On Hours:", device.power_on_hours, "hours"),
    ):
        if value is not None:
            x = panel.add(y, _RIGHT_COL, label, Style.ACCENT)
            x = panel.add(y, x, f" {value} ", Style.ACCENT, bold=True)
            panel.add(y, x, unit, Style.ACCENT)
        else:
            panel.add(y, _RIGHT_COL, f"{label} -- {unit}")

    # Attribute table; the row behind a non-Good status is bold
    worst = worst_attribute(device) if health is not Health.GOOD else None
    panel.add(8, 1, LEGEND, Style.LEGEND)
    for i, attr in enumerate(device.attributes):
        h = attribute_health(attr)
        row = fmt_attribute_row(
            health_label(h),
            attr.id,
            attr.name,
            attr.current,
            attr.worst,
            attr.threshold,
            attr.raw,
            options.raw_hex,
        )
        panel.add(9 + i, 1, row, _ROW_STYLE[h], bold=attr is worst)
    return panel


def build_frame(
    devices: Sequence[Device],
    selected: int,
    options: DisplayOptions,
    rows: int,
    cols: int,
) -> Frame:
    return Frame(
        title=build_title(rows, cols),
        strip=build_device_strip(devices, selected, options, rows, cols),
        detail=build_detail(devices[selected], options, rows, cols),
    )
