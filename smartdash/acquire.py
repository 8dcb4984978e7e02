"""Device acquisition: enumerate disks and read their S.M.A.R.T. data via smartctl.

Two enumeration sources produce the list of device paths to query:

* ``smartctl -j --scan`` (default)
* psutil's per-disk I/O counters, for hosts where ``--scan`` misses devices

Each device is then read with ``smartctl -j -a`` and parsed into a
:class:`~smartdash.model.Device`. A device that cannot be read is skipped with
a reason; only a failure to enumerate at all aborts the scan.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Any

import psutil

from smartdash.model import Attribute, Device

logger = logging.getLogger(__name__)

# smartctl exit status bits 0 and 1: bad command line, device open failed.
# Higher bits report problems with the disk itself, which we want to show.
_EXIT_FATAL_MASK = 0b11

_VIRTUAL_PREFIXES = ("loop", "ram", "zram", "dm-", "sr", "md", "fd")


class AcquisitionUnavailable(Exception):
    """The device list cannot be obtained at all."""

    def __init__(self, reason: str, output: str = "") -> None:
        super().__init__(reason)
        self.output = output


class DeviceSkipped(Exception):
    """One device could not be read or parsed."""


@dataclass(frozen=True)
class SkippedDevice:
    name: str
    reason: str


@dataclass
class ScanResult:
    devices: list[Device] = field(default_factory=lambda: list[Device]())
    skipped: list[SkippedDevice] = field(default_factory=lambda: list[SkippedDevice]())


@dataclass(frozen=True)
class ScanTarget:
    name: str
    type: str = ""


# ── smartctl plumbing ──────────────────────────────────────────────────────


def _run_smartctl(args: list[str], smartctl: str, timeout: float) -> str:
    cmd = [smartctl, *args]
    logger.debug("running %s", " ".join(cmd))
    result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    return result.stdout


# ── Enumeration ────────────────────────────────────────────────────────────


def scan_smartctl(smartctl: str = "smartctl", timeout: float = 30) -> list[ScanTarget]:
    """List devices reported by ``smartctl -j --scan``."""
    try:
        out = _run_smartctl(["-j", "--scan"], smartctl, timeout)
    except (FileNotFoundError, PermissionError) as e:
        raise AcquisitionUnavailable(f"{smartctl} could not be executed: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise AcquisitionUnavailable(f"{smartctl} --scan timed out") from e
    except OSError as e:
        raise AcquisitionUnavailable(str(e)) from e

    try:
        doc = json.loads(out)
    except json.JSONDecodeError as e:
        raise AcquisitionUnavailable("scan output is not valid JSON", out) from e

    devices = doc.get("devices") if isinstance(doc, dict) else None
    if not isinstance(devices, list):
        raise AcquisitionUnavailable("scan output has no device list", out)

    targets: list[ScanTarget] = []
    for entry in devices:
        if isinstance(entry, dict) and entry.get("name"):
            targets.append(ScanTarget(str(entry["name"]), str(entry.get("type") or "")))
    return targets


def _is_partition_of(name: str, disk: str) -> bool:
    # The kernel inserts a "p" when the disk name ends in a digit:
    # sda1 of sda, nvme0n1p1 of nvme0n1. sdaa and nvme0n10 are disks.
    if name == disk or not name.startswith(disk):
        return False
    rest = name[len(disk):]
    if disk[-1].isdigit():
        return rest.startswith("p") and rest[1:].isdigit()
    return rest.isdigit()


def _is_whole_disk(name: str, names: set[str]) -> bool:
    if name.startswith(_VIRTUAL_PREFIXES):
        return False
    return not any(_is_partition_of(name, other) for other in names)


def scan_psutil() -> list[ScanTarget]:
    """List whole physical disks known to the kernel, via psutil."""
    try:
        counters = psutil.disk_io_counters(perdisk=True)
    except (OSError, RuntimeError) as e:
        raise AcquisitionUnavailable(f"cannot enumerate disks: {e}") from e
    names = set(counters or {})
    return [
        ScanTarget(f"/dev/{name}")
        for name in sorted(names)
        if _is_whole_disk(name, names)
    ]


# ── Parsing ────────────────────────────────────────────────────────────────


def _optional_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _parse_capacity(doc: dict[str, Any]) -> int | None:
    capacity = doc.get("user_capacity") or {}
    value = capacity.get("bytes")
    if isinstance(value, dict):
        # older smartctl releases wrap 64-bit numbers as {"n": ...}
        value = value.get("n")
    number = _optional_number(value)
    return int(number) if number is not None else None


def _parse_attribute(row: dict[str, Any]) -> Attribute:
    threshold = _optional_number(row.get("thresh"))
    return Attribute(
        id=int(row["id"]),
        name=str(row["name"]),
        current=int(row["value"]),
        worst=int(row["worst"]),
        threshold=int(threshold) if threshold is not None else None,
        raw=int(row["raw"]["value"]),
    )


def parse_device(doc: dict[str, Any]) -> Device:
    """Build a Device from one ``smartctl -j -a`` document.

    Raises:
        DeviceSkipped: smartctl could not talk to the device, or a required
            field is missing or malformed.
    """
    try:
        run_info = doc.get("smartctl") or {}
        status = int(run_info.get("exit_status") or 0)
        if status & _EXIT_FATAL_MASK:
            messages = run_info.get("messages") or []
            detail = "; ".join(
                str(m.get("string", "")) for m in messages if isinstance(m, dict)
            )
            reason = f"smartctl exit status {status}"
            raise DeviceSkipped(f"{reason}: {detail}" if detail else reason)

        table = (doc.get("ata_smart_attributes") or {}).get("table") or []
        temperature = _optional_number((doc.get("temperature") or {}).get("current"))
        return Device(
            device_name=str(doc["device"]["name"]),
            model=str(doc["model_name"]),
            firmware=str(doc["firmware_version"]),
            serial=str(doc["serial_number"]),
            size=_parse_capacity(doc),
            temperature=float(temperature) if temperature is not None else None,
            standard=str((doc.get("ata_version") or {}).get("string", "")),
            rpm=int(doc.get("rotation_rate") or 0),
            attributes=tuple(_parse_attribute(row) for row in table),
        )
    except KeyError as e:
        raise DeviceSkipped(f"missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise DeviceSkipped(f"malformed data: {e}") from e


def read_device(
    target: ScanTarget, smartctl: str = "smartctl", timeout: float = 30
) -> Device:
    args = ["-j", "-a"]
    if target.type:
        args += ["-d", target.type]
    args.append(target.name)
    try:
        out = _run_smartctl(args, smartctl, timeout)
    except subprocess.TimeoutExpired as e:
        raise DeviceSkipped("smartctl timed out") from e
    except OSError as e:
        raise DeviceSkipped(str(e)) from e
    try:
        doc = json.loads(out)
    except json.JSONDecodeError as e:
        raise DeviceSkipped("output is not valid JSON") from e
    if not isinstance(doc, dict):
        raise DeviceSkipped("output is not a JSON object")
    return parse_device(doc)


# ── Entry point ────────────────────────────────────────────────────────────


def acquire_all(config: dict[str, Any]) -> ScanResult:
    """Snapshot every readable device, sorted by device name.

    Raises:
        AcquisitionUnavailable: The device list itself could not be obtained.
    """
    smartctl = str(config.get("smartctl_path", "smartctl"))
    timeout = float(config.get("smartctl_timeout", 30))

    if config.get("scan", "smartctl") == "psutil":
        targets = scan_psutil()
    else:
        targets = scan_smartctl(smartctl, timeout)

    result = ScanResult()
    for target in targets:
        try:
            result.devices.append(read_device(target, smartctl, timeout))
        except DeviceSkipped as e:
            logger.warning("skipping %s: %s", target.name, e)
            result.skipped.append(SkippedDevice(target.name, str(e)))
    result.devices.sort(key=lambda d: d.device_name)
    logger.debug(
        "acquired %d device(s), skipped %d", len(result.devices), len(result.skipped)
    )
    return result
