"""Tests for the dashboard entry point and curses backend."""

from __future__ import annotations

import curses
import json
from pathlib import Path
from typing import Any, Iterator
from unittest.mock import MagicMock, patch

import pytest

from smartdash.acquire import AcquisitionUnavailable, ScanResult, SkippedDevice
from smartdash.controller import Key, Resize, Session, run_loop
from smartdash.dashboard import CursesScreen, _display_options, _show_panel, main, run
from smartdash.layout import Frame, Panel
from smartdash.model import Device


def _device(name: str) -> Device:
    return Device(name, "Model", "FW", "SN")


@pytest.fixture(autouse=True)
def _no_user_config(tmp_path: Path) -> Iterator[None]:
    with patch("smartdash.config._DEFAULT_PATH", tmp_path / "config.toml"):
        yield


# ── run ────────────────────────────────────────────────────────────────────


class TestRun:
    @patch("smartdash.dashboard.curses.wrapper")
    @patch("smartdash.dashboard.acquire_all", return_value=ScanResult())
    def test_no_devices(
        self,
        mock_acquire: MagicMock,
        mock_wrapper: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run([]) == 1
        err = capsys.readouterr().err
        assert "S.M.A.R.T" in err
        assert "sudo" in err
        mock_wrapper.assert_not_called()

    @patch("smartdash.dashboard.curses.wrapper")
    @patch(
        "smartdash.dashboard.acquire_all",
        side_effect=AcquisitionUnavailable("scan output is not valid JSON", "garbage"),
    )
    def test_acquisition_unavailable(
        self,
        mock_acquire: MagicMock,
        mock_wrapper: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run([]) == 1
        err = capsys.readouterr().err
        assert "cannot query devices" in err
        assert "garbage" in err
        mock_wrapper.assert_not_called()

    @patch("smartdash.dashboard.locale.setlocale")
    @patch("smartdash.dashboard.curses.wrapper")
    @patch("smartdash.dashboard.acquire_all")
    def test_starts_dashboard(
        self, mock_acquire: MagicMock, mock_wrapper: MagicMock, mock_locale: MagicMock
    ) -> None:
        mock_acquire.return_value = ScanResult(
            [_device("/dev/sda"), _device("/dev/sdb")],
            [SkippedDevice("/dev/sdc", "smartctl exit status 2")],
        )
        assert run([]) == 0
        session = mock_wrapper.call_args[0][1]
        assert isinstance(session, Session)
        assert [d.device_name for d in session.devices] == ["/dev/sda", "/dev/sdb"]
        assert session.selected == 0
        assert session.options.hide_serial is False

    @patch("smartdash.dashboard.locale.setlocale")
    @patch("smartdash.dashboard.curses.wrapper", side_effect=KeyboardInterrupt)
    @patch("smartdash.dashboard.acquire_all")
    def test_ctrl_c_exits_cleanly(
        self, mock_acquire: MagicMock, mock_wrapper: MagicMock, mock_locale: MagicMock
    ) -> None:
        mock_acquire.return_value = ScanResult([_device("/dev/sda")])
        assert run([]) == 0

    def test_dump_config(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert run(["--dump-config"]) == 0
        assert 'raw_format = "hex"' in capsys.readouterr().out

    @pytest.mark.parametrize(
        "toml",
        [
            '[thresholds.temperature]\ncaution = "hot"\n',
            'smartctl_timeout = "soon"\n',
            'log_level = "LOUD"\n',
            "thresholds = 5\n",
        ],
    )
    @patch("smartdash.dashboard.acquire_all")
    def test_bad_config_exits_1(
        self,
        mock_acquire: MagicMock,
        toml: str,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        cfg_file = tmp_path / "custom.toml"
        cfg_file.write_text(toml)
        with pytest.raises(SystemExit) as exc:
            run(["--config", str(cfg_file)])
        assert exc.value.code == 1
        assert capsys.readouterr().err.startswith("smartdash: ")
        mock_acquire.assert_not_called()

    @patch("smartdash.dashboard.locale.setlocale")
    @patch("smartdash.dashboard.curses.wrapper")
    @patch("smartdash.dashboard.acquire_all")
    def test_partial_threshold_table_keeps_default(
        self,
        mock_acquire: MagicMock,
        mock_wrapper: MagicMock,
        mock_locale: MagicMock,
        tmp_path: Path,
    ) -> None:
        cfg_file = tmp_path / "custom.toml"
        cfg_file.write_text("[thresholds.temperature]\ncaution = 45\n")
        mock_acquire.return_value = ScanResult([_device("/dev/sda")])
        assert run(["--config", str(cfg_file)]) == 0
        options = mock_wrapper.call_args[0][1].options
        assert options.temp_caution == 45.0
        assert options.temp_bad == 55.0

    def test_main_exit_code(self) -> None:
        with patch("smartdash.dashboard.run", return_value=1):
            with pytest.raises(SystemExit) as exc:
                main()
        assert exc.value.code == 1


def test_display_options_from_config() -> None:
    opts = _display_options(
        {"raw_format": "dec", "thresholds": {"temperature": {"caution": 40, "bad": 45}}}
    )
    assert opts.raw_hex is False
    assert opts.temp_caution == 40.0
    assert opts.temp_bad == 45.0
    assert opts.hide_serial is False


# ── CursesScreen input ─────────────────────────────────────────────────────


class TestCursesScreen:
    def _screen(self, *codes: int) -> CursesScreen:
        stdscr = MagicMock()
        stdscr.getch.side_effect = list(codes)
        stdscr.getmaxyx.return_value = (30, 100)
        return CursesScreen(stdscr)

    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            (curses.KEY_HOME, Key.HOME),
            (curses.KEY_END, Key.END),
            (curses.KEY_LEFT, Key.LEFT),
            (curses.KEY_RIGHT, Key.RIGHT),
            (ord("h"), "h"),
            (ord("q"), "q"),
            (curses.KEY_F1, Key.OTHER),
        ],
    )
    def test_translates_keys(self, code: int, expected: Key | str) -> None:
        assert self._screen(code).next_event() == expected

    @patch("smartdash.dashboard.curses.update_lines_cols")
    def test_resize_measures_terminal(self, mock_update: MagicMock) -> None:
        screen = self._screen(curses.KEY_RESIZE)
        assert screen.next_event() == Resize(30, 100)
        mock_update.assert_called_once()

    def test_interrupted_read_retried(self) -> None:
        assert self._screen(-1, ord("l")).next_event() == "l"

    def test_pending_events_drained_first(self) -> None:
        screen = self._screen(ord("q"))
        screen.push(Resize(10, 40))
        assert screen.next_event() == Resize(10, 40)
        assert screen.next_event() == "q"


# ── Panel drawing ──────────────────────────────────────────────────────────


class TestShowPanel:
    @patch("smartdash.dashboard.curses.color_pair", return_value=0)
    @patch("smartdash.dashboard.curses.newpad")
    def test_visible_region(self, mock_newpad: MagicMock, mock_pair: MagicMock) -> None:
        panel = Panel(height=13, width=80, top=5, left=20, rows=10, cols=80)
        panel.add(0, 0, "+---+")
        _show_panel(panel)

        mock_newpad.assert_called_once_with(13, 81)
        pad = mock_newpad.return_value
        pad.addstr.assert_called_once_with(0, 0, "+---+", curses.A_NORMAL)
        pad.noutrefresh.assert_called_once_with(0, 0, 5, 20, 14, 99)

    @patch("smartdash.dashboard.curses.newpad")
    def test_hidden_panel_skipped(self, mock_newpad: MagicMock) -> None:
        _show_panel(Panel(height=13, width=80, top=5, left=0, rows=0, cols=80))
        mock_newpad.assert_not_called()


# ── End to end ─────────────────────────────────────────────────────────────


def _smartctl_doc(name: str) -> dict[str, Any]:
    return {
        "smartctl": {"exit_status": 0},
        "device": {"name": name},
        "model_name": f"Disk {name}",
        "serial_number": f"SN-{name}",
        "firmware_version": "1.0",
        "temperature": {"current": 30},
        "ata_smart_attributes": {"table": []},
    }


@patch("smartdash.dashboard.locale.setlocale")
@patch("smartdash.acquire.subprocess.run")
def test_sorted_devices_and_navigation(mock_run: MagicMock, mock_locale: MagicMock) -> None:
    scan = {"devices": [{"name": "c"}, {"name": "a"}, {"name": "b"}]}

    def fake_run(cmd: list[str], **kwargs: Any) -> MagicMock:
        if "--scan" in cmd:
            return MagicMock(returncode=0, stdout=json.dumps(scan))
        return MagicMock(returncode=0, stdout=json.dumps(_smartctl_doc(cmd[-1])))

    mock_run.side_effect = fake_run
    frames: list[Frame] = []
    events = iter([Key.RIGHT, Key.RIGHT, Key.HOME, "q"])

    def fake_wrapper(func: Any, session: Session) -> None:
        run_loop(session, lambda: next(events), frames.append)

    with patch("smartdash.dashboard.curses.wrapper", side_effect=fake_wrapper):
        assert run([]) == 0

    assert frames[0].strip.text_at(2).startswith("a b c")
    selected = [[s.text for s in f.strip.spans if s.y == 2 and s.bold] for f in frames]
    assert selected == [["a"], ["b"], ["c"], ["a"]]
    assert "Disk a" in frames[-1].detail.text_at(0)
