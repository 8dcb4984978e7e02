"""Interactive terminal dashboard for S.M.A.R.T. device health.

Takes one snapshot of every readable device, then shows a device strip and a
detail panel for the selected device using curses.

Keys:
    Left / h, Right / l   previous / next device
    Home, End             first / last device
    s                     hide or show the serial number
    q                     quit

Usage:
    sudo smartdash
    sudo smartdash --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import locale
import logging
import sys
from collections import deque
from pathlib import Path
from typing import Any

from smartdash.acquire import AcquisitionUnavailable, acquire_all
from smartdash.config import dump_default_config, load_config
from smartdash.controller import Event, Key, Resize, Session, run_loop
from smartdash.layout import DisplayOptions, Frame, Panel, Style

logger = logging.getLogger(__name__)

# ── Colour helpers ─────────────────────────────────────────────────────────


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(Style.GOOD, curses.COLOR_BLACK, curses.COLOR_CYAN)
    curses.init_pair(Style.CAUTION, curses.COLOR_BLACK, curses.COLOR_YELLOW)
    curses.init_pair(Style.BAD, curses.COLOR_WHITE, curses.COLOR_RED)
    curses.init_pair(Style.ACCENT, curses.COLOR_CYAN, -1)
    curses.init_pair(Style.LEGEND, curses.COLOR_BLACK, curses.COLOR_GREEN)
    curses.init_pair(Style.TITLE, curses.COLOR_YELLOW, -1)


def _attr(style: Style, bold: bool) -> int:
    attr = curses.color_pair(style) if style is not Style.PLAIN else curses.A_NORMAL
    return attr | curses.A_BOLD if bold else attr


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _show_panel(panel: Panel) -> None:
    """Copy a panel into a pad and queue its visible part for the next update."""
    if panel.rows <= 0 or panel.cols <= 0:
        return
    pad = curses.newpad(panel.height, panel.width + 1)
    for span in panel.spans:
        _safe(pad, span.y, span.x, span.text, _attr(span.style, span.bold))
    try:
        pad.noutrefresh(
            0,
            panel.scroll_x,
            panel.top,
            panel.left,
            panel.top + panel.rows - 1,
            panel.left + panel.cols - 1,
        )
    except curses.error:
        pass


class CursesScreen:
    """Render backend: draws frames and reads input events."""

    def __init__(self, stdscr: curses.window) -> None:
        self.stdscr = stdscr
        self.pending: deque[Event] = deque()

    def size(self) -> tuple[int, int]:
        rows, cols = self.stdscr.getmaxyx()
        return rows, cols

    def draw(self, frame: Frame) -> None:
        self.stdscr.erase()
        self.stdscr.noutrefresh()
        for panel in (frame.title, frame.strip, frame.detail):
            _show_panel(panel)
        curses.doupdate()

    def push(self, event: Event) -> None:
        self.pending.append(event)

    def _translate(self, code: int) -> Event:
        if code == curses.KEY_RESIZE:
            curses.update_lines_cols()
            rows, cols = self.size()
            logger.debug("terminal resized to %dx%d", cols, rows)
            return Resize(rows, cols)
        named = {
            curses.KEY_HOME: Key.HOME,
            curses.KEY_END: Key.END,
            curses.KEY_LEFT: Key.LEFT,
            curses.KEY_RIGHT: Key.RIGHT,
        }
        if code in named:
            return named[code]
        if 0 <= code < 256:
            return chr(code)
        return Key.OTHER

    def next_event(self) -> Event:
        """Return a queued event, or block for the next key.

        ncurses reports terminal resizes in-band as KEY_RESIZE, so resize
        handling never runs inside a signal handler.
        """
        while not self.pending:
            code = self.stdscr.getch()
            if code == -1:
                continue
            self.push(self._translate(code))
        return self.pending.popleft()


# ── Main loop ──────────────────────────────────────────────────────────────


def _dashboard_loop(stdscr: curses.window, session: Session) -> None:
    _init_colors()
    curses.curs_set(0)
    stdscr.keypad(True)

    screen = CursesScreen(stdscr)
    session.rows, session.cols = screen.size()
    logger.debug("dashboard started with %d device(s)", len(session.devices))
    run_loop(session, screen.next_event, screen.draw)


# ── CLI entry point ────────────────────────────────────────────────────────


def _setup_logging(config: dict[str, Any]) -> logging.Handler:
    """Configure the root logger; returns the stderr handler."""
    stream = logging.StreamHandler()
    handlers: list[logging.Handler] = [stream]
    if config.get("log_file"):
        handlers.append(logging.FileHandler(config["log_file"]))
    logging.basicConfig(
        level=config["log_level"].upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    return stream


def _display_options(config: dict[str, Any]) -> DisplayOptions:
    temp = config["thresholds"]["temperature"]
    return DisplayOptions(
        raw_hex=config["raw_format"] == "hex",
        temp_caution=float(temp["caution"]),
        temp_bad=float(temp["bad"]),
    )


def run(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Terminal dashboard for S.M.A.R.T. storage device health.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return 0

    config = load_config(args.config)
    stream = _setup_logging(config)

    try:
        result = acquire_all(config)
    except AcquisitionUnavailable as e:
        print(f"smartdash: cannot query devices: {e}", file=sys.stderr)
        if e.output:
            print(e.output, file=sys.stderr)
        return 1

    if not result.devices:
        print("No S.M.A.R.T readable devices.", file=sys.stderr)
        print(
            "If you are a non-root user, please use sudo or become root.",
            file=sys.stderr,
        )
        return 1

    session = Session(result.devices, options=_display_options(config))
    # stderr output would corrupt the curses screen from here on
    logging.getLogger().removeHandler(stream)

    locale.setlocale(locale.LC_ALL, "")
    try:
        curses.wrapper(_dashboard_loop, session)
    except KeyboardInterrupt:
        pass
    return 0


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
