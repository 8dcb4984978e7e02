"""Navigation state machine for the dashboard.

The session holds everything the layout needs (device list, selection,
display options, last known terminal size). ``handle_event`` applies one
input event to it and says whether the screen must be redrawn.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

from smartdash.layout import DisplayOptions, Frame, build_frame
from smartdash.model import Device


class Key(Enum):
    HOME = "home"
    END = "end"
    LEFT = "left"
    RIGHT = "right"
    OTHER = "other"


@dataclass(frozen=True)
class Resize:
    rows: int
    cols: int


# A named key, a printable character, or a resize notification
Event = Key | str | Resize


class Action(Enum):
    NONE = "none"
    REDRAW = "redraw"
    QUIT = "quit"


@dataclass
class Session:
    devices: Sequence[Device]
    rows: int = 24
    cols: int = 80
    selected: int = 0
    options: DisplayOptions = field(default_factory=DisplayOptions)

    def __post_init__(self) -> None:
        if not self.devices:
            raise ValueError("a session needs at least one device")

    @property
    def last_index(self) -> int:
        return len(self.devices) - 1

    def frame(self) -> Frame:
        return build_frame(
            self.devices, self.selected, self.options, self.rows, self.cols
        )


def handle_event(session: Session, event: Event) -> Action:
    if isinstance(event, Resize):
        session.rows, session.cols = event.rows, event.cols
        return Action.REDRAW
    if event == "q":
        return Action.QUIT
    if event is Key.HOME:
        session.selected = 0
    elif event is Key.END:
        session.selected = session.last_index
    elif event is Key.LEFT or event == "h":
        session.selected = max(session.selected - 1, 0)
    elif event is Key.RIGHT or event == "l":
        session.selected = min(session.selected + 1, session.last_index)
    elif event == "s":
        session.options.hide_serial = not session.options.hide_serial
    else:
        return Action.NONE
    return Action.REDRAW


def run_loop(
    session: Session,
    next_event: Callable[[], Event],
    draw: Callable[[Frame], None],
) -> None:
    """Draw, then process events until quit. Draws only happen here."""
    draw(session.frame())
    while True:
        action = handle_event(session, next_event())
        if action is Action.QUIT:
            return
        if action is Action.REDRAW:
            draw(session.frame())
