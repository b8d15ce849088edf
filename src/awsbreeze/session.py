"""Interactive session controller.

The whole session is one immutable SessionState value. ``update`` takes
the current state and one event and returns the next state plus at most
one effect for the runtime to perform (start a fetch, open a link, or
save and exit). Nothing in this module does I/O.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, Union

from .filters import filter_by_days, parse_days
from .models import Item
from .storage import SeenState
from .sync import synchronize


class SessionMode(str, Enum):
    """Exactly one mode is active at a time."""

    LOADING = "loading"  # Fetch in flight
    ERROR = "error"  # Last fetch failed
    BROWSING = "browsing"  # Normal list view
    ENTERING_FILTER = "entering_filter"  # Typing a day count


# --- Events ---


@dataclass(frozen=True)
class FetchSucceeded:
    items: Tuple[Item, ...]


@dataclass(frozen=True)
class FetchFailed:
    error: Exception


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class OpenSelected:
    pass


@dataclass(frozen=True)
class MarkAllSeen:
    pass


@dataclass(frozen=True)
class ClearFilter:
    pass


@dataclass(frozen=True)
class BeginFilter:
    pass


@dataclass(frozen=True)
class FilterChar:
    char: str


@dataclass(frozen=True)
class FilterBackspace:
    pass


@dataclass(frozen=True)
class ConfirmFilter:
    pass


@dataclass(frozen=True)
class CancelFilter:
    pass


@dataclass(frozen=True)
class MoveCursor:
    delta: int


@dataclass(frozen=True)
class ToggleHelp:
    pass


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class Quit:
    pass


Event = Union[
    FetchSucceeded,
    FetchFailed,
    Refresh,
    OpenSelected,
    MarkAllSeen,
    ClearFilter,
    BeginFilter,
    FilterChar,
    FilterBackspace,
    ConfirmFilter,
    CancelFilter,
    MoveCursor,
    ToggleHelp,
    Resized,
    Quit,
]


# --- Effects ---


@dataclass(frozen=True)
class FetchFeed:
    """Start one background fetch."""


@dataclass(frozen=True)
class OpenURL:
    url: str


@dataclass(frozen=True)
class Shutdown:
    """Persist and exit.

    ``current_guids`` is None when there is no trustworthy snapshot to
    prune against; the runtime then leaves the state file untouched.
    """

    seen: SeenState
    current_guids: Optional[Tuple[str, ...]]


Effect = Union[FetchFeed, OpenURL, Shutdown]


@dataclass(frozen=True)
class SessionState:
    """Everything the list view needs, derived views included."""

    seen: SeenState
    mode: SessionMode = SessionMode.LOADING
    items: Tuple[Item, ...] = ()  # Last successful fetch, synchronized
    visible: Tuple[Item, ...] = ()  # items after the day filter
    filter_days: int = 0
    filter_input: str = ""
    cursor: int = 0
    show_help: bool = False
    error: Optional[Exception] = None
    has_snapshot: bool = False  # True once any fetch succeeded
    width: int = 80
    height: int = 24
    done: bool = False

    @property
    def selected(self) -> Optional[Item]:
        if 0 <= self.cursor < len(self.visible):
            return self.visible[self.cursor]
        return None


def initial_state(seen: SeenState) -> Tuple[SessionState, Effect]:
    """Start a session in Loading with the first fetch requested."""
    return SessionState(seen=seen), FetchFeed()


def _refilter(state: SessionState, now: datetime) -> SessionState:
    """Recompute the visible list and keep the cursor in range."""
    visible = tuple(filter_by_days(state.items, state.filter_days, now))
    cursor = min(state.cursor, max(len(visible) - 1, 0))
    return replace(state, visible=visible, cursor=cursor)


def _shutdown(state: SessionState) -> Tuple[SessionState, Effect]:
    guids: Optional[Tuple[str, ...]] = None
    if state.has_snapshot and state.items:
        guids = tuple(item.guid for item in state.items)
    return replace(state, done=True), Shutdown(seen=state.seen, current_guids=guids)


def update(
    state: SessionState, event: Event, now: Optional[datetime] = None
) -> Tuple[SessionState, Optional[Effect]]:
    """Apply one event to the session.

    Args:
        state: Current session state
        event: Event to handle
        now: Reference time for the day filter (defaults to current UTC time)

    Returns:
        (next state, effect or None). Events that do not apply to the
        current mode return the state unchanged and no effect.
    """
    if state.done:
        return state, None

    now = now or datetime.now(timezone.utc)
    mode = state.mode

    if isinstance(event, Resized):
        return replace(state, width=event.width, height=event.height), None

    if mode == SessionMode.LOADING:
        if isinstance(event, FetchSucceeded):
            items = tuple(synchronize(event.items, state.seen))
            next_state = replace(
                state,
                mode=SessionMode.BROWSING,
                items=items,
                error=None,
                has_snapshot=True,
            )
            return _refilter(next_state, now), None
        if isinstance(event, FetchFailed):
            return replace(state, mode=SessionMode.ERROR, error=event.error), None
        if isinstance(event, Quit):
            return _shutdown(state)
        # Refresh while a fetch is in flight is a no-op
        return state, None

    if mode == SessionMode.ERROR:
        if isinstance(event, Refresh):
            return replace(state, mode=SessionMode.LOADING), FetchFeed()
        if isinstance(event, Quit):
            return _shutdown(state)
        return state, None

    if mode == SessionMode.ENTERING_FILTER:
        if isinstance(event, FilterChar):
            return replace(state, filter_input=state.filter_input + event.char), None
        if isinstance(event, FilterBackspace):
            return replace(state, filter_input=state.filter_input[:-1]), None
        if isinstance(event, ConfirmFilter):
            next_state = replace(
                state,
                mode=SessionMode.BROWSING,
                filter_days=parse_days(state.filter_input),
            )
            return _refilter(next_state, now), None
        if isinstance(event, CancelFilter):
            return replace(state, mode=SessionMode.BROWSING), None
        return state, None

    # Browsing
    if isinstance(event, Quit):
        return _shutdown(state)

    if isinstance(event, Refresh):
        return replace(state, mode=SessionMode.LOADING), FetchFeed()

    if isinstance(event, BeginFilter):
        return replace(state, mode=SessionMode.ENTERING_FILTER), None

    if isinstance(event, ClearFilter):
        return _refilter(replace(state, filter_days=0), now), None

    if isinstance(event, MoveCursor):
        if not state.visible:
            return state, None
        cursor = min(max(state.cursor + event.delta, 0), len(state.visible) - 1)
        return replace(state, cursor=cursor), None

    if isinstance(event, ToggleHelp):
        return replace(state, show_help=not state.show_help), None

    if isinstance(event, OpenSelected):
        selected = state.selected
        if selected is None:
            return state, None
        seen = state.seen.mark_seen(selected.guid)
        items = tuple(
            replace(item, is_new=False) if item.guid == selected.guid else item
            for item in state.items
        )
        next_state = _refilter(replace(state, seen=seen, items=items), now)
        return next_state, OpenURL(selected.link)

    if isinstance(event, MarkAllSeen):
        seen = state.seen.mark_all_seen(item.guid for item in state.items)
        items = tuple(replace(item, is_new=False) for item in state.items)
        return _refilter(replace(state, seen=seen, items=items), now), None

    return state, None
