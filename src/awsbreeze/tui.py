"""Terminal list view for awsbreeze.

One thread owns the session: it takes events off a queue, feeds them to
``session.update`` and performs the returned effect. Key presses come
from a reader thread, fetch results from a daemon fetch thread (at most
one at a time), and terminal resizes from SIGWINCH.
"""

import logging
import os
import queue
import select
import signal
import sys
import termios
import threading
import tty
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Iterator, List, Optional

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from .errors import FetchError
from .fetchers.rss import RSSFetcher
from .launcher import open_url
from .models import Item
from .normalizer import normalize_entries
from .session import (
    BeginFilter,
    CancelFilter,
    ClearFilter,
    ConfirmFilter,
    Effect,
    Event,
    FetchFailed,
    FetchFeed,
    FetchSucceeded,
    FilterBackspace,
    FilterChar,
    MarkAllSeen,
    MoveCursor,
    OpenSelected,
    OpenURL,
    Quit,
    Refresh,
    Resized,
    SessionMode,
    SessionState,
    Shutdown,
    ToggleHelp,
    initial_state,
    update,
)
from .storage import SeenStateStore

logger = logging.getLogger(__name__)

TITLE = "AWS What's New"
SUMMARY_WIDTH = 80
ITEM_HEIGHT = 4  # title, summary, date, blank line
CHROME_HEIGHT = 5  # title bar, status line, margins

TITLE_STYLE = "bold bright_white on color(62)"
NEW_STYLE = "bold bright_green"
SUMMARY_STYLE = "bright_black"
DATE_STYLE = "cyan"
SELECTED_STYLE = "on color(62)"

HELP_TEXT = """
Controls:
  ↑/↓ or j/k  - Navigate items
  Enter       - Open selected item in browser
  r           - Refresh news
  f           - Filter by date (days)
  c           - Clear all filters
  n           - Mark all as seen (clear new indicators)
  h           - Toggle this help
  q           - Quit

● Green dots indicate new items since last run
"""

# --- Rendering ---


def format_date(item: Item) -> str:
    """Jan 2, 2006 style date."""
    d = item.pub_date
    return f"{d:%b} {d.day}, {d.year}"


def truncate(text: str, width: int = SUMMARY_WIDTH) -> str:
    if len(text) > width:
        return text[: width - 3] + "..."
    return text


def render_item(item: Item, selected: bool = False) -> Text:
    """Three-line entry: title, summary, date."""
    text = Text()
    if item.is_new:
        text.append("● " + item.title, style=NEW_STYLE)
    else:
        text.append(item.title, style="bright_white")
    text.append("\n")
    text.append(truncate(item.summary), style=SUMMARY_STYLE)
    text.append("\n")
    text.append(format_date(item), style=DATE_STYLE)

    if selected:
        text.stylize(SELECTED_STYLE)
    return text


def list_title(state: SessionState) -> str:
    title = TITLE
    if state.filter_days > 0:
        title += f" (Last {state.filter_days} days)"
    return title


def page_bounds(state: SessionState) -> tuple:
    """Return (start, end) indexes of the page holding the cursor."""
    per_page = max((state.height - CHROME_HEIGHT) // ITEM_HEIGHT, 1)
    start = (state.cursor // per_page) * per_page
    return start, min(start + per_page, len(state.visible))


def render(state: SessionState) -> RenderableType:
    """Build the full screen for a session state."""
    if state.mode == SessionMode.LOADING:
        return Text("Fetching AWS news...\n\nPress 'q' to quit")

    if state.mode == SessionMode.ERROR:
        return Text(f"Error: {state.error}\n\nPress 'r' to retry or 'q' to quit")

    parts: List[RenderableType] = [
        Text(f" {list_title(state)} ", style=TITLE_STYLE),
        Text(""),
    ]

    if not state.visible:
        parts.append(Text("No items.", style="dim"))
    else:
        start, end = page_bounds(state)
        for index in range(start, end):
            parts.append(render_item(state.visible[index], index == state.cursor))
            parts.append(Text(""))
        parts.append(
            Text(
                f"{len(state.visible)} items"
                + (f" of {len(state.items)}" if state.filter_days > 0 else ""),
                style="dim",
            )
        )

    if state.mode == SessionMode.ENTERING_FILTER:
        parts.append(
            Panel(
                f"Filter by days:\n> {state.filter_input}█\n\n"
                "Press Enter to apply, Esc to cancel",
                expand=False,
                padding=1,
            )
        )

    parts.append(Text(HELP_TEXT if state.show_help else "Press 'h' for help"))
    return Group(*parts)


# --- Keys ---


@dataclass(frozen=True)
class KeyPressed:
    """Raw key name from the reader thread, translated on the loop thread."""

    key: str


def key_to_event(mode: SessionMode, key: str) -> Optional[Event]:
    """Translate a key name into a session event for the given mode."""
    if mode == SessionMode.ENTERING_FILTER:
        if key == "enter":
            return ConfirmFilter()
        if key == "esc":
            return CancelFilter()
        if key == "backspace":
            return FilterBackspace()
        if len(key) == 1 and key.isprintable():
            return FilterChar(key)
        return None

    return {
        "q": Quit(),
        "ctrl+c": Quit(),
        "enter": OpenSelected(),
        "r": Refresh(),
        "f": BeginFilter(),
        "c": ClearFilter(),
        "n": MarkAllSeen(),
        "h": ToggleHelp(),
        "up": MoveCursor(-1),
        "k": MoveCursor(-1),
        "down": MoveCursor(1),
        "j": MoveCursor(1),
        "pgup": MoveCursor(-10),
        "pgdown": MoveCursor(10),
    }.get(key)


ESCAPE_SEQUENCES = {
    "[A": "up",
    "[B": "down",
    "[C": "right",
    "[D": "left",
    "OA": "up",
    "OB": "down",
    "[5~": "pgup",
    "[6~": "pgdown",
}


def decode_key(data: str) -> str:
    """Map raw terminal input to a key name."""
    if data in ("\r", "\n"):
        return "enter"
    if data == "\x03":
        return "ctrl+c"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if data == "\x1b":
        return "esc"
    if data.startswith("\x1b"):
        return ESCAPE_SEQUENCES.get(data[1:], "unknown")
    return data


def utf8_length(lead: int) -> int:
    """Byte length of the UTF-8 sequence starting with lead (1 if invalid)."""
    if 0xC0 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF7:
        return 4
    return 1


def read_key(fd: int) -> str:
    """Block for one key press on fd and return its name."""
    data = os.read(fd, 1)
    if not data:
        raise EOFError("stdin closed")
    if data == b"\x1b":
        # Collect the rest of an escape sequence if one follows quickly
        while select.select([fd], [], [], 0.05)[0]:
            chunk = os.read(fd, 1)
            if not chunk:
                break
            data += chunk
            final = data[-1:].isalpha() or data[-1:] == b"~"
            if len(data) >= 4 or (len(data) >= 3 and final):
                break
    else:
        # A multi-byte character arrives as one key
        remaining = utf8_length(data[0]) - 1
        while remaining > 0:
            chunk = os.read(fd, remaining)
            if not chunk:
                break
            data += chunk
            remaining -= len(chunk)
    return decode_key(data.decode("utf-8", errors="replace"))


@contextmanager
def cbreak_terminal(fd: int) -> Iterator[None]:
    """Unbuffered, no-echo input with ctrl+c delivered as a key."""
    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        attrs = termios.tcgetattr(fd)
        attrs[3] &= ~termios.ISIG
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


# --- Runtime ---


class App:
    """Runs one interactive session."""

    def __init__(
        self,
        fetcher: RSSFetcher,
        store: SeenStateStore,
        console: Optional[Console] = None,
        opener: Callable[[str], None] = open_url,
    ):
        """Initialize the application.

        Args:
            fetcher: Feed fetcher
            store: Seen-state persistence
            console: Rich console to draw on
            opener: Called with a URL when an item is opened
        """
        self.fetcher = fetcher
        self.store = store
        self.console = console or Console()
        self.opener = opener
        # SimpleQueue.put is safe to call from the SIGWINCH handler
        self.events: "queue.SimpleQueue[Event]" = queue.SimpleQueue()
        self.fetch_thread: Optional[threading.Thread] = None
        self.state: Optional[SessionState] = None

    def fetch_items(self) -> List[Item]:
        """Fetch and normalize the feed. Runs on the fetch thread."""
        return normalize_entries(self.fetcher.fetch())

    def start(self) -> None:
        """Load seen-state and kick off the first fetch."""
        seen = self.store.load()
        state, effect = initial_state(seen)
        width, height = self.console.size
        self.state = replace(state, width=width, height=height)
        self._perform(effect)

    def dispatch(self, event: Event) -> None:
        """Apply one event and perform the resulting effect."""
        self.state, effect = update(self.state, event)
        if effect is not None:
            self._perform(effect)

    def _perform(self, effect: Effect) -> None:
        if isinstance(effect, FetchFeed):
            # Daemon thread: quitting mid-fetch must not wait for the request
            self.fetch_thread = threading.Thread(
                target=self._run_fetch, name="fetch", daemon=True
            )
            self.fetch_thread.start()
        elif isinstance(effect, OpenURL):
            self.opener(effect.url)
        elif isinstance(effect, Shutdown):
            self._save(effect)

    def _run_fetch(self) -> None:
        try:
            items = self.fetch_items()
        except FetchError as e:
            self.events.put(FetchFailed(e))
        except Exception as e:
            logger.exception("Unexpected error while loading the feed")
            self.events.put(FetchFailed(e))
        else:
            self.events.put(FetchSucceeded(tuple(items)))

    def _save(self, effect: Shutdown) -> None:
        if effect.current_guids is None:
            logger.warning(
                "No successful fetch with items this session; leaving seen-state untouched"
            )
            return
        self.store.prune_and_save(effect.seen, effect.current_guids)

    def _on_resize(self, signum, frame) -> None:
        width, height = self.console.size
        self.events.put(Resized(width, height))

    def _read_keys(self, fd: int) -> None:
        while True:
            try:
                key = read_key(fd)
            except (OSError, EOFError):
                return
            self.events.put(KeyPressed(key))

    def run(self) -> SessionState:
        """Run until the user quits. Returns the final session state."""
        self.start()
        fd = sys.stdin.fileno()

        if hasattr(signal, "SIGWINCH"):
            signal.signal(signal.SIGWINCH, self._on_resize)

        with cbreak_terminal(fd), Live(
            render(self.state),
            console=self.console,
            screen=True,
            auto_refresh=False,
        ) as live:
            reader = threading.Thread(
                target=self._read_keys, args=(fd,), name="keys", daemon=True
            )
            reader.start()

            while not self.state.done:
                event = self.events.get()
                if isinstance(event, KeyPressed):
                    event = key_to_event(self.state.mode, event.key)
                    if event is None:
                        continue
                self.dispatch(event)
                live.update(render(self.state), refresh=True)

        return self.state
