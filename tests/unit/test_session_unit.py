"""Unit tests for the session state machine."""

from dataclasses import replace
from datetime import timedelta

import pytest

from awsbreeze.errors import FetchError
from awsbreeze.session import (
    BeginFilter,
    CancelFilter,
    ClearFilter,
    ConfirmFilter,
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
    Shutdown,
    ToggleHelp,
    initial_state,
    update,
)
from awsbreeze.storage import SeenState


@pytest.fixture
def browsing(make_item, now):
    """A session that has loaded four items, one of them seen."""
    items = (
        make_item("a", 1),
        make_item("b", 3),
        make_item("c", 8),
        make_item("d", 10),
    )
    seen = SeenState(last_seen={"b": True}, last_run=now - timedelta(days=9))
    state, _ = initial_state(seen)
    state, effect = update(state, FetchSucceeded(items), now)
    assert effect is None
    return state


def test_initial_state_is_loading_and_requests_fetch() -> None:
    """Test startup enters Loading with a fetch effect."""
    state, effect = initial_state(SeenState())

    assert state.mode == SessionMode.LOADING
    assert isinstance(effect, FetchFeed)


def test_fetch_success_enters_browsing_with_new_flags(browsing) -> None:
    """Test a successful fetch synchronizes items and shows them all."""
    assert browsing.mode == SessionMode.BROWSING
    assert browsing.has_snapshot
    assert [item.guid for item in browsing.visible] == ["a", "b", "c", "d"]
    assert [item.is_new for item in browsing.items] == [True, False, True, False]


def test_fetch_failure_enters_error(now) -> None:
    """Test a failed fetch moves to Error and keeps the error."""
    state, _ = initial_state(SeenState())
    error = FetchError("https://example.com/feed", "boom")

    state, effect = update(state, FetchFailed(error), now)

    assert state.mode == SessionMode.ERROR
    assert state.error is error
    assert effect is None


def test_error_refresh_returns_to_loading(now) -> None:
    """Test refresh from Error requests a new fetch."""
    state, _ = initial_state(SeenState())
    state, _ = update(state, FetchFailed(FetchError("u", "boom")), now)

    state, effect = update(state, Refresh(), now)

    assert state.mode == SessionMode.LOADING
    assert isinstance(effect, FetchFeed)


def test_success_after_error_clears_error(make_item, now) -> None:
    """Test a retry that succeeds drops the previous error."""
    state, _ = initial_state(SeenState())
    state, _ = update(state, FetchFailed(FetchError("u", "boom")), now)
    state, _ = update(state, Refresh(), now)

    state, _ = update(state, FetchSucceeded((make_item("a"),)), now)

    assert state.mode == SessionMode.BROWSING
    assert state.error is None


def test_refresh_while_loading_is_noop(now) -> None:
    """
    INVARIANT: At most one fetch is in flight
    BREAKS: Concurrent fetches racing to replace the item list
    """
    state, _ = initial_state(SeenState())

    next_state, effect = update(state, Refresh(), now)

    assert next_state == state
    assert effect is None


@pytest.mark.parametrize(
    "event",
    [OpenSelected(), MarkAllSeen(), BeginFilter(), ClearFilter(), MoveCursor(1)],
)
def test_loading_ignores_browsing_input(event, now) -> None:
    """Test browsing actions do nothing while a fetch is in flight."""
    state, _ = initial_state(SeenState())

    next_state, effect = update(state, event, now)

    assert next_state == state
    assert effect is None


def test_browsing_refresh_requests_fetch(browsing, now) -> None:
    """Test refresh from Browsing goes to Loading with one fetch."""
    state, effect = update(browsing, Refresh(), now)

    assert state.mode == SessionMode.LOADING
    assert isinstance(effect, FetchFeed)

    # A second refresh before the result arrives does nothing
    state, effect = update(state, Refresh(), now)
    assert effect is None


def test_open_selected_marks_seen_and_opens_link(browsing, now) -> None:
    """Test opening an item marks it seen, clears its dot and opens the link."""
    state, effect = update(browsing, OpenSelected(), now)

    assert effect == OpenURL("https://example.com/a")
    assert state.seen.is_seen("a")
    assert state.items[0].is_new is False
    assert state.visible[0].is_new is False
    # Other items are untouched
    assert state.items[2].is_new is True


def test_open_with_no_visible_items_is_noop(now) -> None:
    """Test Enter on an empty list does nothing."""
    state, _ = initial_state(SeenState())
    state, _ = update(state, FetchSucceeded(()), now)

    next_state, effect = update(state, OpenSelected(), now)

    assert next_state == state
    assert effect is None


def test_mark_all_seen(browsing, now) -> None:
    """Test mark-all flags every current GUID and clears every dot."""
    state, effect = update(browsing, MarkAllSeen(), now)

    assert effect is None
    assert set(state.seen.last_seen) == {"a", "b", "c", "d"}
    assert not any(item.is_new for item in state.items)
    assert not any(item.is_new for item in state.visible)


def test_filter_entry_confirm_applies_days(browsing, now) -> None:
    """Test typing a day count and confirming filters the list."""
    state, _ = update(browsing, BeginFilter(), now)
    assert state.mode == SessionMode.ENTERING_FILTER

    for char in "7":
        state, _ = update(state, FilterChar(char), now)
    state, effect = update(state, ConfirmFilter(), now)

    assert effect is None
    assert state.mode == SessionMode.BROWSING
    assert state.filter_days == 7
    assert [item.guid for item in state.visible] == ["a", "b"]
    assert len(state.items) == 4


def test_filter_entry_backspace_edits_input(browsing, now) -> None:
    """Test backspace removes the last typed character."""
    state, _ = update(browsing, BeginFilter(), now)
    for char in "12":
        state, _ = update(state, FilterChar(char), now)
    state, _ = update(state, FilterBackspace(), now)
    state, _ = update(state, ConfirmFilter(), now)

    assert state.filter_days == 1


def test_filter_entry_invalid_input_clears_filter(browsing, now) -> None:
    """Test non-numeric input resolves to no filter rather than an error."""
    state = replace(browsing, filter_days=3)
    state, _ = update(state, BeginFilter(), now)
    for char in "abc":
        state, _ = update(state, FilterChar(char), now)
    state, effect = update(state, ConfirmFilter(), now)

    assert effect is None
    assert state.mode == SessionMode.BROWSING
    assert state.filter_days == 0
    assert len(state.visible) == 4


def test_filter_entry_cancel_keeps_previous_filter(browsing, now) -> None:
    """Test Esc returns to Browsing without changing the filter."""
    state, _ = update(browsing, BeginFilter(), now)
    state, _ = update(state, FilterChar("7"), now)
    state, _ = update(state, CancelFilter(), now)

    assert state.mode == SessionMode.BROWSING
    assert state.filter_days == 0
    assert len(state.visible) == 4


def test_filter_entry_ignores_quit(browsing, now) -> None:
    """Test quit is not reachable while typing a filter."""
    state, _ = update(browsing, BeginFilter(), now)

    next_state, effect = update(state, Quit(), now)

    assert next_state == state
    assert effect is None


def test_clear_filter_restores_full_list(browsing, now) -> None:
    """Test clearing the filter shows every item again."""
    state, _ = update(browsing, BeginFilter(), now)
    state, _ = update(state, FilterChar("2"), now)
    state, _ = update(state, ConfirmFilter(), now)
    assert len(state.visible) == 1

    state, _ = update(state, ClearFilter(), now)

    assert state.filter_days == 0
    assert len(state.visible) == 4


def test_cursor_moves_within_bounds(browsing, now) -> None:
    """Test the cursor is clamped to the visible list."""
    state, _ = update(browsing, MoveCursor(-1), now)
    assert state.cursor == 0

    state, _ = update(state, MoveCursor(10), now)
    assert state.cursor == 3
    assert state.selected.guid == "d"


def test_cursor_clamped_after_filter_shrinks_list(browsing, now) -> None:
    """Test the cursor stays valid when the visible list gets shorter."""
    state, _ = update(browsing, MoveCursor(3), now)
    state, _ = update(state, BeginFilter(), now)
    state, _ = update(state, FilterChar("2"), now)
    state, _ = update(state, ConfirmFilter(), now)

    assert state.cursor == 0
    assert state.selected.guid == "a"


def test_toggle_help_and_resize(browsing, now) -> None:
    """Test help toggling and resize bookkeeping."""
    state, _ = update(browsing, ToggleHelp(), now)
    assert state.show_help

    state, _ = update(state, Resized(120, 40), now)
    assert (state.width, state.height) == (120, 40)


def test_quit_from_browsing_prunes_against_current_items(browsing, now) -> None:
    """Test quit hands the current GUID set to the shutdown effect."""
    state, _ = update(browsing, OpenSelected(), now)

    state, effect = update(state, Quit(), now)

    assert state.done
    assert isinstance(effect, Shutdown)
    assert effect.current_guids == ("a", "b", "c", "d")
    assert effect.seen.is_seen("a")


def test_quit_after_refresh_failure_uses_last_good_snapshot(browsing, now) -> None:
    """Test a failed refresh keeps the previous items for pruning."""
    state, _ = update(browsing, Refresh(), now)
    state, _ = update(state, FetchFailed(FetchError("u", "boom")), now)

    state, effect = update(state, Quit(), now)

    assert effect.current_guids == ("a", "b", "c", "d")


def test_quit_without_successful_fetch_skips_pruning(now) -> None:
    """
    FAILURE MODE: No fetch ever succeeded this session
    GRACEFUL: Shutdown carries no GUID set so stored state is left alone
    """
    state, _ = initial_state(SeenState(last_seen={"x": True}))
    state, _ = update(state, FetchFailed(FetchError("u", "boom")), now)

    state, effect = update(state, Quit(), now)

    assert isinstance(effect, Shutdown)
    assert effect.current_guids is None


def test_quit_while_loading_skips_pruning(now) -> None:
    """Test quitting before the first fetch completes leaves state alone."""
    state, _ = initial_state(SeenState())

    state, effect = update(state, Quit(), now)

    assert state.done
    assert effect.current_guids is None


def test_quit_with_empty_snapshot_skips_pruning(now) -> None:
    """Test an empty successful fetch is not trusted for pruning."""
    state, _ = initial_state(SeenState(last_seen={"x": True}))
    state, _ = update(state, FetchSucceeded(()), now)

    _, effect = update(state, Quit(), now)

    assert effect.current_guids is None


def test_events_after_quit_are_ignored(browsing, now) -> None:
    """Test the session is terminal once quit."""
    state, _ = update(browsing, Quit(), now)

    next_state, effect = update(state, Refresh(), now)

    assert next_state == state
    assert effect is None
