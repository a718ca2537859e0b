"""Tests for the keyboard state machine."""

import pytest

from natstop.keys import (
    ClearPrompt,
    FlashNotice,
    InputMode,
    InputStateMachine,
    Quit,
    ShowPrompt,
    ToggleView,
)
from natstop.options import DisplayOptions
from natstop.sorting import SortKey


@pytest.fixture
def options():
    return DisplayOptions(conns=1024)


@pytest.fixture
def machine(options):
    return InputStateMachine(options)


def type_text(machine, text):
    intents = []
    for ch in text:
        intents.extend(machine.handle(ch, ch))
    return intents


def test_starts_normal(machine):
    assert machine.mode is InputMode.NORMAL
    assert machine.buffer == ""


def test_quit(machine):
    assert machine.handle("q", "q") == [Quit()]


def test_space_toggles_view(machine):
    assert machine.handle("space", " ") == [ToggleView()]
    assert machine.mode is InputMode.NORMAL


def test_unknown_keys_are_ignored(machine):
    assert machine.handle("x", "x") == []
    assert machine.handle("f5", None) == []
    assert machine.mode is InputMode.NORMAL


class TestSortPrompt:
    def test_o_opens_prompt(self, machine):
        assert machine.handle("o", "o") == [ShowPrompt("sort by [cid]: ")]
        assert machine.mode is InputMode.ENTERING_SORT

    def test_typing_echoes_buffer(self, machine):
        machine.handle("o", "o")
        intents = type_text(machine, "subs")

        assert intents[-1] == ShowPrompt("sort by [cid]: subs")
        assert machine.buffer == "subs"

    def test_valid_key_is_committed(self, machine, options):
        machine.handle("o", "o")
        type_text(machine, "msgs_to")

        assert machine.handle("enter", None) == [ClearPrompt()]
        assert options.sort is SortKey.OUT_MSGS
        assert machine.mode is InputMode.NORMAL
        assert machine.buffer == ""

    def test_invalid_key_flashes_and_keeps_previous(self, machine, options):
        machine.handle("o", "o")
        type_text(machine, "bogus")

        assert machine.handle("enter", None) == [FlashNotice("invalid order: bogus", 1.0)]
        assert options.sort is SortKey.CID
        assert machine.mode is InputMode.NORMAL
        assert machine.buffer == ""

    def test_backspace(self, machine):
        machine.handle("o", "o")
        type_text(machine, "subx")

        assert machine.handle("backspace", None) == [ShowPrompt("sort by [cid]: sub")]
        assert machine.buffer == "sub"

    def test_backspace_on_empty_buffer_is_ignored(self, machine):
        machine.handle("o", "o")

        assert machine.handle("backspace", None) == []
        assert machine.mode is InputMode.ENTERING_SORT

    def test_n_is_text_while_sorting(self, machine):
        """Test the limit prompt cannot be opened from the sort prompt."""
        machine.handle("o", "o")

        assert machine.handle("n", "n") == [ShowPrompt("sort by [cid]: n")]
        assert machine.mode is InputMode.ENTERING_SORT

    def test_commands_are_text_while_sorting(self, machine):
        machine.handle("o", "o")

        assert machine.handle("q", "q") == [ShowPrompt("sort by [cid]: q")]
        assert machine.handle("space", " ") == []
        assert machine.mode is InputMode.ENTERING_SORT

    def test_prompt_shows_no_override(self):
        machine = InputStateMachine(DisplayOptions(sort=None))
        assert machine.handle("o", "o") == [ShowPrompt("sort by []: ")]


class TestLimitPrompt:
    def test_n_opens_prompt(self, machine):
        assert machine.handle("n", "n") == [ShowPrompt("limit   [1024]: ")]
        assert machine.mode is InputMode.ENTERING_LIMIT

    def test_limit_is_committed(self, machine, options):
        machine.handle("n", "n")
        type_text(machine, "250")

        assert machine.handle("enter", None) == [ClearPrompt()]
        assert options.conns == 250
        assert machine.mode is InputMode.NORMAL

    def test_non_digits_leave_limit_unchanged(self, machine, options):
        machine.handle("n", "n")
        assert type_text(machine, "abc") == []

        assert machine.handle("enter", None) == [ClearPrompt()]
        assert options.conns == 1024
        assert machine.mode is InputMode.NORMAL

    def test_zero_limit_is_discarded(self, machine, options):
        machine.handle("n", "n")
        type_text(machine, "0")
        machine.handle("enter", None)

        assert options.conns == 1024

    def test_backspace(self, machine):
        machine.handle("n", "n")
        type_text(machine, "25")

        assert machine.handle("backspace", None) == [ShowPrompt("limit   [1024]: 2")]

    def test_o_is_ignored_while_entering_limit(self, machine):
        machine.handle("n", "n")

        assert machine.handle("o", "o") == []
        assert machine.mode is InputMode.ENTERING_LIMIT

    def test_prompt_shows_new_limit_next_time(self, machine):
        machine.handle("n", "n")
        type_text(machine, "64")
        machine.handle("enter", None)

        assert machine.handle("n", "n") == [ShowPrompt("limit   [64]: ")]
