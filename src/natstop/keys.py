"""Keyboard command handling for natstop.

The state machine never touches the screen. It returns intents describing
what should be shown, and the app turns those into widget updates.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from natstop.options import DisplayOptions
from natstop.sorting import parse_sort_key

logger = logging.getLogger(__name__)

BACKSPACE_KEYS = frozenset({"backspace", "ctrl+h"})
ENTER_KEYS = frozenset({"enter", "ctrl+m"})


class InputMode(Enum):
    """Whether typed characters are being captured for a prompt."""

    NORMAL = "normal"
    ENTERING_SORT = "entering_sort"
    ENTERING_LIMIT = "entering_limit"


@dataclass(slots=True, frozen=True)
class ShowPrompt:
    """Show the option prompt with the given text."""

    text: str


@dataclass(slots=True, frozen=True)
class ClearPrompt:
    """Erase the option prompt."""


@dataclass(slots=True, frozen=True)
class FlashNotice:
    """Show a short-lived notice in the prompt area, then erase it."""

    text: str
    seconds: float = 1.0


@dataclass(slots=True, frozen=True)
class ToggleView:
    """Switch between the top view and the dashboard."""


@dataclass(slots=True, frozen=True)
class Quit:
    """Restore the terminal and exit with status 0."""


Intent = ShowPrompt | ClearPrompt | FlashNotice | ToggleView | Quit


class InputStateMachine:
    """Interprets key presses against the current input mode."""

    def __init__(self, options: DisplayOptions) -> None:
        self._options = options
        self._mode = InputMode.NORMAL
        self._buffer = ""

    @property
    def mode(self) -> InputMode:
        return self._mode

    @property
    def buffer(self) -> str:
        return self._buffer

    def handle(self, key: str, character: str | None = None) -> list[Intent]:
        """
        Process one key press.

        Args:
            key: Key name, e.g. ``"o"``, ``"space"``, ``"enter"``.
            character: The printable character for the key, if any.

        Returns:
            The intents the key produced; empty when the key is ignored.
        """
        if self._mode is InputMode.ENTERING_SORT:
            return self._handle_sort(key, character)
        if self._mode is InputMode.ENTERING_LIMIT:
            return self._handle_limit(key, character)
        return self._handle_normal(key)

    def _handle_normal(self, key: str) -> list[Intent]:
        if key == "q":
            return [Quit()]
        if key == "space":
            return [ToggleView()]
        if key == "o":
            self._mode = InputMode.ENTERING_SORT
            self._buffer = ""
            return [ShowPrompt(self._sort_prompt())]
        if key == "n":
            self._mode = InputMode.ENTERING_LIMIT
            self._buffer = ""
            return [ShowPrompt(self._limit_prompt())]
        return []

    def _handle_sort(self, key: str, character: str | None) -> list[Intent]:
        if key in ENTER_KEYS:
            text = self._buffer
            self._reset()
            try:
                sort_key = parse_sort_key(text)
            except ValueError:
                logger.debug("rejected sort key %r", text)
                return [FlashNotice(f"invalid order: {text}")]
            self._options.set_sort(sort_key)
            return [ClearPrompt()]
        if key in BACKSPACE_KEYS:
            return self._backspace(self._sort_prompt)
        if _is_printable(character) and character != " ":
            self._buffer += character
            return [ShowPrompt(self._sort_prompt())]
        return []

    def _handle_limit(self, key: str, character: str | None) -> list[Intent]:
        if key in ENTER_KEYS:
            text = self._buffer
            self._reset()
            try:
                self._options.set_conns(int(text))
            except ValueError:
                logger.debug("discarded connection limit %r", text)
            return [ClearPrompt()]
        if key in BACKSPACE_KEYS:
            return self._backspace(self._limit_prompt)
        if character is not None and character.isdigit():
            self._buffer += character
            return [ShowPrompt(self._limit_prompt())]
        return []

    def _backspace(self, prompt: Callable[[], str]) -> list[Intent]:
        if not self._buffer:
            return []
        self._buffer = self._buffer[:-1]
        return [ShowPrompt(prompt())]

    def _reset(self) -> None:
        self._mode = InputMode.NORMAL
        self._buffer = ""

    def _sort_prompt(self) -> str:
        return f"sort by [{self._options.sort or ''}]: {self._buffer}"

    def _limit_prompt(self) -> str:
        return f"limit   [{self._options.conns}]: {self._buffer}"


def _is_printable(character: str | None) -> bool:
    return character is not None and len(character) == 1 and character.isprintable()
