"""Erase-then-type morph animation for a text surface.

Only the differing middle of each changed line is animated: the common prefix
and suffix stay put, the old middle is erased one character at a time, then
the new middle is typed in.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from enum import Enum

logger = logging.getLogger(__name__)


def _common_affixes(old: str, new: str) -> tuple[int, int]:
    prefix = 0
    limit = min(len(old), len(new))
    while prefix < limit and old[prefix] == new[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < len(old) - prefix
        and suffix < len(new) - prefix
        and old[len(old) - 1 - suffix] == new[len(new) - 1 - suffix]
    ):
        suffix += 1
    return prefix, suffix


def morph_frames(old: str, new: str) -> Iterator[str]:
    """Intermediate renderings from ``old`` to ``new``; the last one equals ``new``."""
    if old == new:
        return
    prefix, suffix = _common_affixes(old, new)
    head, tail = old[:prefix], old[len(old) - suffix :]
    old_middle = old[prefix : len(old) - suffix]
    new_middle = new[prefix : len(new) - suffix]
    for end in range(len(old_middle) - 1, -1, -1):
        yield head + old_middle[:end] + tail
    for end in range(1, len(new_middle) + 1):
        yield head + new_middle[:end] + tail


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class MorphState(str, Enum):
    IDLE = "idle"
    ANIMATING = "animating"


class MorphAnimator:
    """Animates one surface between texts; a new target supersedes the running one.

    ``render`` receives the full list of display lines after every step. Each
    step checks its token before rendering and before suspending, so a
    superseded animation never draws again.
    """

    def __init__(self, render: Callable[[list[str]], None], delay: float = 0.01, text: str = ""):
        self.render = render
        self.delay = delay
        self._display: list[str] = text.split("\n") if text else []
        self._token: CancellationToken | None = None
        self._task: asyncio.Task | None = None
        self.target: str | None = None

    @property
    def state(self) -> MorphState:
        if self._task is not None and not self._task.done():
            return MorphState.ANIMATING
        return MorphState.IDLE

    @property
    def lines(self) -> list[str]:
        return list(self._display)

    def animate_to(self, target: str) -> asyncio.Task:
        """Start animating toward ``target``. Must be called from a running loop."""
        if self._token is not None:
            self._token.cancel()
        token = CancellationToken()
        self._token = token
        self.target = target
        self._task = asyncio.create_task(self._run(target, token))
        return self._task

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()
        self.target = None

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    def _show(self, display: list[str], token: CancellationToken) -> bool:
        if token.cancelled:
            return False
        self._display = list(display)
        self.render(list(display))
        return True

    async def _run(self, target: str, token: CancellationToken) -> None:
        old_lines = list(self._display)
        new_lines = target.split("\n")
        display = list(old_lines)

        for i in range(max(len(old_lines), len(new_lines))):
            old_line = old_lines[i] if i < len(old_lines) else ""
            new_line = new_lines[i] if i < len(new_lines) else ""
            if old_line == new_line and i < len(display):
                continue
            if i >= len(display):
                display.append(old_line)
            for frame in morph_frames(old_line, new_line):
                display[i] = frame
                if not self._show(display, token):
                    return
                await asyncio.sleep(self.delay)
                if token.cancelled:
                    return
            display[i] = new_line

        del display[len(new_lines) :]
        if not self._show(display, token):
            return
        if self._token is token:
            self.target = None
        logger.debug("Morph finished: %d lines", len(display))
