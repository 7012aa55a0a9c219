"""
Per-editor save status: idle -> saving -> success | error.

Each editor guards against a second submission while its own request is in
flight. The API keeps one board per project for the life of the process, so
the guard also holds across concurrent HTTP requests. A success badge clears
back to idle after a short delay.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from magic_cards_server.core.errors import EditorBusy, FunnelError
from magic_cards_shared.schemas.common import EditorStatus
from magic_cards_shared.schemas.funnel import EditorStatusRead


def stage_editor(stage: str) -> str:
    return f"stage:{stage}"


def field_editor(field: str) -> str:
    return f"field:{field}"


def contact_editor(contact_id: str, section: str | None = None) -> str:
    if section:
        return f"contact:{contact_id}:{section}"
    return f"contact:{contact_id}"


@dataclass
class EditorState:
    status: EditorStatus = EditorStatus.IDLE
    message: str = ""
    code: str | None = None
    generation: int = 0


class EditorBoard:
    def __init__(self, saved_badge_seconds: float = 2.0):
        self._saved_badge_seconds = saved_badge_seconds
        self._states: dict[str, EditorState] = {}

    def get(self, key: str) -> EditorState:
        return self._states.setdefault(key, EditorState())

    def begin(self, key: str) -> None:
        state = self.get(key)
        if state.status == EditorStatus.SAVING:
            raise EditorBusy("A save is already in progress for this editor")
        state.status = EditorStatus.SAVING
        state.message = ""
        state.code = None
        state.generation += 1

    def succeed(self, key: str, message: str = "Saved") -> None:
        state = self.get(key)
        state.status = EditorStatus.SUCCESS
        state.message = message
        state.code = None
        self._schedule_clear(key, state.generation)

    def fail(self, key: str, exc: FunnelError) -> None:
        state = self.get(key)
        state.status = EditorStatus.ERROR
        state.message = exc.message
        state.code = exc.code

    def release(self, key: str) -> None:
        """Drop a save that ended without succeed/fail so the editor can retry."""
        state = self.get(key)
        if state.status == EditorStatus.SAVING:
            state.status = EditorStatus.IDLE

    def _schedule_clear(self, key: str, generation: int) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.call_later(self._saved_badge_seconds, self._clear_success, key, generation)

    def _clear_success(self, key: str, generation: int) -> None:
        state = self._states.get(key)
        # A newer save owns the badge now.
        if state and state.generation == generation and state.status == EditorStatus.SUCCESS:
            state.status = EditorStatus.IDLE
            state.message = ""

    def snapshot(self) -> list[EditorStatusRead]:
        return [
            EditorStatusRead(key=key, status=s.status, message=s.message, code=s.code)
            for key, s in sorted(self._states.items())
            if s.status != EditorStatus.IDLE
        ]
