from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

import typer

logger = logging.getLogger(__name__)


def ring_terminal_bell() -> None:
    typer.echo("\a", nl=False)


class Siren:
    """Audio cue for a newly raised alarm.

    Only one sequence plays at a time; a request that arrives while a sequence
    is still running is dropped rather than queued.
    """

    def __init__(
        self,
        emit: Optional[Callable[[], None]] = None,
        cycles: int = 3,
        tone_seconds: float = 1.0,
        pause_seconds: float = 0.2,
    ) -> None:
        self._emit = emit or ring_terminal_bell
        self.cycles = cycles
        self.tone_seconds = tone_seconds
        self.pause_seconds = pause_seconds
        self.sequences_started = 0
        self._playing = False

    @property
    def playing(self) -> bool:
        return self._playing

    async def play(self) -> bool:
        """Play one sequence; return ``False`` if another sequence is running."""
        if self._playing:
            return False

        self._playing = True
        self.sequences_started += 1
        try:
            for _ in range(self.cycles):
                self._emit()
                await asyncio.sleep(self.tone_seconds + self.pause_seconds)
        except OSError as exc:
            logger.warning("Siren playback failed: %s", exc)
        finally:
            self._playing = False
        return True
