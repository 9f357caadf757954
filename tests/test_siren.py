from __future__ import annotations

import asyncio

from cli.siren import Siren


def test_siren_plays_configured_cycles() -> None:
    rings: list[str] = []
    siren = Siren(emit=lambda: rings.append("ring"), cycles=3, tone_seconds=0.0, pause_seconds=0.0)

    started = asyncio.run(siren.play())

    assert started is True
    assert rings == ["ring", "ring", "ring"]
    assert siren.sequences_started == 1
    assert siren.playing is False


def test_siren_does_not_overlap_sequences() -> None:
    rings: list[str] = []
    siren = Siren(emit=lambda: rings.append("ring"), cycles=2, tone_seconds=0.02, pause_seconds=0.0)

    async def scenario() -> tuple[bool, bool]:
        first = asyncio.ensure_future(siren.play())
        await asyncio.sleep(0)
        second = await siren.play()
        return await first, second

    first_started, second_started = asyncio.run(scenario())

    assert first_started is True
    assert second_started is False
    assert siren.sequences_started == 1
    assert rings == ["ring", "ring"]


def test_siren_can_play_again_after_finishing() -> None:
    siren = Siren(emit=lambda: None, cycles=1, tone_seconds=0.0, pause_seconds=0.0)

    async def scenario() -> None:
        await siren.play()
        await siren.play()

    asyncio.run(scenario())

    assert siren.sequences_started == 2
