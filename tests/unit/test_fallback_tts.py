# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring
from __future__ import annotations

import asyncio

import pytest

from adapters.tts.base import TTSProvider, TTSProviderError
from adapters.tts.fallback import FallbackTTSAdapter
from observability import logger
from orchestrator.events import Event, EventType, SynthesisFailed


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda line: None)


class FakeProvider(TTSProvider):
    def __init__(self, name: str, *, pcm: bytes = b"\x00\x00" * 320, fail: bool = False) -> None:
        self.name = name
        self.pcm = pcm
        self.fail = fail
        self.calls: list[tuple[str, str]] = []
        self.release = asyncio.Event()
        self.hold = False
        self.closed = False

    async def render(self, *, text: str, language_code: str) -> bytes:
        self.calls.append((text, language_code))
        if self.hold:
            await self.release.wait()
        if self.fail:
            raise TTSProviderError(f"{self.name} down")
        return self.pcm

    async def aclose(self) -> None:
        self.closed = True


class FakeSink:
    def __init__(self) -> None:
        self.played: list[tuple[int, bytes]] = []
        self.stopped: list[int] = []

    async def play(self, generation: int, pcm_bytes: bytes) -> None:
        self.played.append((generation, pcm_bytes))

    def stop(self, generation: int) -> None:
        self.stopped.append(generation)


class Recorder:
    def __init__(self) -> None:
        self.events: list[Event] = []
        self.arrived = asyncio.Event()

    async def __call__(self, event: Event) -> None:
        self.events.append(event)
        self.arrived.set()


def build(primary: FakeProvider, fallback: FakeProvider | None) -> tuple[FallbackTTSAdapter, FakeSink, Recorder]:
    sink = FakeSink()
    recorder = Recorder()
    adapter = FallbackTTSAdapter(
        emit_event=recorder,
        primary=primary,
        fallback=fallback,
        sink=sink,
        session_id="test",
    )
    return adapter, sink, recorder


def test_primary_success_plays_and_reports_done() -> None:
    async def scenario() -> None:
        primary = FakeProvider("sarvam", pcm=b"\x01\x00" * 10)
        fallback = FakeProvider("speechmatics")
        adapter, sink, recorder = build(primary, fallback)

        await adapter.synthesize(generation=1, text="Hello", language_code="hi-IN")
        await asyncio.wait_for(recorder.arrived.wait(), 1.0)

        assert sink.played == [(1, b"\x01\x00" * 10)]
        assert [e.event_type for e in recorder.events] == [EventType.SYNTHESIS_DONE]
        assert fallback.calls == []

    asyncio.run(scenario())


def test_primary_failure_uses_fallback_with_same_text_and_language() -> None:
    async def scenario() -> None:
        primary = FakeProvider("sarvam", fail=True)
        fallback = FakeProvider("speechmatics", pcm=b"\x02\x00" * 10)
        adapter, sink, recorder = build(primary, fallback)

        await adapter.synthesize(generation=4, text="Namaste", language_code="mr-IN")
        await asyncio.wait_for(recorder.arrived.wait(), 1.0)

        assert fallback.calls == [("Namaste", "mr-IN")]
        assert sink.played == [(4, b"\x02\x00" * 10)]
        assert recorder.events[0].event_type is EventType.SYNTHESIS_DONE

    asyncio.run(scenario())


def test_both_paths_failing_reports_failure() -> None:
    async def scenario() -> None:
        adapter, sink, recorder = build(
            FakeProvider("sarvam", fail=True),
            FakeProvider("speechmatics", fail=True),
        )

        await adapter.synthesize(generation=2, text="Hello", language_code="en-IN")
        await asyncio.wait_for(recorder.arrived.wait(), 1.0)

        (event,) = recorder.events
        assert isinstance(event, SynthesisFailed)
        assert event.generation == 2
        assert "speechmatics down" in event.reason
        assert sink.played == []

    asyncio.run(scenario())


def test_no_fallback_configured_reports_primary_failure() -> None:
    async def scenario() -> None:
        adapter, _, recorder = build(FakeProvider("sarvam", fail=True), None)

        await adapter.synthesize(generation=3, text="Hello", language_code="en-IN")
        await asyncio.wait_for(recorder.arrived.wait(), 1.0)

        assert recorder.events[0].event_type is EventType.SYNTHESIS_FAILED

    asyncio.run(scenario())


def test_cancel_is_silent_and_stops_the_sink() -> None:
    async def scenario() -> None:
        primary = FakeProvider("sarvam")
        primary.hold = True
        adapter, sink, recorder = build(primary, None)

        await adapter.synthesize(generation=7, text="Long sentence", language_code="en-IN")
        await asyncio.sleep(0)
        adapter.cancel(7)

        primary.release.set()
        await asyncio.sleep(0.01)

        assert recorder.events == []
        assert sink.played == []
        assert sink.stopped == [7]

    asyncio.run(scenario())


def test_aclose_releases_providers() -> None:
    async def scenario() -> None:
        primary = FakeProvider("sarvam")
        fallback = FakeProvider("speechmatics")
        adapter, _, _ = build(primary, fallback)

        await adapter.aclose()

        assert primary.closed and fallback.closed

    asyncio.run(scenario())
