# pylint: disable=missing-module-docstring,missing-function-docstring
from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from observability import logger
from session.remote_io import RemoteAudioSink, RemoteMicrophone

from spec import AUDIO_BYTES_PER_FRAME_PCM


@pytest.fixture
def captured_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    lines: list[dict[str, Any]] = []
    monkeypatch.setattr(logger, "_print", lambda line: lines.append(json.loads(line)))
    return lines


def make_sink(slack_ms: int = 2_000) -> tuple[RemoteAudioSink, list[dict[str, Any]], list[bytes]]:
    controls: list[dict[str, Any]] = []
    audio: list[bytes] = []
    sink = RemoteAudioSink(
        send_control=controls.append,
        send_audio=audio.append,
        session_id="test",
        slack_ms=slack_ms,
    )
    return sink, controls, audio


# ---------------------------------------------------------------------
# Audio sink
# ---------------------------------------------------------------------

def test_play_frames_audio_and_waits_for_playback_done() -> None:
    async def scenario() -> None:
        sink, controls, audio = make_sink()
        pcm = b"\x01\x00" * (AUDIO_BYTES_PER_FRAME_PCM // 2) * 2 + b"\x01\x00"

        playing = asyncio.create_task(sink.play(3, pcm))
        await asyncio.sleep(0)

        assert len(audio) == 3
        assert [int.from_bytes(frame[0:4], "little") for frame in audio] == [1, 2, 3]
        assert all(int.from_bytes(frame[4:8], "little") == 3 for frame in audio)
        assert controls == [{"type": "AUDIO_END", "generation": 3, "frames": 3, "duration_ms": 40}]
        assert not playing.done()

        sink.playback_done(3)
        await asyncio.wait_for(playing, 1.0)

    asyncio.run(scenario())


def test_missing_playback_done_times_out_as_done(captured_logs: list[dict[str, Any]]) -> None:
    async def scenario() -> None:
        sink, _, _ = make_sink(slack_ms=10)
        await asyncio.wait_for(sink.play(1, b"\x00\x00" * 16), 1.0)

    asyncio.run(scenario())
    assert captured_logs[-1]["event_type"] == "PLAYBACK_DONE_TIMEOUT"


def test_stop_sends_audio_stop_only_for_pending_generation() -> None:
    async def scenario() -> None:
        sink, controls, _ = make_sink()

        sink.stop(9)
        assert controls == []

        playing = asyncio.create_task(sink.play(5, b"\x00\x00" * 16))
        await asyncio.sleep(0)
        sink.stop(5)

        assert controls[-1] == {"type": "AUDIO_STOP", "generation": 5}
        with pytest.raises(asyncio.CancelledError):
            await playing

    asyncio.run(scenario())


def test_unknown_playback_done_is_ignored() -> None:
    sink, controls, _ = make_sink()
    sink.playback_done(42)
    assert controls == []


# ---------------------------------------------------------------------
# Microphone
# ---------------------------------------------------------------------

def test_microphone_grant_is_cached() -> None:
    async def scenario() -> None:
        controls: list[dict[str, Any]] = []
        mic = RemoteMicrophone(send_control=controls.append, session_id="test")

        asking = asyncio.create_task(mic.request_access())
        await asyncio.sleep(0)
        assert controls == [{"type": "MIC_REQUEST"}]

        mic.answer(True)
        assert await asking is True

        assert await mic.request_access() is True
        assert len(controls) == 1

    asyncio.run(scenario())


def test_microphone_denial_asks_again_next_time() -> None:
    async def scenario() -> None:
        controls: list[dict[str, Any]] = []
        mic = RemoteMicrophone(send_control=controls.append, session_id="test")

        asking = asyncio.create_task(mic.request_access())
        await asyncio.sleep(0)
        mic.answer(False)
        assert await asking is False

        asking = asyncio.create_task(mic.request_access())
        await asyncio.sleep(0)
        assert len(controls) == 2
        mic.answer(True)
        assert await asking is True

    asyncio.run(scenario())


def test_microphone_timeout_counts_as_denied(captured_logs: list[dict[str, Any]]) -> None:
    async def scenario() -> bool:
        mic = RemoteMicrophone(send_control=lambda message: None, session_id="test", timeout_s=0.01)
        return await mic.request_access()

    assert asyncio.run(scenario()) is False
    assert captured_logs[-1]["event_type"] == "MIC_PERMISSION_TIMEOUT"
