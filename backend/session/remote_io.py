"""
Browser-side audio I/O, reached over the session WebSocket.

RemoteAudioSink
- Frames rendered PCM into S2C binary frames tagged with the generation
- Sends AUDIO_END after the last frame and waits for PLAYBACK_DONE
- stop() sends AUDIO_STOP so the browser flushes that generation

RemoteMicrophone
- Sends MIC_REQUEST and waits for the client's MIC_PERMISSION answer
- A grant is remembered for the rest of the session

Both are driven by the gateway, which routes the client's answers to
playback_done() / answer().
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from adapters.asr.base import MicrophoneAdapter
from audio.pcm import pcm_duration_ms, split_frames
from protocol.binary import encode_s2c_frame, next_seq

from observability.logger import log_event

from spec import MIC_PERMISSION_TIMEOUT_S, PLAYBACK_DONE_SLACK_MS, SEQ_NUM_MAX


class RemoteAudioSink:
    """AudioSink that plays on the client."""

    def __init__(
        self,
        *,
        send_control: Callable[[dict[str, Any]], None],
        send_audio: Callable[[bytes], None],
        session_id: str,
        slack_ms: int = PLAYBACK_DONE_SLACK_MS,
    ) -> None:
        self._send_control = send_control
        self._send_audio = send_audio
        self._session_id = session_id
        self._slack_ms = slack_ms
        self._seq = SEQ_NUM_MAX  # next_seq() wraps this to SEQ_NUM_START
        self._pending: dict[int, asyncio.Future[None]] = {}

    async def play(self, generation: int, pcm_bytes: bytes) -> None:
        """
        Send one utterance and wait until the client reports it played.

        A missing PLAYBACK_DONE is logged and treated as done once the
        audio duration plus slack has passed.
        """
        done = asyncio.get_running_loop().create_future()
        self._pending[generation] = done

        frames = split_frames(pcm_bytes)
        for pcm in frames:
            self._seq = next_seq(self._seq)
            self._send_audio(encode_s2c_frame(
                sequence_num=self._seq,
                generation=generation,
                pcm_bytes=pcm,
            ))

        duration_ms = pcm_duration_ms(pcm_bytes)
        self._send_control({
            "type": "AUDIO_END",
            "generation": generation,
            "frames": len(frames),
            "duration_ms": duration_ms,
        })

        try:
            await asyncio.wait_for(done, timeout=(duration_ms + self._slack_ms) / 1000.0)
        except asyncio.TimeoutError:
            log_event({
                "event_type": "PLAYBACK_DONE_TIMEOUT",
                "session_id": self._session_id,
                "generation": generation,
                "duration_ms": duration_ms,
            })
        finally:
            if self._pending.get(generation) is done:
                del self._pending[generation]

    def stop(self, generation: int) -> None:
        waiter = self._pending.pop(generation, None)
        if waiter is None:
            return
        if not waiter.done():
            waiter.cancel()
        self._send_control({"type": "AUDIO_STOP", "generation": generation})

    def playback_done(self, generation: int) -> None:
        """Client finished playing `generation`. Unknown generations are ignored."""
        waiter = self._pending.get(generation)
        if waiter is not None and not waiter.done():
            waiter.set_result(None)

    def close(self) -> None:
        for generation in list(self._pending):
            self.stop(generation)


class RemoteMicrophone(MicrophoneAdapter):
    """MicrophoneAdapter backed by the client's permission prompt."""

    def __init__(
        self,
        *,
        send_control: Callable[[dict[str, Any]], None],
        session_id: str,
        timeout_s: float = MIC_PERMISSION_TIMEOUT_S,
    ) -> None:
        self._send_control = send_control
        self._session_id = session_id
        self._timeout_s = timeout_s
        self._granted = False
        self._answer: asyncio.Future[bool] | None = None

    async def request_access(self) -> bool:
        if self._granted:
            return True

        if self._answer is None or self._answer.done():
            self._answer = asyncio.get_running_loop().create_future()
            self._send_control({"type": "MIC_REQUEST"})

        try:
            granted = await asyncio.wait_for(asyncio.shield(self._answer), timeout=self._timeout_s)
        except asyncio.TimeoutError:
            log_event({
                "event_type": "MIC_PERMISSION_TIMEOUT",
                "session_id": self._session_id,
                "timeout_s": self._timeout_s,
            })
            return False

        self._granted = granted
        return granted

    def answer(self, granted: bool) -> None:
        """Route the client's MIC_PERMISSION message. Unsolicited answers only set the flag."""
        if self._answer is not None and not self._answer.done():
            self._answer.set_result(granted)
        else:
            self._granted = granted

    def close(self) -> None:
        if self._answer is not None and not self._answer.done():
            self._answer.cancel()
