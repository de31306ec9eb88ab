# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable

import pytest

from adapters.asr.whisper_adapter import WhisperBackendError, WhisperEngine
from adapters.tts.base import TTSProvider
from config import AppConfig
from observability import logger
from session.bootstrap import SessionServices
from session.gateway import SessionGateway
from session.voice_session import VoiceSession

from spec import AUDIO_BYTES_PER_FRAME_PCM, LANGUAGE_PREFERENCE_KEY, STATUS_STOPPED


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------

class SilentTTS(TTSProvider):
    name = "silent"

    async def render(self, *, text: str, language_code: str) -> bytes:
        return b"\x00\x00" * 320


class NoVision:
    async def analyze_scene(self, image: str, prompt: str) -> str:
        return "Nothing ahead."


class NoRouting:
    async def geocode(self, address: str) -> None:
        return None

    async def route(self, start: Any, end: Any) -> None:
        return None


def no_whisper() -> WhisperEngine:
    raise WhisperBackendError("no model in tests")


def fake_services(config: AppConfig, session_id: str) -> SessionServices:
    return SessionServices(
        primary_tts=SilentTTS(),
        fallback_tts=None,
        load_engine=no_whisper,
        vision=NoVision(),  # type: ignore[arg-type]
        routing=NoRouting(),  # type: ignore[arg-type]
    )


def services_with_preferences(path: Path) -> Callable[[AppConfig, str], SessionServices]:
    def factory(config: AppConfig, session_id: str) -> SessionServices:
        services = fake_services(config, session_id)
        services.preferences_path = str(path)
        return services
    return factory


class FakeClient:
    """Drains the outbound queue like a browser: acks playback and grants the mic."""

    def __init__(self, gateway: SessionGateway, session: VoiceSession) -> None:
        self.gateway = gateway
        self.session = session
        self.messages: list[dict[str, Any]] = []
        self.audio_frames = 0
        self.task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            item = await self.session.outbound.get()
            if isinstance(item, bytes):
                self.audio_frames += 1
                continue
            self.messages.append(item)
            if item["type"] == "AUDIO_END":
                await self.send({"type": "PLAYBACK_DONE", "generation": item["generation"]})
            elif item["type"] == "MIC_REQUEST":
                await self.send({"type": "MIC_PERMISSION", "granted": True})

    async def send(self, message: dict[str, Any]) -> None:
        await self.gateway.on_json_message(json.dumps(message))

    async def tap(self, control: str, **extra: Any) -> None:
        await self.send({"type": "TAP", "control": control, **extra})

    async def until(self, predicate: Callable[[], bool], timeout_s: float = 2.0) -> None:
        async def _poll() -> None:
            while not predicate():
                await asyncio.sleep(0.005)
        await asyncio.wait_for(_poll(), timeout_s)

    def received(self, **fields: Any) -> bool:
        return any(all(m.get(k) == v for k, v in fields.items()) for m in self.messages)

    async def close(self) -> None:
        await self.gateway.on_ws_disconnect(reason="test")
        self.task.cancel()
        await asyncio.gather(self.task, return_exceptions=True)


@pytest.fixture
def captured_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    lines: list[dict[str, Any]] = []
    monkeypatch.setattr(logger, "_print", lambda line: lines.append(json.loads(line)))
    return lines


def run_session(scenario: Callable[[SessionGateway, FakeClient], Awaitable[None]]) -> None:
    async def _main() -> None:
        gateway = SessionGateway(config=AppConfig(), services_factory=fake_services)
        session = await gateway.on_ws_connect()
        client = FakeClient(gateway, session)
        try:
            await scenario(gateway, client)
        finally:
            await client.close()

    asyncio.run(_main())


def event_types(logs: list[dict[str, Any]]) -> list[str]:
    return [str(line.get("event_type")) for line in logs]


# ---------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------

def test_connect_sends_session_init_and_greets(captured_logs: list[dict[str, Any]]) -> None:
    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await client.until(lambda: client.received(type="AUDIO_END"))

        init = client.messages[0]
        assert init["type"] == "SESSION_INIT"
        assert init["language"] == {"name": "English", "code": "en-IN"}
        assert "Start" in init["controls"]
        assert init["audio_format"]["sample_rate"] == 16_000
        assert client.audio_frames >= 1

    run_session(scenario)
    assert "SESSION_STARTED" in event_types(captured_logs)


def test_disconnect_is_idempotent(captured_logs: list[dict[str, Any]]) -> None:
    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await gateway.on_ws_disconnect(reason="first")

    run_session(scenario)
    assert event_types(captured_logs).count("SESSION_ENDED") == 1


# ---------------------------------------------------------------------
# Inbound JSON
# ---------------------------------------------------------------------

def test_client_inputs_are_recorded() -> None:
    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await client.send({"type": "CAMERA_FRAME", "image": "QUJD"})
        await client.send({"type": "LOCATION", "lat": 18.5, "lon": "73.8"})
        await client.tap("Start Navigation", text="Station")

        session = client.session
        assert session.camera_frame == "QUJD"
        assert session.location == (18.5, 73.8)
        assert session.destination == "Station"

        await client.send({"type": "CAMERA_ERROR", "message": "denied"})
        await client.send({"type": "LOCATION", "lat": None})
        assert session.camera_frame is None
        assert session.location is None

    run_session(scenario)


def test_bad_messages_are_logged(captured_logs: list[dict[str, Any]]) -> None:
    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await gateway.on_json_message("{not json")
        await client.send({"type": "DANCE"})
        await client.tap("Self Destruct")
        await client.send({"type": "SET_LANGUAGE", "language": "Klingon"})

    run_session(scenario)
    types = event_types(captured_logs)
    for expected in ("JSON_DECODE_ERROR", "UNKNOWN_MESSAGE_TYPE", "UNKNOWN_CONTROL", "UNKNOWN_LANGUAGE"):
        assert expected in types


def test_double_tap_runs_the_control() -> None:
    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await client.tap("Emergency Info")
        await client.tap("Emergency Info")

        await client.until(lambda: client.received(type="STATUS", text="No emergency contact saved."))
        assert client.received(type="PAGE", page="emergency")

    run_session(scenario)


def test_set_language_updates_session() -> None:
    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await client.send({"type": "SET_LANGUAGE", "language": "Tamil"})

        await client.until(lambda: client.session.language.name == "Tamil")
        assert client.received(type="LANGUAGE", name="Tamil", code="ta-IN")
        assert client.session.coordinator is not None
        assert client.session.coordinator.language_code == "ta-IN"

    run_session(scenario)


def test_stop_reports_stopped() -> None:
    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await client.send({"type": "STOP"})
        await client.until(lambda: client.received(type="STATUS", text=STATUS_STOPPED))

    run_session(scenario)


def test_unsupported_recognition_disables_voice(captured_logs: list[dict[str, Any]]) -> None:
    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await client.tap("Start")
        await client.tap("Start")

        await client.until(lambda: client.received(type="VOICE_DISABLED"))
        session = client.session
        assert session.voice_enabled is False
        assert session.controls["Start"].enabled is False

        await client.until(lambda: any(
            line.get("event_type") == "RECOGNIZER_UNSUPPORTED" for line in captured_logs
        ))

    run_session(scenario)


# ---------------------------------------------------------------------
# Inbound binary
# ---------------------------------------------------------------------

def test_binary_frames_are_queued_and_gaps_logged(captured_logs: list[dict[str, Any]]) -> None:
    pcm = b"\x00\x00" * (AUDIO_BYTES_PER_FRAME_PCM // 2)

    async def scenario(gateway: SessionGateway, client: FakeClient) -> None:
        await gateway.on_binary_message((1).to_bytes(4, "little") + pcm)
        await gateway.on_binary_message((3).to_bytes(4, "little") + pcm)
        await gateway.on_binary_message(b"\x01\x00")

        assert client.session.last_mic_seq == 3

    run_session(scenario)
    gaps = [line for line in captured_logs if line.get("event_type") == "SEQ_GAP_DETECTED"]
    assert len(gaps) == 1
    assert gaps[0]["gap_size"] == 1
    assert "BINARY_DECODE_ERROR" in event_types(captured_logs)


# ---------------------------------------------------------------------
# Language preference
# ---------------------------------------------------------------------

def test_language_preference_is_kept_per_client(tmp_path: Path, captured_logs: list[dict[str, Any]]) -> None:
    path = tmp_path / "prefs.json"

    async def connect(client_id: str | None) -> tuple[FakeClient, dict[str, Any]]:
        gateway = SessionGateway(config=AppConfig(), services_factory=services_with_preferences(path))
        client = FakeClient(gateway, await gateway.on_ws_connect(client_id=client_id))
        await client.until(lambda: bool(client.messages))
        return client, client.messages[0]["language"]

    async def main() -> None:
        alice, language = await connect("alice")
        assert language["name"] == "English"
        await alice.send({"type": "SET_LANGUAGE", "language": "Tamil"})
        await alice.until(lambda: alice.received(type="LANGUAGE", name="Tamil"))
        await alice.close()

        bob, language = await connect("bob")
        assert language == {"name": "English", "code": "en-IN"}
        await bob.close()

        alice, language = await connect("alice")
        assert language == {"name": "Tamil", "code": "ta-IN"}
        await alice.close()

        # No usable id: default language and nothing written
        for client_id in (None, "../../etc/passwd"):
            anonymous, language = await connect(client_id)
            assert language["name"] == "English"
            await anonymous.send({"type": "SET_LANGUAGE", "language": "Hindi"})
            await anonymous.until(lambda: anonymous.received(type="LANGUAGE", name="Hindi"))
            await anonymous.close()

    asyncio.run(main())

    assert json.loads(path.read_text(encoding="utf-8")) == {"alice": {LANGUAGE_PREFERENCE_KEY: "Tamil"}}
    reasons = [line["reason"] for line in captured_logs if line.get("event_type") == "PREFERENCES_DISABLED"]
    assert reasons == ["missing_client_id", "invalid_client_id"]
