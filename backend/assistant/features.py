"""
User-facing features of the assistant.

Each feature is a short script over the speech coordinator: speak a cue,
maybe listen, call one external service, speak the result. Features never
touch adapters directly and never raise for service failures; the only
error that escapes is RecognitionUnsupported, which the session turns into
"voice features disabled".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import httpx

from assistant.intents import Intent, parse_command
from language.catalog import Language, menu_page, next_language
from language.numbers import parse_spoken_number
from language.preferences import PreferenceStore
from orchestrator.coordinator import SpeechCoordinator
from orchestrator.errors import RecognitionError, RecognitionUnsupported
from services.routing import LatLon, RoutingClient
from services.vision_client import VisionClient

from observability.logger import log_event

from spec import (
    LANGUAGE_MENU_MAX_REPROMPTS,
    LANGUAGE_MENU_PAGE_SIZE,
    PHRASE_ANALYZING_CURRENCY,
    PHRASE_ANALYZING_SCENE,
    PHRASE_CAMERA_UNAVAILABLE,
    PHRASE_COMMAND_NOT_RECOGNIZED,
    PHRASE_COULD_NOT_HEAR,
    PHRASE_LOCATION_UNAVAILABLE,
    PHRASE_MENU_REPEAT,
    PHRASE_OPENING_EMERGENCY,
    PHRASE_OPENING_LANGUAGE,
    PHRASE_SERVICE_UNAVAILABLE,
    PHRASE_VOICE_GUIDE_PROMPT,
    PROMPT_DESCRIBE_SCENE,
    PROMPT_FIND_OBJECT,
    PROMPT_IDENTIFY_CURRENCY,
)


@dataclass(frozen=True)
class EmergencyContact:
    name: str | None = None
    phone: str | None = None


class AssistantFeatures:
    """
    Feature scripts for one session.

    camera() returns the latest still (base64 JPEG) or None when the camera
    is unavailable; location() returns the last reported (lat, lon) or None.
    publish() forwards a JSON message to the client.
    """

    def __init__(
        self,
        *,
        coordinator: SpeechCoordinator,
        vision: VisionClient,
        routing: RoutingClient,
        camera: Callable[[], str | None],
        location: Callable[[], LatLon | None],
        publish: Callable[[dict[str, Any]], None],
        language: Language,
        preferences: PreferenceStore | None = None,
        emergency: EmergencyContact | None = None,
        session_id: str = "local",
    ) -> None:
        self._coordinator = coordinator
        self._vision = vision
        self._routing = routing
        self._camera = camera
        self._location = location
        self._publish = publish
        self._preferences = preferences
        self._emergency = emergency or EmergencyContact()
        self._session_id = session_id

        self.language = language
        self.processing = False

    # ------------------------------------------------------------------
    # Vision features
    # ------------------------------------------------------------------

    async def describe_scene(self) -> str | None:
        return await self._analyze(
            PROMPT_DESCRIBE_SCENE,
            cue=PHRASE_ANALYZING_SCENE,
            status="Analyzing scene...",
        )

    async def identify_currency(self) -> str | None:
        return await self._analyze(
            PROMPT_IDENTIFY_CURRENCY,
            cue=PHRASE_ANALYZING_CURRENCY,
            status="Identifying currency...",
        )

    async def find_object(self, name: str) -> str | None:
        name = name.strip()
        if not name:
            await self._coordinator.speak(PHRASE_COMMAND_NOT_RECOGNIZED)
            return None
        return await self._analyze(
            PROMPT_FIND_OBJECT.format(name=name),
            cue=None,
            status=f"Looking for {name}...",
        )

    async def _analyze(self, prompt: str, *, cue: str | None, status: str) -> str | None:
        image = self._camera()
        if image is None:
            await self._coordinator.speak(PHRASE_CAMERA_UNAVAILABLE)
            return None

        self.processing = True
        self._status(status)
        try:
            if cue:
                await self._coordinator.speak(cue)
            text = await self._vision.analyze_scene(image, prompt)
        except httpx.HTTPError as exc:
            log_event({
                "event_type": "VISION_FEATURE_ERROR",
                "session_id": self._session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await self._coordinator.speak(PHRASE_SERVICE_UNAVAILABLE)
            return None
        finally:
            self.processing = False

        self._status(text)
        await self._coordinator.speak(text)
        return text

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def navigate(self, destination: str) -> None:
        destination = destination.strip()
        label = destination or "unknown destination"
        self._status(f"Navigating to {label}")

        if not destination:
            await self._coordinator.speak(f"Navigating to {label}. Path clear.")
            return

        start = self._location()
        if start is None:
            await self._coordinator.speak(PHRASE_LOCATION_UNAVAILABLE)
            return

        end = await self._routing.geocode(destination)
        route = await self._routing.route(start, end) if end is not None else None
        if route is None:
            await self._coordinator.speak(f"Navigating to {label}. Path clear.")
            return

        self._publish({
            "type": "ROUTE",
            "destination": destination,
            "coordinates": [list(point) for point in route.coordinates],
            "distance_m": route.distance_m,
            "duration_s": route.duration_s,
        })
        km = route.distance_m / 1000.0
        minutes = max(1, round(route.duration_s / 60.0))
        await self._coordinator.speak(
            f"Navigating to {label}. {km:.1f} kilometers, about {minutes} minutes walking."
        )

    # ------------------------------------------------------------------
    # Language
    # ------------------------------------------------------------------

    async def cycle_language(self) -> Language:
        """The "Language" control: step to the next language in the catalog."""
        return await self.select_language(next_language(self.language))

    async def select_language(self, language: Language) -> Language:
        """Apply, persist and confirm an explicit user choice."""
        self.language = language
        await self._coordinator.set_language(language.code)
        if self._preferences is not None:
            try:
                self._preferences.save_language(language)
            except OSError as exc:
                log_event({
                    "event_type": "PREFERENCE_SAVE_ERROR",
                    "session_id": self._session_id,
                    "error": str(exc),
                })
        self._status(f"Language set to {language.name}")
        self._publish({"type": "LANGUAGE", "name": language.name, "code": language.code})
        await self._coordinator.speak(language.confirmation)
        return language

    async def choose_language_by_voice(self) -> Language | None:
        """
        Spoken menu: "1 for Hindi ... 0 for more languages".

        Unrecognized answers re-prompt the same page a bounded number of
        times. Returns the chosen language, or None when the user could not
        be heard.
        """
        page = 0
        reprompts = 0
        while True:
            options = menu_page(page, LANGUAGE_MENU_PAGE_SIZE)
            prompt = " ".join(
                ["Say a number."]
                + [f"{index} for {language.name}." for index, language in enumerate(options, 1)]
                + ["0 for more languages."]
            )

            try:
                answer = await self._coordinator.speak_and_listen(prompt)
            except RecognitionUnsupported:
                raise
            except RecognitionError:
                await self._coordinator.speak(PHRASE_COULD_NOT_HEAR)
                return None

            choice = parse_spoken_number(answer)
            if choice == 0:
                page += 1
                reprompts = 0
                continue
            if choice is not None and 1 <= choice <= len(options):
                return await self.select_language(options[choice - 1])

            reprompts += 1
            if reprompts > LANGUAGE_MENU_MAX_REPROMPTS:
                await self._coordinator.speak(PHRASE_COMMAND_NOT_RECOGNIZED)
                return None
            await self._coordinator.speak(PHRASE_MENU_REPEAT)

    # ------------------------------------------------------------------
    # Voice guide
    # ------------------------------------------------------------------

    async def voice_guide(self) -> Intent | None:
        """
        Ask what to do, then dispatch to the matching feature.

        Returns the dispatched intent, or None when nothing was heard.
        """
        await self._coordinator.stop_speaking()
        self._status("Listening for command...")

        try:
            transcript = await self._coordinator.speak_and_listen(PHRASE_VOICE_GUIDE_PROMPT)
        except RecognitionUnsupported:
            raise
        except RecognitionError as exc:
            log_event({
                "event_type": "VOICE_GUIDE_NOT_HEARD",
                "session_id": self._session_id,
                "reason": str(exc),
            })
            await self._coordinator.speak(PHRASE_COULD_NOT_HEAR)
            return None

        command = parse_command(transcript)
        log_event({
            "event_type": "VOICE_COMMAND",
            "session_id": self._session_id,
            "intent": command.intent.value,
            "argument": command.argument,
        })

        if command.intent is Intent.NAVIGATE:
            self._page("navigate")
            await self.navigate(command.argument)
        elif command.intent is Intent.FIND:
            self._page("find")
            await self.find_object(command.argument)
        elif command.intent is Intent.DESCRIBE:
            self._page("describe")
            await self.describe_scene()
        elif command.intent is Intent.CURRENCY:
            self._page("currency")
            await self.identify_currency()
        elif command.intent is Intent.LANGUAGE:
            self._page("language")
            await self._coordinator.speak(PHRASE_OPENING_LANGUAGE)
            await self.choose_language_by_voice()
        elif command.intent is Intent.EMERGENCY:
            self._page("emergency")
            await self._coordinator.speak(PHRASE_OPENING_EMERGENCY)
            await self.emergency_info()
        else:
            await self._coordinator.speak(PHRASE_COMMAND_NOT_RECOGNIZED)

        return command.intent

    # ------------------------------------------------------------------
    # Emergency
    # ------------------------------------------------------------------

    async def emergency_info(self) -> None:
        contact = self._emergency
        if contact.name and contact.phone:
            text = f"Emergency contact: {contact.name}, {contact.phone}."
        elif contact.phone:
            text = f"Emergency number: {contact.phone}."
        else:
            text = "No emergency contact saved."
        self._status(text)
        await self._coordinator.speak(text)

    # ------------------------------------------------------------------
    # Client notifications
    # ------------------------------------------------------------------

    def _status(self, text: str) -> None:
        self._publish({"type": "STATUS", "text": text})

    def _page(self, page: str) -> None:
        self._publish({"type": "PAGE", "page": page})
