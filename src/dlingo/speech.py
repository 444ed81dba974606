import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import edge_tts

from .errors import SpeechUnavailableError
from .models import SpeechOptions, SpeechOutcome, SpeechStatus, Voice

logger = logging.getLogger(__name__)

# Prefer female voices for pronunciation clarity
FEMALE_VOICE_HINTS = (
    "female",
    "anna",
    "petra",
    "gisela",
    "hedda",
    "katrin",
    "katja",
    "amala",
    "seraphina",
)
LANGUAGE_NAME_HINTS = ("german", "deutsch")

UNSUPPORTED_NOTICE = (
    "Audio pronunciation is not available right now. "
    "Browsing and exercises still work."
)


class SpeechBackend(ABC):
    """
    Host text-to-speech capability: voice enumeration and synthesis.
    """

    @abstractmethod
    async def list_voices(self) -> List[Voice]:
        pass

    @abstractmethod
    async def speak(self, text: str, options: SpeechOptions) -> bytes:
        """
        Synthesize text and return the encoded audio.

        A missing ``options.voice`` means the backend's default voice.
        Raises on any failure; callers decide how to degrade.
        """
        pass


def _percent(factor: float) -> str:
    return f"{round((factor - 1.0) * 100):+d}%"


def _hertz(factor: float) -> str:
    return f"{round((factor - 1.0) * 100):+d}Hz"


class EdgeSpeechBackend(SpeechBackend):
    """
    Speech backend using Microsoft Edge TTS (edge-tts library).
    """

    async def list_voices(self) -> List[Voice]:
        raw_voices: List[Dict[str, str]] = await edge_tts.list_voices()
        return [
            Voice(
                name=item.get("ShortName") or item.get("Name", ""),
                locale=item.get("Locale", ""),
                gender=item.get("Gender", ""),
                friendly_name=item.get("FriendlyName", ""),
            )
            for item in raw_voices
        ]

    async def speak(self, text: str, options: SpeechOptions) -> bytes:
        kwargs = {
            "rate": _percent(options.rate),
            "volume": _percent(options.volume),
            "pitch": _hertz(options.pitch),
        }
        if options.voice:
            kwargs["voice"] = options.voice
        communicate = edge_tts.Communicate(text, **kwargs)

        audio = bytearray()
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                audio.extend(chunk["data"])
        if not audio:
            raise SpeechUnavailableError(f"No audio received for {text!r}")
        return bytes(audio)


def is_target_voice(voice: Voice, language: str) -> bool:
    prefix, _, region = language.partition("-")
    name = f"{voice.name} {voice.friendly_name}".lower()
    return (
        voice.locale.lower().startswith(prefix.lower())
        or (bool(region) and region.upper() in voice.locale)
        or any(hint in name for hint in LANGUAGE_NAME_HINTS)
    )


def _is_female(voice: Voice) -> bool:
    name = f"{voice.name} {voice.friendly_name}".lower()
    return voice.gender.lower() == "female" or any(
        hint in name for hint in FEMALE_VOICE_HINTS
    )


def pick_voice(voices: List[Voice], language: Optional[str] = None) -> Optional[Voice]:
    """Exact locale first (female preferred), then any female voice, then the first."""
    if not voices:
        return None
    if language:
        exact = [v for v in voices if v.locale.lower() == language.lower()]
        if exact:
            return next((v for v in exact if _is_female(v)), exact[0])
    return next((v for v in voices if _is_female(v)), voices[0])


class VoiceRegistry:
    """Voices of the target language, discovered from the backend."""

    def __init__(self, backend: Optional[SpeechBackend], language: str):
        self.backend = backend
        self.language = language
        self.voices: List[Voice] = []
        self.loaded = False
        self._task: Optional[asyncio.Task] = None

    @property
    def available(self) -> bool:
        return self.backend is not None

    async def refresh(self) -> List[Voice]:
        if self.backend is None:
            return []
        try:
            voices = await self.backend.list_voices()
        except Exception as e:
            logger.warning(f"Voice discovery failed: {e}")
            voices = []
        self.voices = [v for v in voices if is_target_voice(v, self.language)]
        self.loaded = True
        logger.info(f"Found {len(self.voices)} {self.language} voices")
        return self.voices

    def start(self) -> asyncio.Task:
        """Schedule discovery without waiting for it."""
        self._task = asyncio.create_task(self.refresh())
        return self._task

    async def stop(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    def status(self) -> Dict[str, object]:
        """Footer line about pronunciation support."""
        if not self.available:
            return {"available": False, "voice": None, "message": UNSUPPORTED_NOTICE}
        voice = pick_voice(self.voices, self.language)
        if voice is None:
            return {
                "available": True,
                "voice": None,
                "message": "No German voice detected. Audio will use the default voice.",
            }
        return {
            "available": True,
            "voice": voice.name,
            "message": f"German voice available: {voice.friendly_name or voice.name}",
        }


class Pronouncer:
    """Plays German text, degrading to the default voice on failure."""

    def __init__(self, registry: VoiceRegistry, options: SpeechOptions):
        self.registry = registry
        self.options = options

    async def speak(self, text: str) -> SpeechOutcome:
        backend = self.registry.backend
        if backend is None:
            logger.info("Speech requested but no speech capability is configured")
            return SpeechOutcome(
                status=SpeechStatus.UNAVAILABLE, notice=UNSUPPORTED_NOTICE
            )

        voice = pick_voice(self.registry.voices, self.registry.language)
        options = self.options.model_copy(
            update={"voice": voice.name if voice else None}
        )
        try:
            audio = await backend.speak(text, options)
            return SpeechOutcome(
                status=SpeechStatus.PLAYED, voice=options.voice, audio=audio
            )
        except Exception as e:
            logger.warning(f"Speech synthesis error (voice={options.voice}): {e}")
            if options.voice is None:
                return SpeechOutcome(
                    status=SpeechStatus.UNAVAILABLE, notice=UNSUPPORTED_NOTICE
                )

        # Retry once without a specific voice
        try:
            audio = await backend.speak(text, options.model_copy(update={"voice": None}))
        except Exception as e:
            logger.error(f"Speech synthesis failed with default voice: {e}")
            return SpeechOutcome(
                status=SpeechStatus.UNAVAILABLE, notice=UNSUPPORTED_NOTICE
            )
        return SpeechOutcome(status=SpeechStatus.FALLBACK, voice=None, audio=audio)
