import asyncio

import pytest

from dlingo import speech
from dlingo.errors import SpeechUnavailableError
from dlingo.models import SpeechOptions, SpeechStatus, Voice
from dlingo.speech import EdgeSpeechBackend, Pronouncer, VoiceRegistry

OPTIONS = SpeechOptions(language="de-DE", rate=0.7)


def _pronouncer(backend, voices=None):
    registry = VoiceRegistry(backend, "de-DE")
    if voices is not None:
        registry.voices = voices
    return Pronouncer(registry, OPTIONS)


def test_target_voice_heuristics() -> None:
    assert speech.is_target_voice(Voice(name="x", locale="de-AT"), "de-DE")
    assert speech.is_target_voice(Voice(name="x", locale="en-DE"), "de-DE")
    assert speech.is_target_voice(Voice(name="Google Deutsch", locale=""), "de-DE")
    assert speech.is_target_voice(
        Voice(name="x", locale="", friendly_name="Microsoft Katja - German (Germany)"), "de-DE"
    )
    assert not speech.is_target_voice(Voice(name="en-US-AriaNeural", locale="en-US"), "de-DE")


def test_pick_voice_prefers_female() -> None:
    male = Voice(name="de-DE-ConradNeural", locale="de-DE", gender="Male")
    female = Voice(name="de-DE-KatjaNeural", locale="de-DE", gender="Female")
    petra = Voice(name="Petra", locale="de-DE")
    assert speech.pick_voice([male, female]) == female
    assert speech.pick_voice([male, petra]) == petra
    assert speech.pick_voice([male]) == male
    assert speech.pick_voice([]) is None


def test_pick_voice_prefers_exact_locale(backend_factory) -> None:
    ingrid = Voice(name="de-AT-IngridNeural", locale="de-AT", gender="Female")
    conrad = Voice(name="de-DE-ConradNeural", locale="de-DE", gender="Male")
    katja = Voice(name="de-DE-KatjaNeural", locale="de-DE", gender="Female")
    assert speech.pick_voice([ingrid, conrad, katja], "de-DE") == katja
    assert speech.pick_voice([ingrid, conrad], "de-DE") == conrad
    assert speech.pick_voice([ingrid, conrad], "de-CH") == ingrid

    pronouncer = _pronouncer(backend_factory(), voices=[ingrid, conrad, katja])
    assert pronouncer.registry.status()["voice"] == "de-DE-KatjaNeural"
    outcome = asyncio.run(pronouncer.speak("Hallo"))
    assert outcome.voice == "de-DE-KatjaNeural"


def test_registry_keeps_only_target_language(backend_factory) -> None:
    registry = VoiceRegistry(backend_factory(), "de-DE")
    voices = asyncio.run(registry.refresh())
    assert [v.name for v in voices] == ["de-DE-ConradNeural", "de-DE-KatjaNeural"]
    assert registry.loaded is True
    assert registry.status()["voice"] == "de-DE-KatjaNeural"


def test_registry_listing_failure_is_not_fatal(backend_factory) -> None:
    registry = VoiceRegistry(backend_factory(fail_listing=True), "de-DE")
    assert asyncio.run(registry.refresh()) == []
    status = registry.status()
    assert status["available"] is True
    assert status["voice"] is None
    assert "default voice" in status["message"]


def test_registry_start_runs_discovery_in_background(backend_factory) -> None:
    registry = VoiceRegistry(backend_factory(), "de-DE")

    async def scenario():
        task = registry.start()
        await task
        await registry.stop()

    asyncio.run(scenario())
    assert len(registry.voices) == 2


def test_registry_without_backend() -> None:
    registry = VoiceRegistry(None, "de-DE")
    assert asyncio.run(registry.refresh()) == []
    assert registry.status()["available"] is False


def test_speak_uses_preferred_voice(backend_factory) -> None:
    backend = backend_factory()
    pronouncer = _pronouncer(backend, voices=backend.voices[:2])
    outcome = asyncio.run(pronouncer.speak("Guten Morgen"))
    assert outcome.status == SpeechStatus.PLAYED
    assert outcome.voice == "de-DE-KatjaNeural"
    assert outcome.audio == b"audio:Guten Morgen:de-DE-KatjaNeural"
    assert backend.spoken == [("Guten Morgen", "de-DE-KatjaNeural")]


def test_speak_without_voices_uses_default(backend_factory) -> None:
    backend = backend_factory()
    outcome = asyncio.run(_pronouncer(backend, voices=[]).speak("Hallo"))
    assert outcome.status == SpeechStatus.PLAYED
    assert outcome.voice is None
    assert backend.spoken == [("Hallo", None)]


def test_voice_failure_retries_once_with_default(backend_factory) -> None:
    backend = backend_factory(failing_voices=["de-DE-KatjaNeural"])
    pronouncer = _pronouncer(backend, voices=backend.voices[:2])
    outcome = asyncio.run(pronouncer.speak("Danke"))
    assert outcome.status == SpeechStatus.FALLBACK
    assert outcome.voice is None
    assert backend.spoken == [("Danke", "de-DE-KatjaNeural"), ("Danke", None)]


def test_no_further_fallback_after_default_fails(backend_factory) -> None:
    backend = backend_factory(failing_voices=["de-DE-KatjaNeural"], fail_default=True)
    pronouncer = _pronouncer(backend, voices=backend.voices[:2])
    outcome = asyncio.run(pronouncer.speak("Danke"))
    assert outcome.status == SpeechStatus.UNAVAILABLE
    assert outcome.notice == speech.UNSUPPORTED_NOTICE
    assert len(backend.spoken) == 2


def test_default_voice_failure_is_not_retried(backend_factory) -> None:
    backend = backend_factory(fail_default=True)
    outcome = asyncio.run(_pronouncer(backend, voices=[]).speak("Danke"))
    assert outcome.status == SpeechStatus.UNAVAILABLE
    assert len(backend.spoken) == 1


def test_missing_capability_gives_notice() -> None:
    outcome = asyncio.run(_pronouncer(None).speak("Hallo"))
    assert outcome.status == SpeechStatus.UNAVAILABLE
    assert outcome.notice
    assert outcome.audio == b""


def test_overlapping_requests_are_independent(backend_factory) -> None:
    backend = backend_factory()
    pronouncer = _pronouncer(backend, voices=[])

    async def scenario():
        return await asyncio.gather(pronouncer.speak("eins"), pronouncer.speak("zwei"))

    first, second = asyncio.run(scenario())
    assert first.status == second.status == SpeechStatus.PLAYED
    assert sorted(text for text, _ in backend.spoken) == ["eins", "zwei"]


class _FakeCommunicate:
    created = []

    def __init__(self, text, **kwargs):
        self.text = text
        self.kwargs = kwargs
        _FakeCommunicate.created.append(self)

    async def stream(self):
        yield {"type": "WordBoundary", "offset": 0}
        if self.text:
            yield {"type": "audio", "data": b"ab"}
            yield {"type": "audio", "data": b"cd"}


def test_edge_backend_speak(monkeypatch) -> None:
    _FakeCommunicate.created = []
    monkeypatch.setattr(speech.edge_tts, "Communicate", _FakeCommunicate)
    backend = EdgeSpeechBackend()

    audio = asyncio.run(backend.speak("Hallo", OPTIONS.model_copy(update={"voice": "de-DE-KatjaNeural"})))
    assert audio == b"abcd"
    kwargs = _FakeCommunicate.created[0].kwargs
    assert kwargs == {"rate": "-30%", "volume": "+0%", "pitch": "+0Hz", "voice": "de-DE-KatjaNeural"}

    asyncio.run(backend.speak("Hallo", OPTIONS))
    assert "voice" not in _FakeCommunicate.created[1].kwargs


def test_edge_backend_without_audio_raises(monkeypatch) -> None:
    monkeypatch.setattr(speech.edge_tts, "Communicate", _FakeCommunicate)
    with pytest.raises(SpeechUnavailableError):
        asyncio.run(EdgeSpeechBackend().speak("", OPTIONS))


def test_edge_backend_lists_voices(monkeypatch) -> None:
    async def fake_list_voices():
        return [
            {
                "Name": "Microsoft Server Speech Text to Speech Voice (de-DE, KatjaNeural)",
                "ShortName": "de-DE-KatjaNeural",
                "Gender": "Female",
                "Locale": "de-DE",
                "FriendlyName": "Microsoft Katja Online (Natural) - German (Germany)",
            }
        ]

    monkeypatch.setattr(speech.edge_tts, "list_voices", fake_list_voices)
    (voice,) = asyncio.run(EdgeSpeechBackend().list_voices())
    assert voice.name == "de-DE-KatjaNeural"
    assert voice.locale == "de-DE"
    assert voice.gender == "Female"
