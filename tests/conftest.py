from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Settings read the environment at import time
os.environ.setdefault("DLINGO_LOG_DIR", tempfile.mkdtemp(prefix="dlingo-log-"))

from fastapi.testclient import TestClient  # noqa: E402

from dlingo.app import create_app  # noqa: E402
from dlingo.catalog import ContentCatalog  # noqa: E402
from dlingo.config import settings  # noqa: E402
from dlingo.models import SpeechOptions, Voice  # noqa: E402
from dlingo.speech import SpeechBackend  # noqa: E402

GERMAN_VOICES = [
    Voice(name="de-DE-ConradNeural", locale="de-DE", gender="Male"),
    Voice(name="de-DE-KatjaNeural", locale="de-DE", gender="Female"),
]
OTHER_VOICES = [
    Voice(name="en-US-AriaNeural", locale="en-US", gender="Female"),
    Voice(name="ar-EG-SalmaNeural", locale="ar-EG", gender="Female"),
]


class FakeSpeechBackend(SpeechBackend):
    """In-memory speech capability recording every request."""

    def __init__(
        self,
        voices: Optional[List[Voice]] = None,
        failing_voices: Optional[List[str]] = None,
        fail_default: bool = False,
        fail_listing: bool = False,
    ):
        self.voices = list(GERMAN_VOICES + OTHER_VOICES if voices is None else voices)
        self.failing_voices = set(failing_voices or [])
        self.fail_default = fail_default
        self.fail_listing = fail_listing
        self.spoken: List[tuple] = []

    async def list_voices(self) -> List[Voice]:
        if self.fail_listing:
            raise ConnectionError("voice service unreachable")
        return list(self.voices)

    async def speak(self, text: str, options: SpeechOptions) -> bytes:
        self.spoken.append((text, options.voice))
        if options.voice in self.failing_voices:
            raise RuntimeError(f"voice {options.voice} failed")
        if options.voice is None and self.fail_default:
            raise RuntimeError("default voice failed")
        return f"audio:{text}:{options.voice}".encode("utf-8")


@pytest.fixture(scope="session")
def catalog() -> ContentCatalog:
    loaded = ContentCatalog(settings.CONTENT_DIR)
    loaded.load_all()
    return loaded


@pytest.fixture
def topics(catalog):
    return catalog.get_topics()


@pytest.fixture
def fake_backend() -> FakeSpeechBackend:
    return FakeSpeechBackend()


@pytest.fixture
def client(fake_backend) -> Iterator[TestClient]:
    app = create_app(speech_backend=fake_backend)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def backend_factory():
    return FakeSpeechBackend
