import os

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = "dlingo"
    DEBUG: bool = _env_bool("DLINGO_DEBUG", False)
    LOG_DIR: str = os.environ.get("DLINGO_LOG_DIR", "log")
    LOG_FILE: str = "dlingo.log"
    CONTENT_DIR: str = os.environ.get(
        "DLINGO_CONTENT_DIR", os.path.join(PACKAGE_DIR, "content")
    )
    TEMPLATES_DIR: str = os.path.join(PACKAGE_DIR, "templates")
    STATIC_DIR: str = os.path.join(PACKAGE_DIR, "static")
    ROOT_PATH: str = os.environ.get("ROOT_PATH", "")
    HOST: str = os.environ.get("DLINGO_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("DLINGO_PORT", "8000"))

    # Pronunciation
    SPEECH_ENABLED: bool = _env_bool("DLINGO_SPEECH_ENABLED", True)
    SPEECH_LANGUAGE: str = os.environ.get("DLINGO_SPEECH_LANGUAGE", "de-DE")
    SPEECH_RATE: float = float(os.environ.get("DLINGO_SPEECH_RATE", "0.7"))
    SPEECH_PITCH: float = 1.0
    SPEECH_VOLUME: float = 1.0
    MAX_SPEECH_TEXT: int = 200


settings = Settings()
