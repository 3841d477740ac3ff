"""Runtime settings read from the environment."""

import logging
import os
from dataclasses import dataclass

from gmail_tts.constants import (
    AUDIO_DIR,
    CHUNK_SYNTH_TIMEOUT,
    LEDGER_PATH,
    OPENAI_KEY_FILENAME,
    SECRETS_DIR,
    TEXT_DIR,
    TOKEN_FILENAME,
    TTS_PROVIDERS,
)
from gmail_tts.errors import ValidationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("", "0", "false", "no", "off")


@dataclass(frozen=True)
class Config:
    openai_api_key: str = ""
    secrets_dir: str = SECRETS_DIR
    gmail_token: str = os.path.join(SECRETS_DIR, TOKEN_FILENAME)
    audio_dir: str = AUDIO_DIR
    text_dir: str = TEXT_DIR
    ledger_path: str = LEDGER_PATH
    gmail_query: str = ""
    tts_provider: str = "openai"
    tts_voice: str = ""
    tts_chunk_timeout: float = CHUNK_SYNTH_TIMEOUT
    drive_upload_enabled: bool = False
    drive_folder_id: str = ""


def read_openai_key(environ, secrets_dir: str) -> str:
    """OPENAI_API_KEY, else the first line of <secrets_dir>/openai_api_key.txt."""
    key = environ.get("OPENAI_API_KEY", "").strip()
    if key:
        return key
    path = os.path.join(secrets_dir, OPENAI_KEY_FILENAME)
    if not os.path.exists(path):
        return ""
    try:
        with open(path, encoding="utf-8") as f:
            return f.read().strip()
    except (OSError, UnicodeDecodeError) as e:
        raise ValidationError(f"Cannot read OpenAI key file {path}: {e}") from e


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValidationError(f"{name} must be true or false, got {raw!r}")


def _parse_timeout(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {raw!r}")
    return value


def load_config(environ=None) -> Config:
    """Build a Config from environ (defaults to os.environ)."""
    env = os.environ if environ is None else environ

    secrets_dir = env.get("SECRETS_DIR", "").strip() or SECRETS_DIR
    provider = env.get("TTS_PROVIDER", "openai").strip().lower() or "openai"
    if provider not in TTS_PROVIDERS:
        raise ValidationError(f"TTS_PROVIDER must be one of {TTS_PROVIDERS}, got {provider!r}")

    timeout_raw = env.get("TTS_CHUNK_TIMEOUT", "").strip()
    timeout = _parse_timeout("TTS_CHUNK_TIMEOUT", timeout_raw) if timeout_raw else CHUNK_SYNTH_TIMEOUT

    config = Config(
        openai_api_key=read_openai_key(env, secrets_dir),
        secrets_dir=secrets_dir,
        gmail_token=env.get("GMAIL_TOKEN", "").strip() or os.path.join(secrets_dir, TOKEN_FILENAME),
        audio_dir=env.get("AUDIO_DIR", "").strip() or AUDIO_DIR,
        text_dir=env.get("TEXT_DIR", "").strip() or TEXT_DIR,
        ledger_path=env.get("LEDGER_PATH", "").strip() or LEDGER_PATH,
        gmail_query=env.get("GMAIL_QUERY", "").strip(),
        tts_provider=provider,
        tts_voice=env.get("TTS_VOICE", "").strip(),
        tts_chunk_timeout=timeout,
        drive_upload_enabled=_parse_bool("DRIVE_UPLOAD_ENABLED", env.get("DRIVE_UPLOAD_ENABLED", "")),
        drive_folder_id=env.get("DRIVE_FOLDER_ID", "").strip(),
    )
    logger.debug("Loaded config: provider=%s audio_dir=%s", config.tts_provider, config.audio_dir)
    return config
