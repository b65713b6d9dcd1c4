"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables and the OpenClaw config file
- Provide typed, immutable config objects

Non-responsibilities:
- No orchestration logic
- No protocol constants
- No runtime mutation

Credential absence is never fatal here: a missing credential fails only the
pipeline stage that needs it, when that stage is reached.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from audio.vad import VadConfig
from constants import (
    OPENCLAW_CONFIG_RELATIVE_PATH,
    OPENCLAW_DEFAULT_URL,
    OPENCLAW_WHISPER_SKILL,
    VAD_MIN_UTTERANCE_MS,
    VAD_SAMPLE_INTERVAL_MS,
    VAD_SILENCE_DEBOUNCE_MS,
    VAD_SILENCE_THRESHOLD_DB,
)
from observability.logger import log_event
from orchestrator.enums.mode import ListenMode


# ------------------------------------------------------------------
# Credentials
# ------------------------------------------------------------------

@dataclass(frozen=True)
class Credentials:
    """
    Immutable per-process credentials.

    Any field may be None; the dependent stage reports
    CONFIGURATION_MISSING when reached.
    """

    transcription_key: str | None = None
    chat_token: str | None = None
    synthesis_key: str | None = None


def _dig(data: Mapping[str, Any], *keys: str) -> Any:
    node: Any = data
    for key in keys:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def load_openclaw_file(path: Path) -> dict[str, Any]:
    """
    Read the OpenClaw JSON config.

    Returns an empty dict (and logs) if the file is missing or malformed.
    """
    try:
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw)
    except FileNotFoundError:
        log_event({
            "event_type": "CONFIG_WARNING",
            "reason": "openclaw_config_missing",
            "path": path,
        })
        return {}
    except (OSError, ValueError) as exc:
        log_event({
            "event_type": "CONFIG_WARNING",
            "reason": "openclaw_config_unreadable",
            "path": path,
            "error": f"{type(exc).__name__}: {exc}",
        })
        return {}

    if not isinstance(data, dict):
        log_event({
            "event_type": "CONFIG_WARNING",
            "reason": "openclaw_config_not_an_object",
            "path": path,
        })
        return {}
    return data


def credentials_from_openclaw(data: Mapping[str, Any]) -> Credentials:
    """
    Extract credentials from an OpenClaw config document.

    The Whisper skill key doubles as the speech synthesis key.
    """
    token = _str_or_none(_dig(data, "gateway", "auth", "token"))
    whisper_key = _str_or_none(
        _dig(data, "skills", "entries", OPENCLAW_WHISPER_SKILL, "apiKey")
    )
    return Credentials(
        transcription_key=whisper_key,
        chat_token=token,
        synthesis_key=whisper_key,
    )


# ------------------------------------------------------------------
# Application config
# ------------------------------------------------------------------

@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to gateway/session bootstrap code.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Chat backend
    # ------------------------------------------------------------------

    openclaw_url: str = OPENCLAW_DEFAULT_URL

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    credentials: Credentials = field(default_factory=Credentials)

    # ------------------------------------------------------------------
    # Session behavior
    # ------------------------------------------------------------------

    listen_mode: ListenMode = ListenMode.PUSH_TO_TALK
    vad: VadConfig = field(default_factory=VadConfig)

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env(environ: Mapping[str, str] | None = None) -> AppConfig:
        """
        Load configuration from environment variables and the OpenClaw file.

        Environment variables override file credentials.

        Raises:
            ValueError if a numeric or enum variable cannot be parsed.
        """
        env = os.environ if environ is None else environ

        config_path = Path(
            env.get(
                "OPENCLAW_CONFIG_PATH",
                str(Path.home() / OPENCLAW_CONFIG_RELATIVE_PATH),
            )
        ).expanduser()
        file_creds = credentials_from_openclaw(load_openclaw_file(config_path))

        transcription_key = _str_or_none(env.get("OPENAI_API_KEY")) or file_creds.transcription_key
        credentials = Credentials(
            transcription_key=transcription_key,
            chat_token=_str_or_none(env.get("OPENCLAW_TOKEN")) or file_creds.chat_token,
            synthesis_key=(
                _str_or_none(env.get("SYNTHESIS_API_KEY"))
                or _str_or_none(env.get("OPENAI_API_KEY"))
                or file_creds.synthesis_key
            ),
        )

        return AppConfig(
            log_level=env.get("LOG_LEVEL", "INFO"),
            enable_json_logs=env.get("ENABLE_JSON_LOGS", "1") == "1",
            openclaw_url=env.get("OPENCLAW_URL", OPENCLAW_DEFAULT_URL).rstrip("/"),
            credentials=credentials,
            listen_mode=ListenMode(env.get("LISTEN_MODE", ListenMode.PUSH_TO_TALK.value)),
            vad=VadConfig(
                silence_threshold_db=float(
                    env.get("VAD_SILENCE_THRESHOLD_DB", VAD_SILENCE_THRESHOLD_DB)
                ),
                silence_debounce_ms=int(
                    env.get("VAD_SILENCE_DEBOUNCE_MS", VAD_SILENCE_DEBOUNCE_MS)
                ),
                min_utterance_ms=int(
                    env.get("VAD_MIN_UTTERANCE_MS", VAD_MIN_UTTERANCE_MS)
                ),
                sample_interval_ms=int(
                    env.get("VAD_SAMPLE_INTERVAL_MS", VAD_SAMPLE_INTERVAL_MS)
                ),
            ),
        )
