"""
CONSTANTS
---------
Single source of truth for all behavioral tuning in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Voice Activity Detection
# =============================================================================

# Level at or below which audio counts as silence (dBFS).
VAD_SILENCE_THRESHOLD_DB: Final[float] = -40.0

# Continuous sub-threshold time required to confirm end of speech.
VAD_SILENCE_DEBOUNCE_MS: Final[int] = 1500

# Speech shorter than this is discarded instead of processed.
VAD_MIN_UTTERANCE_MS: Final[int] = 500

# Level polling cadence while listening / recording.
VAD_SAMPLE_INTERVAL_MS: Final[int] = 100

# Nominal level range reported by capture devices.
LEVEL_FLOOR_DB: Final[float] = -160.0
LEVEL_CEILING_DB: Final[float] = 0.0

# =============================================================================
# Audio capture / playback
# =============================================================================

CAPTURE_SAMPLE_RATE_HZ: Final[int] = 44_100
CAPTURE_CHANNELS: Final[int] = 1
CAPTURE_FILE_PREFIX: Final[str] = "voicesession_"
CAPTURE_FILE_SUFFIX: Final[str] = ".wav"

PLAYBACK_POLL_INTERVAL_MS: Final[int] = 100
SPEECH_FILE_PREFIX: Final[str] = "voicesession_reply_"

# =============================================================================
# Transcription (OpenAI Whisper)
# =============================================================================

TRANSCRIPTION_MODEL: Final[str] = "whisper-1"
TRANSCRIPTION_UPLOAD_NAME: Final[str] = "audio.wav"

# =============================================================================
# Chat backend (OpenClaw gateway, OpenAI-compatible)
# =============================================================================

OPENCLAW_DEFAULT_URL: Final[str] = "http://127.0.0.1:18789"
OPENCLAW_MODEL: Final[str] = "openclaw"
OPENCLAW_AGENT_HEADER: Final[str] = "x-openclaw-agent-id"
OPENCLAW_AGENT_ID: Final[str] = "main"
OPENCLAW_CONFIG_RELATIVE_PATH: Final[str] = ".openclaw/openclaw.json"
OPENCLAW_WHISPER_SKILL: Final[str] = "openai-whisper-api"

# =============================================================================
# Speech synthesis
# =============================================================================

SYNTHESIS_MODEL: Final[str] = "tts-1"
SYNTHESIS_VOICE: Final[str] = "nova"
SYNTHESIS_FORMAT: Final[str] = "wav"

# Words per minute for the local fallback synthesizer.
LOCAL_SYNTHESIS_RATE_WPM: Final[int] = 180

# =============================================================================
# Network
# =============================================================================

HTTP_TIMEOUT_S: Final[float] = 60.0

# =============================================================================
# Snapshot fan-out
# =============================================================================

SNAPSHOT_SUBSCRIBER_QUEUE_MAX: Final[int] = 64
