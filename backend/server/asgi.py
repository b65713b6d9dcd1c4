"""
ASGI entry point for `uvicorn server.asgi:app`.

.env is loaded before the config is read, so OPENAI_API_KEY and the
OpenClaw overrides may live there instead of the shell environment.
"""

from dotenv import load_dotenv

load_dotenv()

# pylint: disable=wrong-import-position
from config import AppConfig
from server.app import create_app

app = create_app(AppConfig.load_from_env())
