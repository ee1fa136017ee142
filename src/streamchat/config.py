"""Runtime configuration.

Hides where settings come from (environment, ``.env`` file) from the
modules that consume them.
"""

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4"
DEFAULT_DB_PATH = "~/.streamchat/streamchat.db"
TRANSCRIPT_KEY = "chat_history"


class Settings(BaseModel):
    """Settings for the completion client, transcript store and logging."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["http", "sse", "openai"] = Field(default="http", description="Completion client")
    api_key: str = Field(default="", description="Static bearer credential")
    model: str = Field(default=DEFAULT_MODEL)
    base_url: str = Field(default=DEFAULT_BASE_URL)
    store: Literal["sqlite", "memory"] = Field(default="sqlite", description="Transcript store")
    db_path: Path = Field(default=Path(DEFAULT_DB_PATH))
    transcript_key: str = Field(default=TRANSCRIPT_KEY)
    error_policy: Literal["keep_partial", "rollback"] = Field(
        default="keep_partial",
        description="What happens to partial text when a stream fails"
    )
    log_level: str = Field(default="WARNING")
    log_file: Path | None = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables.

        Environment variables:
            STREAMCHAT_PROVIDER: http (default) or openai
            OPENAI_API_KEY: API key sent as bearer token
            STREAMCHAT_MODEL: Model name (default: gpt-4)
            STREAMCHAT_BASE_URL: API base URL (default: https://api.openai.com/v1)
            STREAMCHAT_STORE: sqlite (default) or memory
            STREAMCHAT_DB_PATH: SQLite file (default: ~/.streamchat/streamchat.db)
            STREAMCHAT_ERROR_POLICY: keep_partial (default) or rollback
            STREAMCHAT_LOG_LEVEL: debug/info/warning/error (default: warning)
            STREAMCHAT_LOG_FILE: Optional log file path

        Raises:
            pydantic.ValidationError: If a variable has an unsupported value
        """
        if dotenv:
            load_dotenv()

        log_file = os.getenv("STREAMCHAT_LOG_FILE")
        return cls(
            provider=os.getenv("STREAMCHAT_PROVIDER", "http").lower(),
            api_key=os.getenv("OPENAI_API_KEY", ""),
            model=os.getenv("STREAMCHAT_MODEL", DEFAULT_MODEL),
            base_url=os.getenv("STREAMCHAT_BASE_URL", DEFAULT_BASE_URL),
            store=os.getenv("STREAMCHAT_STORE", "sqlite").lower(),
            db_path=Path(os.getenv("STREAMCHAT_DB_PATH", DEFAULT_DB_PATH)).expanduser(),
            error_policy=os.getenv("STREAMCHAT_ERROR_POLICY", "keep_partial").lower(),
            log_level=os.getenv("STREAMCHAT_LOG_LEVEL", "WARNING").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )
