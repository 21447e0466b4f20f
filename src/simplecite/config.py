"""Runtime configuration for the resolution pipeline.

Settings are read from ``SIMPLECITE_*`` environment variables (a ``.env`` file
is honoured). Nothing is read at import time: :class:`LazySettings` starts out
unloaded and populates itself on first use.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .fetching import DEFAULT_USER_AGENT

DEFAULT_PROXY_URL = "https://anything.rhenrywarren.workers.dev/"
DEFAULT_READER_MIRRORS = [
    "https://r.jina.ai/{url}",
    "https://r.jina.ai/https://anything.rhenrywarren.workers.dev/?url={encoded}",
    "https://r.jina.ai/http://anything.rhenrywarren.workers.dev/?url={encoded}",
]
DEFAULT_TEXT_ENDPOINT = "https://text.pollinations.ai"


class Settings(BaseModel):
    proxy_url: str = DEFAULT_PROXY_URL
    reader_mirrors: List[str] = Field(default_factory=lambda: list(DEFAULT_READER_MIRRORS))
    text_endpoint: str = DEFAULT_TEXT_ENDPOINT
    text_model: str = "openai-fast"
    text_api_key: str = ""
    request_timeout: float = 10.0
    chunk_size: int = Field(4999, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    database_path: Path = Path("data/simplecite.db")

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        values = {}
        env_map = {
            "proxy_url": "SIMPLECITE_PROXY_URL",
            "text_endpoint": "SIMPLECITE_TEXT_ENDPOINT",
            "text_model": "SIMPLECITE_TEXT_MODEL",
            "text_api_key": "SIMPLECITE_TEXT_API_KEY",
            "request_timeout": "SIMPLECITE_TIMEOUT",
            "chunk_size": "SIMPLECITE_CHUNK_SIZE",
            "user_agent": "SIMPLECITE_USER_AGENT",
            "database_path": "SIMPLECITE_DB",
        }
        for field_name, env_name in env_map.items():
            raw = os.getenv(env_name)
            if raw:
                values[field_name] = raw
        mirrors = os.getenv("SIMPLECITE_READER_MIRRORS")
        if mirrors:
            values["reader_mirrors"] = [item.strip() for item in mirrors.split(",") if item.strip()]
        return cls(**values)


class LazySettings:
    """Owns the process settings; ``loaded`` is False until first access."""

    def __init__(self, loader: Callable[[], Settings] = Settings.from_env) -> None:
        self._loader = loader
        self._settings: Optional[Settings] = None

    @property
    def loaded(self) -> bool:
        return self._settings is not None

    def get(self) -> Settings:
        if self._settings is None:
            self._settings = self._loader()
        return self._settings

    def override(self, settings: Settings) -> None:
        self._settings = settings

    def reset(self) -> None:
        self._settings = None


settings = LazySettings()


def get_settings() -> Settings:
    return settings.get()


__all__ = ["Settings", "LazySettings", "settings", "get_settings"]
