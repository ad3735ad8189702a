"""Runtime configuration read from the environment (and ``.env``)."""

import os
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel

from delta.errors import ConfigurationError


def _number(name: str, default: str, cast: Callable[[str], Any]) -> Any:
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


class Settings(BaseModel):
    """Delta settings.

    Build with :meth:`from_env`; tests construct it directly.
    """

    github_token: Optional[str] = None
    openai_api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    max_tokens: int = 4000
    temperature: float = 0.8
    llm_timeout: float = 60.0
    commit_limit: int = 20
    database_path: Path = Path("./data/delta.db")
    public_base_url: str = "http://localhost:3000"
    webhook_secret: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Collect settings from environment variables.

        ``.env`` is loaded by the CLI entry point before this runs.

        Raises:
            ConfigurationError: a numeric setting is not a number.
        """
        env = os.environ
        log_file = env.get("DELTA_LOG_FILE")
        return cls(
            github_token=env.get("GITHUB_TOKEN") or env.get("GH_TOKEN") or None,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            model=env.get("DELTA_MODEL", "gpt-4o-mini"),
            max_tokens=_number("DELTA_MAX_TOKENS", "4000", int),
            temperature=_number("DELTA_TEMPERATURE", "0.8", float),
            llm_timeout=_number("DELTA_LLM_TIMEOUT", "60", float),
            commit_limit=_number("DELTA_COMMIT_LIMIT", "20", int),
            database_path=Path(env.get("DELTA_DATABASE_PATH", "./data/delta.db")),
            public_base_url=env.get("DELTA_PUBLIC_URL", "http://localhost:3000"),
            webhook_secret=env.get("GITHUB_WEBHOOK_SECRET") or None,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file) if log_file else None,
        )

    def public_url(self, slug: str) -> str:
        """Public address of a published changelog."""
        return f"{self.public_base_url.rstrip('/')}/changelog/{slug}"
