import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import FatalJobError

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR = "logs"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_env(env_path: Optional[Path] = None) -> None:
    """Load .env from the working directory (or env_path) if present.
    Variables already set in the environment win.
    """
    env_path = env_path or Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def get_database_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        raise FatalJobError(
            "Missing environment variable: DATABASE_URL. "
            "Set DATABASE_URL to the marketplace database URL (e.g. sqlite:///data/marketplace.db)."
        )
    return url


def get_log_level() -> str:
    level = os.getenv("LOG_LEVEL", "").strip().upper() or DEFAULT_LOG_LEVEL
    if level not in LOG_LEVELS:
        raise FatalJobError(
            f"Invalid LOG_LEVEL: {level}. Use one of: {', '.join(LOG_LEVELS)}."
        )
    return level


def get_log_dir() -> Path:
    return Path(os.getenv("LOG_DIR", DEFAULT_LOG_DIR))
