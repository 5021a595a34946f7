import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_HOST = "https://gitlab.com"
DEFAULT_TIMEOUT = 30.0


def load_env() -> None:
    """Load .env from the working directory if present.
    Variables already set in the environment win.
    """
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def get_settings() -> Dict[str, Any]:
    """
    Collect labci settings from the environment.

    GITLAB_HOST     platform base URL (default https://gitlab.com)
    GITLAB_TOKEN    personal/project access token, optional for public projects
    GITLAB_PROJECT  default project id or path for CLI commands
    LABCI_TIMEOUT   per-request timeout in seconds (default 30)
    LABCI_LOG_LEVEL console log level (default WARNING)
    LABCI_LOG_DIR   write a daily log file here when set
    """
    log_dir = os.getenv("LABCI_LOG_DIR")
    return {
        "host": os.getenv("GITLAB_HOST") or DEFAULT_HOST,
        "token": os.getenv("GITLAB_TOKEN") or None,
        "project": os.getenv("GITLAB_PROJECT") or None,
        "api_version": "v4",
        "timeout": _float_env("LABCI_TIMEOUT", DEFAULT_TIMEOUT),
        "log_level": (os.getenv("LABCI_LOG_LEVEL") or "WARNING").upper(),
        "log_dir": Path(log_dir) if log_dir else None,
    }
