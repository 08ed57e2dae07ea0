"""Environment variable loading utilities.

Functions read their credentials and tuning knobs from the process
environment, optionally seeded from a ``.env`` file at the project root.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_env(env_file: Optional[str] = None, override: bool = False) -> None:
    """Load environment variables from .env files.

    Args:
        env_file: Explicit path to a .env file. If None, every .env found
                 between the filesystem root and the current directory is
                 loaded, outermost first.
        override: Whether to override existing environment variables.
    """
    if env_file:
        candidates = [Path(env_file)]
    else:
        current = Path.cwd()
        candidates = [parent / ".env" for parent in reversed(current.parents)]
        candidates.append(current / ".env")

    loaded = 0
    seen = set()
    for path in candidates:
        if path in seen or not path.exists():
            continue
        seen.add(path)
        load_dotenv(path, override=override)
        loaded += 1
        logger.debug("Loaded environment from %s", path)

    if not loaded:
        logger.debug("No .env file found, using system environment")


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.getenv(key, default)


def get_int_env(key: str, default: int) -> int:
    """Read an integer environment variable.

    Raises:
        ValueError: If the variable is set but is not an integer.
    """
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc

