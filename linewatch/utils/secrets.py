"""
Secret lookup for values that should not live in plain config.

A secret is looked up, first match wins, in:
1. the environment variable of the same name
2. a Docker secret file under /run/secrets/
3. a file under ./secrets/ for local development
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DOCKER_SECRETS_DIR = Path("/run/secrets")
LOCAL_SECRETS_DIR = Path("secrets")  # relative to the working directory


class SecretNotFoundError(Exception):
    """A required secret was not found in any source."""


def _secret_files(secret_name: str) -> list[tuple[str, Path]]:
    # Module attributes are read at call time so tests can point them elsewhere
    return [
        ("Docker", DOCKER_SECRETS_DIR / secret_name),
        ("local", LOCAL_SECRETS_DIR / secret_name),
    ]


def _read_file(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        return path.read_text().strip() or None
    except OSError as e:
        logger.warning(f"Could not read secret file {path}: {e}")
        return None


def read_secret(secret_name: str, required: bool = True) -> Optional[str]:
    """
    Resolve a secret by name.

    Args:
        secret_name: Environment variable / file name, e.g. "INTERNAL_API_KEY"
        required: Raise instead of returning None when nothing is found

    Raises:
        SecretNotFoundError: If required and no source has a non-blank value
    """
    env_value = (os.getenv(secret_name) or "").strip()
    if env_value:
        logger.debug(f"Secret {secret_name} resolved from environment")
        return env_value

    files = _secret_files(secret_name)
    for label, path in files:
        value = _read_file(path)
        if value:
            logger.debug(f"Secret {secret_name} resolved from {label} secrets file")
            return value

    if required:
        checked = ", ".join([f"${secret_name}"] + [str(path) for _, path in files])
        raise SecretNotFoundError(f"Required secret '{secret_name}' not found (checked {checked})")
    return None


def read_secret_optional(secret_name: str) -> Optional[str]:
    return read_secret(secret_name, required=False)
