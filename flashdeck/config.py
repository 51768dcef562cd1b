"""
Client settings

Read from the environment, with a .env file in the working directory
loaded first if present.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load settings from FLASHDECK_* environment variables

    Args:
        env_file: Explicit .env path (defaults to searching from the working directory)
    """
    dotenv.load_dotenv(env_file or dotenv.find_dotenv(usecwd=True))

    timeout = DEFAULT_TIMEOUT
    raw_timeout = os.getenv('FLASHDECK_TIMEOUT')
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            logger.warning(f"Ignoring invalid FLASHDECK_TIMEOUT={raw_timeout!r}")

    return Settings(
        api_url=os.getenv('FLASHDECK_API_URL') or DEFAULT_API_URL,
        token=os.getenv('FLASHDECK_TOKEN') or None,
        timeout=timeout
    )
