"""
Exceptions raised by the FlashDeck client and session controller
"""

from typing import Optional


class FlashDeckError(Exception):
    """Base class for all FlashDeck errors"""


class APIError(FlashDeckError):
    """A request to the backend failed (transport error or non-2xx response)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class InvalidTransitionError(FlashDeckError):
    """An action was requested that the session's current state does not allow"""
