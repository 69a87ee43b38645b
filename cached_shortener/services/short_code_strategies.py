"""
Short code generation strategies for URL shortener.
Uses Strategy Pattern to allow different generation algorithms.
"""

import secrets
import string
from abc import ABC, abstractmethod

MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 12


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""

    @abstractmethod
    def generate(self) -> str:
        """
        Generate a candidate short code.

        Uniqueness is enforced by the record store on insert; the shortening
        engine retries with a new candidate on collision.
        """
        pass


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Random base62 codes from a cryptographic source.

    With the default length of 8 there are 62^8 (about 2.2e14) codes, so
    collisions are negligible and need no pre-check query.
    """

    CHARACTERS = string.ascii_letters + string.digits

    def __init__(self, length: int = 8):
        if not MIN_CODE_LENGTH <= length <= MAX_CODE_LENGTH:
            raise ValueError(
                f"Short code length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}, got {length}"
            )
        self.length = length

    def generate(self) -> str:
        return "".join(secrets.choice(self.CHARACTERS) for _ in range(self.length))
