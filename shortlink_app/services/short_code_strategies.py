"""
Short code generation strategies.
Uses Strategy Pattern so the registry only depends on ``generate_unique``.
"""

import secrets
import string
from abc import ABC, abstractmethod
from typing import Callable, Optional

import structlog


logger = structlog.get_logger()

BASE62_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""

    @abstractmethod
    def generate(self, length: Optional[int] = None) -> str:
        """Generate one candidate code (not checked for uniqueness)"""
        pass

    @abstractmethod
    def generate_unique(self, exists: Callable[[str], bool], length: Optional[int] = None) -> str:
        """
        Generate a code for which ``exists(code)`` is False.

        Args:
            exists: Callback checking the store for a taken code.
                    Its errors propagate unchanged.
            length: Code length, defaults to the strategy's own length

        Returns:
            A code not currently in use
        """
        pass


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Random fixed-length codes drawn from the OS CSPRNG.

    Codes double as access tokens for unlisted links, so they must not be
    predictable. With 62^6 (~5.7e10) codes, collisions are rare until the
    table holds billions of rows.

    There is no hard retry limit. Once ``retry_budget`` candidates in a row
    are taken, a warning is logged: that means the code space is nearly
    exhausted or the existence check is misbehaving.
    """

    def __init__(self, length: int = 6, retry_budget: int = 20, alphabet: str = BASE62_ALPHABET):
        if length < 1:
            raise ValueError("Short code length must be positive")
        self.length = length
        self.retry_budget = retry_budget
        self.alphabet = alphabet

    def generate(self, length: Optional[int] = None) -> str:
        size = length or self.length
        return "".join(secrets.choice(self.alphabet) for _ in range(size))

    def generate_unique(self, exists: Callable[[str], bool], length: Optional[int] = None) -> str:
        attempts = 0
        while True:
            code = self.generate(length)
            attempts += 1
            if not exists(code):
                return code

            if attempts == self.retry_budget:
                logger.warning(
                    "Short code retry budget exceeded",
                    attempts=attempts,
                    length=length or self.length,
                    alphabet_size=len(self.alphabet),
                )
