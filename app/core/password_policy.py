"""Password policy enforcement and strength scoring."""

import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum

from app.core.config import Settings


class PolicyViolationReason(str, Enum):
    TOO_SHORT = "TOO_SHORT"
    TOO_LONG = "TOO_LONG"
    MISSING_UPPERCASE = "MISSING_UPPERCASE"
    MISSING_LOWERCASE = "MISSING_LOWERCASE"
    MISSING_NUMBER = "MISSING_NUMBER"
    MISSING_SPECIAL = "MISSING_SPECIAL"
    FORBIDDEN_WORD = "FORBIDDEN_WORD"
    CONSECUTIVE_CHARACTERS = "CONSECUTIVE_CHARACTERS"
    SEQUENTIAL_CHARACTERS = "SEQUENTIAL_CHARACTERS"
    REPEATED_PATTERN = "REPEATED_PATTERN"


class PolicyViolation(Exception):
    """Raised for the first policy rule a password fails."""

    def __init__(self, reason: PolicyViolationReason, message: str) -> None:
        self.reason = reason
        self.message = message
        super().__init__(message)


DEFAULT_FORBIDDEN_WORDS = (
    "password",
    "123456",
    "qwerty",
    "abc123",
    "password123",
    "admin",
    "root",
    "user",
    "test",
    "guest",
    "demo",
)

SEQUENCES = (
    "abcdefghijklmnopqrstuvwxyz",
    "zyxwvutsrqponmlkjihgfedcba",
    "0123456789",
    "9876543210",
    "qwertyuiop",
    "poiuytrewq",
    "asdfghjkl",
    "lkjhgfdsa",
    "zxcvbnm",
    "mnbvcxz",
)

SEQUENCE_WINDOW = 4

WEAK_FRAGMENTS = ("password", "123456", "qwerty")

_REPEATED_PATTERN_RE = re.compile(r"(.{2,})\1")


def _is_special(char: str) -> bool:
    # Unicode punctuation (P*) or symbol (S*) categories
    return unicodedata.category(char)[0] in ("P", "S")


@dataclass
class PasswordPolicy:
    """
    Configurable password rules.

    Rules are checked in a fixed order and validation stops at the first
    failure: length, character classes, forbidden words, consecutive
    identical characters, keyboard/alphabet sequences, repeated blocks.
    """

    min_length: int = 8
    max_length: int = 128
    require_upper: bool = True
    require_lower: bool = True
    require_number: bool = True
    require_special: bool = True
    max_consecutive: int = 3
    forbidden_words: list[str] = field(default_factory=lambda: list(DEFAULT_FORBIDDEN_WORDS))

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordPolicy":
        return cls(
            min_length=settings.PASSWORD_MIN_LENGTH,
            max_length=settings.PASSWORD_MAX_LENGTH,
            require_upper=settings.PASSWORD_REQUIRE_UPPER,
            require_lower=settings.PASSWORD_REQUIRE_LOWER,
            require_number=settings.PASSWORD_REQUIRE_NUMBER,
            require_special=settings.PASSWORD_REQUIRE_SPECIAL,
            max_consecutive=settings.PASSWORD_MAX_CONSECUTIVE,
            forbidden_words=list(settings.PASSWORD_FORBIDDEN_WORDS),
        )

    def validate(self, password: str) -> None:
        """
        Check a password against every rule.

        Args:
            password: Candidate plain text password

        Raises:
            PolicyViolation: On the first rule the password fails
        """
        if len(password) < self.min_length:
            raise PolicyViolation(
                PolicyViolationReason.TOO_SHORT,
                f"Password must be at least {self.min_length} characters long",
            )
        if len(password) > self.max_length:
            raise PolicyViolation(
                PolicyViolationReason.TOO_LONG,
                f"Password must be at most {self.max_length} characters long",
            )

        self._check_character_classes(password)

        lowered = password.lower()
        for word in self.forbidden_words:
            if word and word.lower() in lowered:
                raise PolicyViolation(
                    PolicyViolationReason.FORBIDDEN_WORD,
                    "Password contains a common word or pattern",
                )

        if self.max_consecutive > 0 and self._longest_run(password) > self.max_consecutive:
            raise PolicyViolation(
                PolicyViolationReason.CONSECUTIVE_CHARACTERS,
                f"Password must not repeat the same character more than {self.max_consecutive} times in a row",
            )

        if self._has_sequence(lowered):
            raise PolicyViolation(
                PolicyViolationReason.SEQUENTIAL_CHARACTERS,
                "Password must not contain sequential characters",
            )

        if _REPEATED_PATTERN_RE.search(password):
            raise PolicyViolation(
                PolicyViolationReason.REPEATED_PATTERN,
                "Password must not contain repeated patterns",
            )

    def _check_character_classes(self, password: str) -> None:
        if self.require_upper and not any(c.isupper() for c in password):
            raise PolicyViolation(
                PolicyViolationReason.MISSING_UPPERCASE,
                "Password must contain at least one uppercase letter",
            )
        if self.require_lower and not any(c.islower() for c in password):
            raise PolicyViolation(
                PolicyViolationReason.MISSING_LOWERCASE,
                "Password must contain at least one lowercase letter",
            )
        if self.require_number and not any(c.isdigit() for c in password):
            raise PolicyViolation(
                PolicyViolationReason.MISSING_NUMBER,
                "Password must contain at least one number",
            )
        if self.require_special and not any(_is_special(c) for c in password):
            raise PolicyViolation(
                PolicyViolationReason.MISSING_SPECIAL,
                "Password must contain at least one special character",
            )

    @staticmethod
    def _longest_run(password: str) -> int:
        longest = run = 0
        previous = None
        for char in password:
            run = run + 1 if char == previous else 1
            longest = max(longest, run)
            previous = char
        return longest

    @staticmethod
    def _has_sequence(lowered: str) -> bool:
        for sequence in SEQUENCES:
            for start in range(len(sequence) - SEQUENCE_WINDOW + 1):
                if sequence[start:start + SEQUENCE_WINDOW] in lowered:
                    return True
        return False


def password_strength(password: str) -> int:
    """
    Score a password from 0 to 100.

    Informational only; acceptance is decided by PasswordPolicy.validate.
    """
    score = 0

    for threshold, points in ((8, 10), (12, 10), (16, 5)):
        if len(password) >= threshold:
            score += points

    if any(c.isupper() for c in password):
        score += 10
    if any(c.islower() for c in password):
        score += 10
    if any(c.isdigit() for c in password):
        score += 10
    if any(_is_special(c) for c in password):
        score += 10

    unique = len(set(password))
    for threshold, points in ((8, 10), (12, 10), (16, 5)):
        if unique >= threshold:
            score += points

    lowered = password.lower()
    if any(fragment in lowered for fragment in WEAK_FRAGMENTS):
        score -= 20

    return max(0, min(100, score))
