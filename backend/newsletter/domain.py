"""
Newsletter Backend: Domain Values
=================================

What:  Validated value types for subscriber data and subscription tokens.
How:   Each type exposes a `parse` classmethod; the only way to obtain an
       instance from untrusted input is through it, so holding a
       SubscriberEmail means the address has already been checked.
Who:   Routes parse form input into a NewSubscriber; the newsletter service
       re-parses stored addresses before sending.
"""

import secrets
import string
import unicodedata
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

from newsletter.exceptions import ValidationError

MAX_NAME_LENGTH = 256
FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')

SUBSCRIPTION_TOKEN_LENGTH = 25
_TOKEN_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class SubscriberName:
    value: str

    @classmethod
    def parse(cls, s: str) -> "SubscriberName":
        """
        Accept a display name.

        Rejects blank names, names longer than 256 characters and names
        containing characters commonly used for markup or injection.
        """
        if not s or not s.strip():
            raise ValidationError("Subscriber name must not be empty.", field="name")

        # Combining marks do not count towards the length
        normalized = unicodedata.normalize("NFC", s)
        length = sum(1 for ch in normalized if not unicodedata.combining(ch))
        if length > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Subscriber name must be at most {MAX_NAME_LENGTH} characters.",
                field="name",
            )

        if any(ch in FORBIDDEN_NAME_CHARACTERS for ch in s):
            raise ValidationError(
                "Subscriber name contains forbidden characters.",
                field="name",
            )

        return cls(s)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberEmail:
    value: str

    @classmethod
    def parse(cls, s: str) -> "SubscriberEmail":
        """Syntactic check only; no DNS lookups happen here."""
        try:
            result = validate_email(s, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(
                f"'{s}' is not a valid email address.",
                field="email",
                context={"reason": str(e)},
            ) from e
        return cls(result.normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NewSubscriber:
    email: SubscriberEmail
    name: SubscriberName

    @classmethod
    def from_form(cls, email: str, name: str) -> "NewSubscriber":
        return cls(email=SubscriberEmail.parse(email), name=SubscriberName.parse(name))


# ── Subscription Tokens ───────────────────────────────────────────────────

def generate_subscription_token() -> str:
    """25 random alphanumeric characters from the OS CSPRNG."""
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(SUBSCRIPTION_TOKEN_LENGTH))


def is_valid_subscription_token(s: str) -> bool:
    return (
        len(s) == SUBSCRIPTION_TOKEN_LENGTH
        and all(ch in _TOKEN_ALPHABET for ch in s)
    )
