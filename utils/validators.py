"""
Input rules shared by the request schemas and the credential store.

Each ``check_*`` function returns the cleaned value or raises ``ValueError``
with the message reported to the client.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

MIN_AGE = 18
MAX_AGE = 100

PASSWORD_MIN_LENGTH = 8

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

_NAME_RE = re.compile(r"^[A-Za-z\s]+$")
# ASCII upper, lower, digit and symbol somewhere; first character from the allowed set.
_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]", re.ASCII)


def check_password_strength(password: str) -> str:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not _PASSWORD_RE.match(password):
        raise ValueError("Password must contain uppercase, lowercase, number and special character")
    return password


def check_name(value: str, label: str) -> str:
    value = value.strip()
    if len(value) < NAME_MIN_LENGTH:
        raise ValueError(f"{label} must be at least {NAME_MIN_LENGTH} characters")
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError(f"{label} cannot exceed {NAME_MAX_LENGTH} characters")
    if not _NAME_RE.match(value):
        raise ValueError(f"{label} can only contain letters")
    return value


def age_on(birth_date: date, today: date) -> int:
    """Whole years between ``birth_date`` and ``today``."""
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def check_date_of_birth(birth_date: date, today: Optional[date] = None) -> date:
    age = age_on(birth_date, today or date.today())
    if not MIN_AGE <= age <= MAX_AGE:
        raise ValueError(f"Must be between {MIN_AGE} and {MAX_AGE} years old")
    return birth_date
