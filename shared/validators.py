"""
Input validators — framework-agnostic, pure functions.
"""

from __future__ import annotations

from typing import Mapping, Optional

import validators as _validators

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128


def normalize_email(email: Optional[str]) -> str:
    """Strip and lower-case *email*. ``None`` becomes the empty string."""
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address."""
    return bool(_validators.email(email))


def missing_fields(values: Mapping[str, Optional[str]]) -> list[str]:
    """Return the names in *values* whose value is None, empty or whitespace.

    Order follows the mapping so error messages are stable.
    """
    return [name for name, value in values.items() if not (value or "").strip()]


def validate_password(password: str) -> list[str]:
    """Return the list of unmet password requirements (empty when valid)."""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"At least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        problems.append(f"Maximum {PASSWORD_MAX_LENGTH} characters")
    return problems
