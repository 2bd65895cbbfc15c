"""
Random code generators — pure, side-effect-free functions.

All generators use the ``secrets`` module; callers persist the values.
"""

from __future__ import annotations

import secrets

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Generate a 6-digit numeric OTP drawn uniformly from [100000, 999999].

    The lower bound keeps the code exactly six digits with no leading zero.
    """
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))
