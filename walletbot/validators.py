"""
walletbot/validators.py
-----------------------
Pure predicates over user-typed text. They never raise: every malformed
input is simply "not valid".
"""
from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Optional

import base58

from walletbot.config import settings

PUBKEY_LENGTH = 32
SECRET_KEY_LENGTH = 64
LAMPORTS_PER_SOL = 1_000_000_000
LAMPORT = Decimal(1).scaleb(-9)


def _b58_length(text: str) -> Optional[int]:
    if not text:
        return None
    try:
        return len(base58.b58decode(text))
    except ValueError:
        return None


def is_valid_address(text: str) -> bool:
    return _b58_length(text) == PUBKEY_LENGTH


def is_valid_secret_key(text: str) -> bool:
    return _b58_length(text) == SECRET_KEY_LENGTH


def to_lamports(amount: Decimal) -> int:
    return int((amount * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_DOWN))


def _decimal(text: str) -> Optional[Decimal]:
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        return None
    return value if value.is_finite() else None


def is_valid_amount(text: str) -> bool:
    """Positive, under the ceiling and a whole number of lamports."""
    value = _decimal(text)
    if value is None or not 0 < value < settings.AMOUNT_CEILING:
        return False
    # Finer than a lamport would be rounded away when sent
    try:
        return value == value.quantize(LAMPORT)
    except InvalidOperation:
        return False


def parse_amount(text: str) -> Decimal:
    """Return the amount of *text*; only call after is_valid_amount()."""
    value = _decimal(text)
    if value is None:
        raise ValueError("not an amount")
    return value
