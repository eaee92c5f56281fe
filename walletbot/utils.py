from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional


def fmt_sol(amount: Decimal) -> str:
    """Balances are shown with four decimals."""
    return f"{amount:.4f}"


def fmt_amount(amount: Decimal) -> str:
    """User-entered amounts are echoed exactly, without exponent notation."""
    return format(amount.normalize(), "f")


def short_sig(signature: str, keep: int = 20) -> str:
    return f"{signature[:keep]}..."


def fmt_block_time(ts: Optional[int]) -> str:
    if ts is None:
        return "pending"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
