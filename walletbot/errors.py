"""
walletbot/errors.py
-------------------
Exceptions raised by the wallet store and the flow engine and rendered by
the routers. Messages are user-safe: none of them ever carries key material.
"""
from __future__ import annotations

from decimal import Decimal


class WalletBotError(Exception):
    """Base class for every error the routers know how to render."""


class ValidationError(WalletBotError):
    """Malformed address, amount or secret key. The user is asked again."""


class StateError(WalletBotError):
    """An action references a flow that is gone, stale or in another step."""


class NoWallet(StateError):
    def __init__(self) -> None:
        super().__init__("no wallet")


class InsufficientBalance(WalletBotError):
    def __init__(self, balance: Decimal, required: Decimal) -> None:
        super().__init__(f"balance {balance} below required {required}")
        self.balance = balance
        self.required = required


class GatewayError(WalletBotError):
    """The chain RPC could not serve the request."""
