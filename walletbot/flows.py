"""
walletbot/flows.py
------------------
Per-user multi-step flows (import wallet, send SOL).

Each step is its own frozen dataclass, so a flow only carries the fields
that step has already validated: ``AwaitingAmount`` has a destination but no
amount, ``AwaitingConfirmation`` has both. A user has at most one flow at a
time; starting a new one replaces the old one, and a flow is removed the
moment it reaches success, cancellation or a terminal failure.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Tuple, Type, Union

from solders.keypair import Keypair

from .config import settings
from .errors import InsufficientBalance, NoWallet, StateError, ValidationError
from .gateway import Gateway
from .pipeline import TransferOutcome, TransferPipeline
from .validators import is_valid_address, is_valid_amount, is_valid_secret_key, parse_amount
from .wallets import WalletStore

log = logging.getLogger(__name__)

CONFIRM_PREFIX = "confirm_send:"


# -----------------------------------------------------------------------------
# Flow states
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ImportWallet:
    pass


@dataclass(frozen=True)
class AwaitingDestination:
    pass


@dataclass(frozen=True)
class AwaitingAmount:
    destination: str


@dataclass(frozen=True)
class ConfirmToken:
    """Single-use token carried by the confirm button."""

    nonce: str
    amount: Decimal

    @classmethod
    def new(cls, amount: Decimal) -> "ConfirmToken":
        return cls(secrets.token_hex(4), amount)

    def pack(self) -> str:
        # Lamport precision under the ceiling keeps this well below 64 bytes
        return f"{CONFIRM_PREFIX}{self.nonce}:{format(self.amount.normalize(), 'f')}"

    @classmethod
    def unpack(cls, data: str) -> "ConfirmToken":
        """Parse callback data; ValueError when it is not a confirm token."""
        if not data.startswith(CONFIRM_PREFIX):
            raise ValueError("not a confirm token")
        nonce, _, raw_amount = data[len(CONFIRM_PREFIX):].partition(":")
        try:
            amount = Decimal(raw_amount)
        except InvalidOperation:
            raise ValueError("bad amount in confirm token") from None
        if not nonce or not amount.is_finite():
            raise ValueError("bad confirm token")
        return cls(nonce, amount)


@dataclass(frozen=True)
class AwaitingConfirmation:
    destination: str
    amount: Decimal
    token: ConfirmToken


SendValue = Union[AwaitingDestination, AwaitingAmount, AwaitingConfirmation]
PendingFlow = Union[ImportWallet, SendValue]


class FlowStore:
    """uid → the user's single pending flow."""

    def __init__(self):
        self._flows: Dict[int, PendingFlow] = {}

    def start(self, uid: int, flow: PendingFlow) -> None:
        prev = self._flows.get(uid)
        self._flows[uid] = flow
        log.info("User %s flow %s -> %s", uid, type(prev).__name__ if prev else "none", type(flow).__name__)

    def get(self, uid: int) -> Optional[PendingFlow]:
        return self._flows.get(uid)

    def is_in(self, uid: int, *kinds: Type) -> bool:
        return isinstance(self._flows.get(uid), kinds)

    def clear(self, uid: int) -> Optional[PendingFlow]:
        flow = self._flows.pop(uid, None)
        if flow is not None:
            log.info("User %s flow %s cleared", uid, type(flow).__name__)
        return flow

    def __contains__(self, uid: int) -> bool:
        return uid in self._flows

    def __len__(self) -> int:
        return len(self._flows)


# -----------------------------------------------------------------------------
# Engine
# -----------------------------------------------------------------------------

class FlowEngine:
    """Advances a user's flow one input at a time.

    Validation failures raise ``ValidationError`` and leave the flow where it
    was, so the router can simply ask again. Terminal failures (``NoWallet``,
    ``StateError``, a low balance when opening a send) leave no flow behind.
    """

    def __init__(self, wallets: WalletStore, flows: FlowStore, gateway: Gateway,
                 pipeline: Optional[TransferPipeline] = None):
        self.wallets = wallets
        self.flows = flows
        self.gateway = gateway
        self.pipeline = pipeline or TransferPipeline(gateway)

    def _expect(self, uid: int, kind: Type):
        flow = self.flows.get(uid)
        if not isinstance(flow, kind):
            raise StateError(f"expected {kind.__name__}")
        return flow

    def _wallet_or_abort(self, uid: int) -> Keypair:
        keypair = self.wallets.get(uid)
        if keypair is None:
            self.flows.clear(uid)
            raise NoWallet()
        return keypair

    # -- wallet ------------------------------------------------------------

    async def generate_wallet(self, uid: int) -> Tuple[Keypair, Decimal]:
        """Replace the user's wallet with a fresh one. A send that was in
        progress for the old wallet is dropped."""
        self.flows.clear(uid)
        keypair = self.wallets.generate(uid)
        return keypair, await self.gateway.get_balance(keypair.pubkey())

    def forget_wallet(self, uid: int) -> bool:
        self.flows.clear(uid)
        return self.wallets.forget(uid)

    # -- import ------------------------------------------------------------

    def start_import(self, uid: int) -> ImportWallet:
        flow = ImportWallet()
        self.flows.start(uid, flow)
        return flow

    async def submit_secret(self, uid: int, text: str) -> Tuple[Keypair, Decimal]:
        self._expect(uid, ImportWallet)
        if not is_valid_secret_key(text):
            raise ValidationError("invalid secret key")
        keypair = self.wallets.import_secret(uid, text)
        self.flows.clear(uid)
        return keypair, await self.gateway.get_balance(keypair.pubkey())

    # -- send --------------------------------------------------------------

    async def start_send(self, uid: int) -> Decimal:
        """Open a send flow; returns the balance shown with the first prompt."""
        self.flows.clear(uid)
        keypair = self._wallet_or_abort(uid)
        balance = await self.gateway.get_balance(keypair.pubkey())
        if balance < settings.MIN_SENDABLE:
            raise InsufficientBalance(balance, settings.MIN_SENDABLE)
        self.flows.start(uid, AwaitingDestination())
        return balance

    async def submit_destination(self, uid: int, text: str) -> Tuple[AwaitingAmount, Decimal]:
        self._expect(uid, AwaitingDestination)
        if not is_valid_address(text):
            raise ValidationError("invalid address")
        keypair = self._wallet_or_abort(uid)
        flow = AwaitingAmount(destination=text)
        self.flows.start(uid, flow)
        return flow, await self.gateway.get_balance(keypair.pubkey())

    async def submit_amount(self, uid: int, text: str) -> AwaitingConfirmation:
        """Raises InsufficientBalance with the flow kept when the amount does
        not fit into ``balance - FEE_RESERVE``."""
        flow = self._expect(uid, AwaitingAmount)
        if not is_valid_amount(text):
            raise ValidationError("invalid amount")
        amount = parse_amount(text)
        keypair = self._wallet_or_abort(uid)
        balance = await self.gateway.get_balance(keypair.pubkey())
        if amount > balance - settings.FEE_RESERVE:
            raise InsufficientBalance(balance, amount + settings.FEE_RESERVE)

        confirmation = AwaitingConfirmation(
            destination=flow.destination,
            amount=amount,
            token=ConfirmToken.new(amount),
        )
        self.flows.start(uid, confirmation)
        return confirmation

    async def confirm(self, uid: int, data: str) -> Tuple[AwaitingConfirmation, TransferOutcome]:
        flow = self._expect(uid, AwaitingConfirmation)
        try:
            token = ConfirmToken.unpack(data)
        except ValueError:
            raise StateError("malformed confirmation") from None
        if token != flow.token:
            raise StateError("stale confirmation")

        # Consume before submitting: a second press finds nothing to confirm.
        self.flows.clear(uid)
        keypair = self._wallet_or_abort(uid)
        return flow, await self.pipeline.run(keypair, flow.destination, flow.amount)

    # -- cancel ------------------------------------------------------------

    def cancel(self, uid: int) -> bool:
        return self.flows.clear(uid) is not None
