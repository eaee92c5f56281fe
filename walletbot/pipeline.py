"""
walletbot/pipeline.py
---------------------
Turns a confirmed send flow into exactly one on-chain transfer:

1. re-fetch the balance (the one shown at the amount prompt may be stale)
2. reject when ``amount > balance - FEE_RESERVE``
3. submit once; a failed submit is reported, never retried
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from solders.keypair import Keypair

from .config import settings
from .errors import GatewayError
from .gateway import Gateway

log = logging.getLogger(__name__)

INSUFFICIENT_BALANCE = "insufficient_balance"
SUBMISSION_FAILED = "submission_failed"


@dataclass(frozen=True)
class TransferRequest:
    keypair: Keypair
    destination: str
    amount: Decimal
    balance: Decimal

    @property
    def spendable(self) -> Decimal:
        return self.balance - settings.FEE_RESERVE


@dataclass(frozen=True)
class Confirmed:
    signature: str


@dataclass(frozen=True)
class Rejected:
    reason: str
    balance: Decimal


@dataclass(frozen=True)
class Errored:
    cause: str


TransferOutcome = Union[Confirmed, Rejected, Errored]


class TransferPipeline:
    def __init__(self, gateway: Gateway):
        self.gateway = gateway

    async def run(self, keypair: Keypair, destination: str, amount: Decimal) -> TransferOutcome:
        sender = keypair.pubkey()
        req = TransferRequest(
            keypair=keypair,
            destination=destination,
            amount=amount,
            balance=await self.gateway.get_balance(sender),
        )

        if req.amount > req.spendable:
            log.info("Transfer from %s rejected: %s > %s", sender, req.amount, req.spendable)
            return Rejected(INSUFFICIENT_BALANCE, req.balance)

        try:
            signature = await self.gateway.submit(req.keypair, req.destination, req.amount)
        except GatewayError as exc:
            log.warning("Transfer from %s errored: %s", sender, exc)
            return Errored(str(exc))

        if not signature:
            log.warning("Transfer of %s from %s to %s failed", req.amount, sender, destination)
            return Errored(SUBMISSION_FAILED)

        log.info("Transfer of %s from %s to %s confirmed: %s…",
                 req.amount, sender, destination, signature[:20])
        return Confirmed(signature)
