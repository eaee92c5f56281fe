"""
Shared fixtures for the walletbot test-suite.

The chain is replaced by ``FakeGateway``: balances are set per public key and
every submit is recorded, so tests can assert that nothing was sent.
"""
from __future__ import annotations

import os

# Settings are read at import time
os.environ.setdefault("BOT_TOKEN", "123456:TEST-TOKEN")

from decimal import Decimal
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from solders.keypair import Keypair

from walletbot.errors import GatewayError
from walletbot.flows import FlowEngine, FlowStore
from walletbot.gateway import TxRef
from walletbot.wallets import WalletStore

USER_ID = 424242
SIGNATURE = "4" * 88


class FakeGateway:
    def __init__(self):
        self.balances: Dict[str, Decimal] = {}
        self.submitted: List[tuple] = []
        self.history: List[TxRef] = []
        self.signature: Optional[str] = SIGNATURE
        self.history_error = False
        self.balance_calls = 0
        self.closed = False

    def set_balance(self, pubkey, amount) -> None:
        self.balances[str(pubkey)] = Decimal(amount)

    async def get_balance(self, pubkey) -> Decimal:
        self.balance_calls += 1
        return self.balances.get(str(pubkey), Decimal(0))

    async def submit(self, keypair, destination, amount):
        self.submitted.append((str(keypair.pubkey()), destination, amount))
        return self.signature

    async def recent_signatures(self, pubkey, limit):
        if self.history_error:
            raise GatewayError("history unavailable")
        return self.history[:limit]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def uid():
    return USER_ID


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def wallets():
    return WalletStore()


@pytest.fixture
def flows():
    return FlowStore()


@pytest.fixture
def engine(wallets, flows, gateway):
    return FlowEngine(wallets, flows, gateway)


@pytest.fixture
def funded(wallets, gateway, uid):
    """A wallet holding 1 SOL."""
    keypair = wallets.generate(uid)
    gateway.set_balance(keypair.pubkey(), "1.0")
    return keypair


@pytest.fixture
def destination():
    return str(Keypair().pubkey())


# -----------------------------------------------------------------------------
# aiogram object doubles
# -----------------------------------------------------------------------------

@pytest.fixture
def message(uid):
    msg = Mock()
    msg.from_user.id = uid
    msg.chat.type = "private"
    msg.answer = AsyncMock()
    msg.delete = AsyncMock()
    return msg


@pytest.fixture
def call(uid):
    cb = Mock()
    cb.from_user.id = uid
    cb.answer = AsyncMock()
    cb.message.answer = AsyncMock()
    cb.message.answer_photo = AsyncMock()
    cb.message.edit_reply_markup = AsyncMock()
    return cb


@pytest.fixture
def runtime(monkeypatch, wallets, flows, engine, gateway):
    """Point the routers' shared singletons at the test instances."""
    from walletbot import runtime as r

    monkeypatch.setattr(r, "wallets", wallets)
    monkeypatch.setattr(r, "flows", flows)
    monkeypatch.setattr(r, "gateway", gateway)
    monkeypatch.setattr(r, "engine", engine)
    return r
