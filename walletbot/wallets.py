"""
In-memory custody of one keypair per Telegram user.

Nothing here survives a restart. ``put`` always replaces: generating or
importing a wallet overwrites the previous one wholesale.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import base58
from solders.keypair import Keypair

from walletbot.errors import NoWallet, ValidationError
from walletbot.validators import is_valid_secret_key

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecretExport:
    """A revealed secret key. Kept apart from ordinary replies so the
    transport can protect it and delete it after a while."""

    address: str
    secret: str = field(repr=False)

    def __repr__(self) -> str:
        return f"SecretExport(address={self.address!r}, secret=<hidden>)"


class WalletStore:
    def __init__(self):
        self._wallets: Dict[int, Keypair] = {}

    def put(self, uid: int, keypair: Keypair) -> None:
        self._wallets[uid] = keypair

    def get(self, uid: int) -> Optional[Keypair]:
        return self._wallets.get(uid)

    def require(self, uid: int) -> Keypair:
        keypair = self._wallets.get(uid)
        if keypair is None:
            raise NoWallet()
        return keypair

    def generate(self, uid: int) -> Keypair:
        keypair = Keypair()
        self.put(uid, keypair)
        log.info("User %s generated wallet %s", uid, keypair.pubkey())
        return keypair

    def import_secret(self, uid: int, secret_b58: str) -> Keypair:
        if not is_valid_secret_key(secret_b58):
            raise ValidationError("invalid secret key")
        try:
            keypair = Keypair.from_bytes(base58.b58decode(secret_b58))
        except ValueError:
            # 64 bytes whose public half does not match the secret half
            raise ValidationError("invalid secret key") from None
        self.put(uid, keypair)
        log.info("User %s imported wallet %s", uid, keypair.pubkey())
        return keypair

    def export_secret(self, uid: int) -> SecretExport:
        keypair = self.require(uid)
        log.info("User %s exported the secret key of %s", uid, keypair.pubkey())
        return SecretExport(
            address=str(keypair.pubkey()),
            secret=base58.b58encode(bytes(keypair)).decode(),
        )

    def forget(self, uid: int) -> bool:
        keypair = self._wallets.pop(uid, None)
        if keypair is None:
            return False
        log.info("User %s forgot wallet %s", uid, keypair.pubkey())
        return True

    def __contains__(self, uid: int) -> bool:
        return uid in self._wallets

    def __len__(self) -> int:
        return len(self._wallets)
