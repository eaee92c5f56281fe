"""Chain access behind a small interface so flows and the pipeline can be
driven by a fake in tests. ``SolanaGateway`` is the real RPC-backed one."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Protocol

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from .config import settings
from .errors import GatewayError
from .validators import LAMPORTS_PER_SOL, to_lamports

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TxRef:
    signature: str
    block_time: Optional[int]
    failed: bool = False


class Gateway(Protocol):
    async def get_balance(self, pubkey: Pubkey) -> Decimal:
        """Balance in SOL, or zero when the RPC fails. Never raises."""

    async def submit(self, keypair: Keypair, destination: str, amount: Decimal) -> Optional[str]:
        """Sign and send one transfer; signature on success, None on failure."""

    async def recent_signatures(self, pubkey: Pubkey, limit: int) -> List[TxRef]:
        """Newest first. Raises GatewayError."""

    async def close(self) -> None:
        ...


class SolanaGateway:
    def __init__(self, rpc_url: str = settings.RPC_URL):
        self.rpc_url = rpc_url
        self._client = AsyncClient(rpc_url, commitment=Confirmed)

    async def get_balance(self, pubkey: Pubkey) -> Decimal:
        try:
            resp = await self._client.get_balance(pubkey)
        except Exception as exc:
            log.warning("Balance lookup failed for %s: %s", pubkey, exc)
            return Decimal(0)
        return Decimal(resp.value) / LAMPORTS_PER_SOL

    async def submit(self, keypair: Keypair, destination: str, amount: Decimal) -> Optional[str]:
        sender = keypair.pubkey()
        try:
            ix = transfer(
                TransferParams(
                    from_pubkey=sender,
                    to_pubkey=Pubkey.from_string(destination),
                    lamports=to_lamports(amount),
                )
            )
            blockhash = (await self._client.get_latest_blockhash()).value.blockhash
            msg = Message.new_with_blockhash([ix], sender, blockhash)
            tx = Transaction([keypair], msg, blockhash)

            resp = await self._client.send_transaction(
                tx, opts=TxOpts(preflight_commitment=Confirmed)
            )
            signature = resp.value
            status = await self._client.confirm_transaction(signature, commitment=Confirmed)
        except Exception as exc:
            log.warning("Transfer from %s to %s failed: %s", sender, destination, exc)
            return None

        result = status.value[0] if status.value else None
        if result is not None and result.err is not None:
            log.warning("Transfer %s landed with error: %s", signature, result.err)
            return None
        return str(signature)

    async def recent_signatures(self, pubkey: Pubkey, limit: int) -> List[TxRef]:
        try:
            resp = await self._client.get_signatures_for_address(pubkey, limit=limit)
        except Exception as exc:
            log.warning("History lookup failed for %s: %s", pubkey, exc)
            raise GatewayError("history unavailable") from exc
        return [
            TxRef(str(s.signature), s.block_time, s.err is not None)
            for s in resp.value
        ]

    async def close(self) -> None:
        await self._client.close()
