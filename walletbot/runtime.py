from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from walletbot.flows import FlowStore
from walletbot.middlewares.user_lock import UserLocks
from walletbot.wallets import WalletStore

if TYPE_CHECKING:  # Only for type hints – avoids opening an RPC client at import
    from walletbot.flows import FlowEngine
    from walletbot.gateway import Gateway

# Shared instances -----------------------------------------------------------

wallets: WalletStore = WalletStore()
flows: FlowStore = FlowStore()
locks: UserLocks = UserLocks()

# Will be created on startup in walletbot.entry
gateway: Optional["Gateway"] = None
engine: Optional["FlowEngine"] = None
