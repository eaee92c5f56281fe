import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

class Settings:
    BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")
    RPC_URL: str = os.getenv("RPC_URL", "https://api.devnet.solana.com")

    LOG_FILE: str = os.getenv("LOG_FILE", "logs/bot.log")

    # Transfer policy (native units, not lamports)
    AMOUNT_CEILING: Decimal = Decimal(os.getenv("AMOUNT_CEILING", "1000"))
    MIN_SENDABLE: Decimal = Decimal(os.getenv("MIN_SENDABLE", "0.001"))
    FEE_RESERVE: Decimal = Decimal(os.getenv("FEE_RESERVE", "0.00001"))

    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "5"))
    EXPORT_TTL: int = int(os.getenv("EXPORT_TTL", "60"))

    # Runtime sanity‑checks
    def validate(self):
        required = ("BOT_TOKEN", "RPC_URL")
        missing = [k for k in required if getattr(self, k) in (None, "")]
        if missing:
            raise RuntimeError(f"Missing required settings: {missing}")
        if self.FEE_RESERVE < 0 or self.MIN_SENDABLE <= self.FEE_RESERVE:
            raise RuntimeError("MIN_SENDABLE must exceed a non-negative FEE_RESERVE")

settings = Settings()
settings.validate()
