"""
walletbot/entry.py
------------------
Bootstrap script that wires every router and starts polling.
Keep this file tiny: all heavy logic lives in the routers or helpers.
"""
from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from walletbot import runtime as r

from walletbot.config import settings
from walletbot.flows import FlowEngine
from walletbot.gateway import SolanaGateway
from walletbot.logger import configure_logging, logger
from walletbot.middlewares.error_logger import ErrorLogger
from walletbot.middlewares.user_lock import UserLockMiddleware

from walletbot.routers.wallet import router as wallet_router
from walletbot.routers.send   import router as send_router
from walletbot.routers.menu   import router as menu_router

# ----------------------------------------------------------------------------
# Dispatcher wiring
# ----------------------------------------------------------------------------

dp = Dispatcher()

# Outer: one user's events run one at a time, filters included
dp.message.outer_middleware(UserLockMiddleware(r.locks))
dp.callback_query.outer_middleware(UserLockMiddleware(r.locks))
dp.message.middleware(ErrorLogger())
dp.callback_query.middleware(ErrorLogger())

dp.include_router(wallet_router)
dp.include_router(send_router)
dp.include_router(menu_router)  # catch-all menu goes last

# ----------------------------------------------------------------------------
# Startup / shutdown helpers
# ----------------------------------------------------------------------------

async def _on_startup() -> None:
    r.gateway = SolanaGateway(settings.RPC_URL)
    r.engine = FlowEngine(r.wallets, r.flows, r.gateway)
    logger.info("Using RPC endpoint %s", settings.RPC_URL)


async def _on_shutdown() -> None:
    if r.gateway:
        await r.gateway.close()
    logger.info("Bot stopped")


async def main() -> None:
    configure_logging()
    bot = Bot(
        settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )

    await _on_startup()
    logger.info("🤖 Starting Telegram Solana Wallet Bot...")
    try:
        await dp.start_polling(bot, allowed_updates=["message", "callback_query"])
    finally:
        await _on_shutdown()
        await bot.session.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
