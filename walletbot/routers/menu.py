"""
walletbot/routers/menu.py
-------------------------
Entry points and navigation:
• /start – welcome text and the main menu
• "refresh_menu" / "cancel" – drop any pending flow, show the main menu
• any other private text while no flow is pending – show the main menu

Include this router last: its catch-all must not shadow the flow routers.
"""
from __future__ import annotations

import logging

from aiogram import Router, F
from aiogram.filters import CommandStart
from aiogram.types import CallbackQuery, Message

router = Router()
log = logging.getLogger(__name__)

WELCOME = (
    "🤖 <b>Welcome to Trad Wallet Bot!</b>\n\n"
    "Your easy-to-use Solana wallet manager.\n\n"
    "<b>Features:</b>\n"
    "• 🔑 Generate new wallets\n"
    "• 📥 Import existing wallets\n"
    "• 📋 View wallet address\n"
    "• 💰 Check balances\n"
    "• 💸 Send SOL\n"
    "• 📊 View transaction history\n\n"
    "<b>Security:</b>\n"
    "• Keys live in memory only and are gone after a restart\n"
    "• Never share your private key\n"
    "• Use at your own risk (devnet for testing)\n\n"
    "Choose an option below to get started:"
)


# --------------------------------------------------------------------------- #
# Shared singletons (avoids circular-import re-execution)                     #
# --------------------------------------------------------------------------- #
def services():
    from walletbot import runtime as r
    from walletbot.keyboards import main_menu
    return r.wallets, r.flows, r.engine, main_menu


def no_pending_flow(msg: Message) -> bool:
    _, flows, *_ = services()
    return msg.from_user is not None and msg.from_user.id not in flows


# --------------------------------------------------------------------------- #
# /start                                                                      #
# --------------------------------------------------------------------------- #
@router.message(CommandStart())
async def cmd_start(msg: Message):
    _, _, engine, menu = services()
    engine.cancel(msg.from_user.id)
    await msg.answer(WELCOME, reply_markup=menu().as_markup())


# --------------------------------------------------------------------------- #
# Back to menu / cancel                                                       #
# --------------------------------------------------------------------------- #
@router.callback_query(F.data.in_({"refresh_menu", "cancel"}))
async def back_to_menu(call: CallbackQuery):
    _, _, engine, menu = services()
    uid = call.from_user.id
    if engine.cancel(uid):
        log.info("User %s cancelled their pending flow", uid)
        await call.answer("Cancelled")
    else:
        await call.answer()
    await call.message.answer(
        "🤖 <b>Trad Wallet Bot - Main Menu</b>\n\nChoose an option:",
        reply_markup=menu().as_markup(),
    )


# --------------------------------------------------------------------------- #
# Automatic menu on any DM                                                    #
# --------------------------------------------------------------------------- #
@router.message(F.chat.type == "private", no_pending_flow)
async def auto_menu(msg: Message):
    _, _, _, menu = services()
    await msg.answer("Main menu:", reply_markup=menu().as_markup())
