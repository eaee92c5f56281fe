"""
walletbot/routers/send.py
-------------------------
Send-SOL conversation:
• "send_sol_menu" – needs a wallet and at least MIN_SENDABLE, asks for a destination
• text while awaiting a destination – validate address, ask for an amount
• text while awaiting an amount – validate against balance − FEE_RESERVE, show confirmation
• "confirm_send:<nonce>:<amount>" – run the transfer pipeline, report the outcome

Cancel is handled by the menu router.
"""
from __future__ import annotations

import logging

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, Message

from walletbot.config import settings
from walletbot.errors import InsufficientBalance, NoWallet, StateError, ValidationError
from walletbot.flows import CONFIRM_PREFIX, AwaitingAmount, AwaitingDestination
from walletbot.keyboards import cancel, confirm_send, no_wallet
from walletbot.pipeline import Confirmed, Rejected, TransferOutcome
from walletbot.utils import fmt_amount, fmt_sol, short_sig

router = Router()
logger = logging.getLogger(__name__)

FEE_HINT = "~0.000005 SOL"
NO_WALLET = "❌ <b>No wallet found!</b>\n\nYou need to generate or import a wallet first."

# -----------------------------------------------------------------------------
# Shared singletons via lazy import
# -----------------------------------------------------------------------------

def services():
    from walletbot import runtime as r
    from walletbot.keyboards import main_menu
    return r.wallets, r.flows, r.engine, main_menu


def awaiting(kind):
    def _filter(msg: Message) -> bool:
        _, flows, *_ = services()
        return msg.from_user is not None and flows.is_in(msg.from_user.id, kind)
    return _filter


def outcome_text(amount, destination: str, outcome: TransferOutcome) -> str:
    if isinstance(outcome, Confirmed):
        return (
            "✅ <b>Transaction Successful!</b>\n\n"
            f"💸 <b>Sent:</b> {fmt_amount(amount)} SOL\n"
            f"📍 <b>To:</b> <code>{destination}</code>\n"
            f"🔗 <b>Signature:</b> <code>{short_sig(outcome.signature)}</code>\n\n"
            "Transaction completed successfully!"
        )
    if isinstance(outcome, Rejected):
        return (
            "❌ <b>Insufficient balance!</b>\n\n"
            f"💰 <b>Available:</b> {fmt_sol(outcome.balance)} SOL\n"
            f"💸 <b>Requested:</b> {fmt_amount(amount)} SOL\n\n"
            "Your balance changed since the amount was entered. Nothing was sent."
        )
    return (
        "❌ <b>Transaction Failed!</b>\n\n"
        "The transaction could not be completed. This might be due to:\n"
        "• Insufficient balance\n"
        "• Network issues\n"
        "• Invalid recipient address\n\n"
        "Please try again later."
    )

# -----------------------------------------------------------------------------
# Step 0: open the flow
# -----------------------------------------------------------------------------

@router.callback_query(F.data == "send_sol_menu")
async def send_start(call: CallbackQuery):
    _, _, engine, main_menu = services()
    await call.answer("Preparing to send SOL...")
    try:
        balance = await engine.start_send(call.from_user.id)
    except NoWallet:
        await call.message.answer(NO_WALLET, reply_markup=no_wallet().as_markup())
        return
    except InsufficientBalance as exc:
        await call.message.answer(
            "💸 <b>Send SOL</b>\n\n"
            "❌ <b>Insufficient balance!</b>\n\n"
            f"💰 <b>Current Balance:</b> {fmt_sol(exc.balance)} SOL\n"
            f"Minimum balance required: {fmt_amount(exc.required)} SOL",
            reply_markup=main_menu().as_markup(),
        )
        return

    await call.message.answer(
        "💸 <b>Send SOL</b>\n\n"
        f"💰 <b>Available Balance:</b> {fmt_sol(balance)} SOL\n\n"
        "Please enter the recipient's Solana address:",
        reply_markup=cancel().as_markup(),
    )

# -----------------------------------------------------------------------------
# Step 1: destination
# -----------------------------------------------------------------------------

@router.message(F.text, ~F.text.startswith("/"), awaiting(AwaitingDestination))
async def send_destination(message: Message):
    _, _, engine, _ = services()
    try:
        flow, balance = await engine.submit_destination(message.from_user.id, message.text.strip())
    except ValidationError:
        await message.answer(
            "❌ <b>Invalid Solana address!</b>\n\n"
            "Please enter a valid Solana address (32 bytes, base58 encoded).",
            reply_markup=cancel().as_markup(),
        )
        return
    except NoWallet:
        await message.answer(NO_WALLET, reply_markup=no_wallet().as_markup())
        return

    await message.answer(
        "💸 <b>Send SOL</b>\n\n"
        f"📍 <b>To:</b> <code>{flow.destination}</code>\n"
        f"💰 <b>Available:</b> {fmt_sol(balance)} SOL\n\n"
        "How much SOL do you want to send?\n"
        f"(Leave some for transaction fees {FEE_HINT})",
        reply_markup=cancel().as_markup(),
    )

# -----------------------------------------------------------------------------
# Step 2: amount
# -----------------------------------------------------------------------------

@router.message(F.text, ~F.text.startswith("/"), awaiting(AwaitingAmount))
async def send_amount(message: Message):
    _, _, engine, _ = services()
    text = message.text.strip()
    try:
        flow = await engine.submit_amount(message.from_user.id, text)
    except ValidationError:
        await message.answer(
            "❌ <b>Invalid amount!</b>\n\n"
            f"Please enter a valid number (greater than 0 and less than {fmt_amount(settings.AMOUNT_CEILING)} SOL).",
            reply_markup=cancel().as_markup(),
        )
        return
    except InsufficientBalance as exc:
        await message.answer(
            "❌ <b>Insufficient balance!</b>\n\n"
            f"💰 <b>Available:</b> {fmt_sol(exc.balance)} SOL\n"
            f"💸 <b>Requested:</b> {text} SOL\n\n"
            "Please enter a smaller amount (leave room for transaction fees).",
            reply_markup=cancel().as_markup(),
        )
        return
    except NoWallet:
        await message.answer(NO_WALLET, reply_markup=no_wallet().as_markup())
        return

    await message.answer(
        "💸 <b>Confirm Transaction</b>\n\n"
        f"📍 <b>To:</b> <code>{flow.destination}</code>\n"
        f"💰 <b>Amount:</b> {fmt_amount(flow.amount)} SOL\n"
        f"💵 <b>Fee:</b> {FEE_HINT}\n\n"
        "⚠️ <b>This action cannot be undone!</b>",
        reply_markup=confirm_send(flow.token).as_markup(),
    )

# -----------------------------------------------------------------------------
# Step 3: confirmation
# -----------------------------------------------------------------------------

@router.callback_query(F.data.startswith(CONFIRM_PREFIX))
async def send_confirm(call: CallbackQuery):
    _, _, engine, main_menu = services()
    uid = call.from_user.id
    await call.answer("Processing transaction...")

    try:
        await call.message.edit_reply_markup(reply_markup=None)
    except TelegramBadRequest as exc:
        logger.debug("Confirm keyboard already gone for %s: %s", uid, exc)

    status = await call.message.answer(
        "⏳ <b>Processing transaction...</b>\n\nPlease wait while we send your SOL."
    )
    try:
        flow, outcome = await engine.confirm(uid, call.data)
    except NoWallet:
        await status.edit_text(NO_WALLET, reply_markup=main_menu().as_markup())
        return
    except StateError:
        await status.edit_text("❌ Transaction expired. Please try again.", reply_markup=main_menu().as_markup())
        return

    logger.info("User %s transfer finished: %s", uid, type(outcome).__name__)
    await status.edit_text(
        outcome_text(flow.amount, flow.destination, outcome),
        reply_markup=main_menu().as_markup(),
    )
