"""
walletbot/routers/wallet.py
---------------------------
Wallet custody actions:
• "generate_wallet" – fresh keypair, replaces any existing one
• "import_wallet" – prompt for a base58 secret key, accept the reply
• "view_address" – address as text + QR code
• "export_private_key" – one-shot reveal, auto-deleted after EXPORT_TTL
• "check_balance" / "tx_history" – read-only chain lookups
• "forget_wallet" – drop the keypair from memory (asks first)
"""
from __future__ import annotations

import asyncio
import io
import logging

import qrcode
from aiogram import Router, F
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest, TelegramNetworkError
from aiogram.types import BufferedInputFile, CallbackQuery, Message

from walletbot.config import settings
from walletbot.errors import GatewayError, NoWallet, StateError, ValidationError
from walletbot.flows import ImportWallet
from walletbot.keyboards import cancel, confirm_forget, no_wallet
from walletbot.utils import fmt_block_time, fmt_sol, short_sig

router = Router()
logger = logging.getLogger(__name__)

# Pending auto-deletes; the event loop only keeps weak references to tasks
_background: set = set()

NO_WALLET = "❌ <b>No wallet found!</b>\n\nYou need to generate or import a wallet first."

# -----------------------------------------------------------------------------
# Utility accessors to avoid circular imports
# -----------------------------------------------------------------------------

def services():
    from walletbot import runtime as r
    from walletbot.keyboards import main_menu
    return r.wallets, r.flows, r.engine, main_menu


def awaiting_import(msg: Message) -> bool:
    _, flows, *_ = services()
    return msg.from_user is not None and flows.is_in(msg.from_user.id, ImportWallet)


def render_qr(data: str) -> io.BytesIO:
    img = qrcode.make(data)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


async def delete_later(msg: Message, delay: int) -> None:
    await asyncio.sleep(delay)
    try:
        await msg.delete()
    except TelegramAPIError as exc:
        logger.warning("Could not delete secret message %s: %s", msg.message_id, exc)

# -----------------------------------------------------------------------------
# Generate
# -----------------------------------------------------------------------------

@router.callback_query(F.data == "generate_wallet")
async def generate_wallet(call: CallbackQuery):
    _, _, engine, main_menu = services()
    await call.answer("Generating new wallet...")
    keypair, balance = await engine.generate_wallet(call.from_user.id)
    await call.message.answer(
        "✅ <b>New wallet created successfully!</b>\n\n"
        f"📍 <b>Address:</b> <code>{keypair.pubkey()}</code>\n"
        f"💰 <b>Balance:</b> {fmt_sol(balance)} SOL\n\n"
        "⚠️ <b>Important:</b> Export and save your private key securely!",
        reply_markup=main_menu().as_markup(),
    )

# -----------------------------------------------------------------------------
# Import flow
# -----------------------------------------------------------------------------

@router.callback_query(F.data == "import_wallet")
async def import_wallet_start(call: CallbackQuery):
    _, _, engine, _ = services()
    engine.start_import(call.from_user.id)
    await call.answer("Import wallet process started")
    await call.message.answer(
        "📥 <b>Import Existing Wallet</b>\n\n"
        "Please send your private key (base58 encoded):\n\n"
        "⚠️ <b>Warning:</b> Only import wallets you trust. Never share private keys!",
        reply_markup=cancel().as_markup(),
    )


@router.message(F.text, ~F.text.startswith("/"), awaiting_import)
async def import_wallet_finish(message: Message):
    _, _, engine, main_menu = services()
    uid = message.from_user.id

    # The key must not linger in the chat history
    try:
        await message.delete()
    except TelegramBadRequest as exc:
        logger.warning("Could not delete key message from %s: %s", uid, exc)

    try:
        keypair, balance = await engine.submit_secret(uid, message.text.strip())
    except ValidationError:
        await message.answer(
            "❌ <b>Invalid private key!</b>\n\n"
            "Please send a valid base58 encoded private key or cancel the operation.",
            reply_markup=cancel().as_markup(),
        )
        return
    except StateError:
        await message.answer("❌ Import expired. Please start again.", reply_markup=main_menu().as_markup())
        return

    await message.answer(
        "✅ <b>Wallet imported successfully!</b>\n\n"
        f"📍 <b>Address:</b> <code>{keypair.pubkey()}</code>\n"
        f"💰 <b>Balance:</b> {fmt_sol(balance)} SOL",
        reply_markup=main_menu().as_markup(),
    )

# -----------------------------------------------------------------------------
# Read-only views
# -----------------------------------------------------------------------------

@router.callback_query(F.data == "view_address")
async def view_address(call: CallbackQuery):
    wallets, _, engine, main_menu = services()
    await call.answer("Showing the public address")
    keypair = wallets.get(call.from_user.id)
    if keypair is None:
        await call.message.answer(NO_WALLET, reply_markup=no_wallet().as_markup())
        return

    address = str(keypair.pubkey())
    balance = await engine.gateway.get_balance(keypair.pubkey())
    caption = (
        "👁️ <b>Your Wallet Address</b>\n\n"
        f"📍 <b>Address:</b> <code>{address}</code>\n"
        f"💰 <b>Balance:</b> {fmt_sol(balance)} SOL\n\n"
        "You can share this address to receive SOL."
    )
    qr_file = BufferedInputFile(render_qr(address).getvalue(), filename="address.png")

    # send QR (retry 3× if Telegram connection hiccups)
    for attempt in range(3):
        try:
            await call.message.answer_photo(qr_file, caption=caption, reply_markup=main_menu().as_markup())
            return
        except TelegramNetworkError as e:
            logger.warning("QR send failed (%s) retry %s/3", e, attempt + 1)
            await asyncio.sleep(2)
    await call.message.answer(caption, reply_markup=main_menu().as_markup())


@router.callback_query(F.data == "check_balance")
async def check_balance(call: CallbackQuery):
    wallets, _, engine, main_menu = services()
    await call.answer("Checking balance...")
    keypair = wallets.get(call.from_user.id)
    if keypair is None:
        await call.message.answer(NO_WALLET, reply_markup=no_wallet().as_markup())
        return

    balance = await engine.gateway.get_balance(keypair.pubkey())
    await call.message.answer(
        "💰 <b>Wallet Balance</b>\n\n"
        f"📍 <b>Address:</b> <code>{keypair.pubkey()}</code>\n"
        f"💰 <b>Balance:</b> {fmt_sol(balance)} SOL\n\n"
        "🔄 Balance updated just now",
        reply_markup=main_menu().as_markup(),
    )


@router.callback_query(F.data == "tx_history")
async def tx_history(call: CallbackQuery):
    wallets, _, engine, main_menu = services()
    await call.answer("Loading transaction history...")
    keypair = wallets.get(call.from_user.id)
    if keypair is None:
        await call.message.answer(NO_WALLET, reply_markup=no_wallet().as_markup())
        return

    header = f"📊 <b>Transaction History</b>\n\n📍 <b>Address:</b> <code>{keypair.pubkey()}</code>\n\n"
    try:
        refs = await engine.gateway.recent_signatures(keypair.pubkey(), settings.HISTORY_LIMIT)
    except GatewayError:
        await call.message.answer(
            "📊 <b>Transaction History</b>\n\n"
            "❌ Error loading transaction history. Please try again later.",
            reply_markup=main_menu().as_markup(),
        )
        return

    if not refs:
        await call.message.answer(header + "No transactions found.", reply_markup=main_menu().as_markup())
        return

    lines = [header + "<b>Recent Transactions:</b>"]
    for i, ref in enumerate(refs, 1):
        mark = " ❌" if ref.failed else ""
        lines.append(f"{i}. <code>{short_sig(ref.signature)}</code>{mark}\n   📅 {fmt_block_time(ref.block_time)}")
    await call.message.answer("\n".join(lines), reply_markup=main_menu().as_markup())

# -----------------------------------------------------------------------------
# Export / forget
# -----------------------------------------------------------------------------

@router.callback_query(F.data == "export_private_key")
async def export_private_key(call: CallbackQuery):
    wallets, _, _, main_menu = services()
    await call.answer("Exporting private key...")
    try:
        export = wallets.export_secret(call.from_user.id)
    except NoWallet:
        await call.message.answer(NO_WALLET, reply_markup=no_wallet().as_markup())
        return

    sent = await call.message.answer(
        "🔐 <b>Your Private Key:</b>\n\n"
        f"<tg-spoiler><code>{export.secret}</code></tg-spoiler>\n\n"
        "⚠️ <b>KEEP THIS SECRET!</b> Anyone with this key can access your wallet.\n"
        f"💡 This message deletes itself in {settings.EXPORT_TTL} seconds.",
        protect_content=True,
    )
    task = asyncio.create_task(delete_later(sent, settings.EXPORT_TTL))
    _background.add(task)
    task.add_done_callback(_background.discard)

    await call.message.answer(
        "🔐 <b>Private Key Exported</b>\n\nYour private key has been sent above. Save it securely!",
        reply_markup=main_menu().as_markup(),
    )


@router.callback_query(F.data == "forget_wallet")
async def forget_wallet_ask(call: CallbackQuery):
    wallets, *_ = services()
    await call.answer()
    if call.from_user.id not in wallets:
        await call.message.answer(NO_WALLET, reply_markup=no_wallet().as_markup())
        return
    await call.message.answer(
        "🗑️ <b>Forget Wallet</b>\n\n"
        "The keypair will be removed from this bot. Funds stay on chain, but you can "
        "only reach them again with your exported private key.",
        reply_markup=confirm_forget().as_markup(),
    )


@router.callback_query(F.data == "forget_wallet:yes")
async def forget_wallet_confirm(call: CallbackQuery):
    _, _, engine, main_menu = services()
    forgotten = engine.forget_wallet(call.from_user.id)
    await call.answer("Wallet forgotten" if forgotten else "No wallet")
    await call.message.answer(
        "✅ Wallet removed from memory." if forgotten else NO_WALLET,
        reply_markup=main_menu().as_markup(),
    )
