from aiogram.utils.keyboard import InlineKeyboardBuilder

from walletbot.flows import ConfirmToken


def main_menu() -> InlineKeyboardBuilder:
    kb = InlineKeyboardBuilder()
    kb.button(text="🔑 Generate Wallet", callback_data="generate_wallet")
    kb.button(text="📥 Import Wallet", callback_data="import_wallet")
    kb.button(text="👁️ View Address", callback_data="view_address")
    kb.button(text="🔐 Export Private Key", callback_data="export_private_key")
    kb.button(text="💰 Check Balance", callback_data="check_balance")
    kb.button(text="📊 Transaction History", callback_data="tx_history")
    kb.button(text="💸 Send SOL", callback_data="send_sol_menu")
    kb.button(text="🗑️ Forget Wallet", callback_data="forget_wallet")
    kb.button(text="🔄 Refresh", callback_data="refresh_menu")
    kb.adjust(2)
    return kb


def no_wallet() -> InlineKeyboardBuilder:
    kb = InlineKeyboardBuilder()
    kb.button(text="🔑 Generate Wallet", callback_data="generate_wallet")
    kb.button(text="📥 Import Wallet", callback_data="import_wallet")
    kb.button(text="🔄 Back to Menu", callback_data="refresh_menu")
    kb.adjust(2)
    return kb


def cancel() -> InlineKeyboardBuilder:
    kb = InlineKeyboardBuilder()
    kb.button(text="❌ Cancel", callback_data="cancel")
    return kb


def confirm_send(token: ConfirmToken) -> InlineKeyboardBuilder:
    kb = InlineKeyboardBuilder()
    kb.button(text="✅ Confirm Send", callback_data=token.pack())
    kb.button(text="❌ Cancel", callback_data="cancel")
    kb.adjust(2)
    return kb


def confirm_forget() -> InlineKeyboardBuilder:
    kb = InlineKeyboardBuilder()
    kb.button(text="🗑️ Yes, forget it", callback_data="forget_wallet:yes")
    kb.button(text="⬅️ Keep it", callback_data="refresh_menu")
    kb.adjust(2)
    return kb
