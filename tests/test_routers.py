"""Router handlers driven with mocked aiogram messages and callback queries."""
import asyncio
import logging
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import base58
import pytest
from aiogram.exceptions import TelegramNetworkError
from solders.keypair import Keypair

from walletbot.config import settings
from walletbot.flows import AwaitingAmount, AwaitingDestination, ImportWallet
from walletbot.gateway import TxRef
from walletbot.routers import menu, send, wallet


def sent_text(mock) -> str:
    args, kwargs = mock.await_args
    return args[0] if args else kwargs.get("text", kwargs.get("caption", ""))


class TestMenu:
    @pytest.mark.asyncio
    async def test_cancel_clears_flow(self, runtime, flows, engine, call, uid):
        engine.start_import(uid)
        call.data = "cancel"

        await menu.back_to_menu(call)

        assert uid not in flows
        call.answer.assert_awaited_once_with("Cancelled")
        assert "Main Menu" in sent_text(call.message.answer)

    @pytest.mark.asyncio
    async def test_start_resets_flow(self, runtime, flows, engine, message, uid):
        engine.start_import(uid)
        await menu.cmd_start(message)
        assert uid not in flows
        assert "Welcome" in sent_text(message.answer)

    def test_catch_all_skips_users_in_a_flow(self, runtime, engine, message, uid):
        assert menu.no_pending_flow(message) is True
        engine.start_import(uid)
        assert menu.no_pending_flow(message) is False


class TestImportRouter:
    @pytest.mark.asyncio
    async def test_invalid_key_reasks(self, runtime, flows, engine, message, uid):
        engine.start_import(uid)
        message.text = "garbage"

        await wallet.import_wallet_finish(message)

        message.delete.assert_awaited_once()
        assert "Invalid private key" in sent_text(message.answer)
        assert isinstance(flows.get(uid), ImportWallet)

    @pytest.mark.asyncio
    async def test_valid_key_imports(self, runtime, flows, wallets, engine, message, uid):
        original = Keypair()
        engine.start_import(uid)
        message.text = base58.b58encode(bytes(original)).decode()

        await wallet.import_wallet_finish(message)

        text = sent_text(message.answer)
        assert "imported successfully" in text
        assert str(original.pubkey()) in text
        assert message.text not in text
        assert wallets.get(uid).pubkey() == original.pubkey()
        assert uid not in flows

    def test_filter_matches_only_import_flow(self, runtime, engine, message, uid):
        assert wallet.awaiting_import(message) is False
        engine.start_import(uid)
        assert wallet.awaiting_import(message) is True


class TestWalletViews:
    @pytest.mark.asyncio
    async def test_view_address_without_wallet(self, runtime, call):
        await wallet.view_address(call)
        assert "No wallet found" in sent_text(call.message.answer)
        call.message.answer_photo.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_view_address_sends_qr(self, runtime, funded, call):
        await wallet.view_address(call)

        call.message.answer_photo.assert_awaited_once()
        _, kwargs = call.message.answer_photo.await_args
        assert str(funded.pubkey()) in kwargs["caption"]
        assert "1.0000 SOL" in kwargs["caption"]

    @pytest.mark.asyncio
    async def test_check_balance(self, runtime, funded, call):
        await wallet.check_balance(call)
        assert "1.0000 SOL" in sent_text(call.message.answer)

    @pytest.mark.asyncio
    async def test_history(self, runtime, funded, gateway, call):
        gateway.history = [TxRef("A" * 88, 1_700_000_000), TxRef("B" * 88, None, failed=True)]

        await wallet.tx_history(call)

        text = sent_text(call.message.answer)
        assert "A" * 20 in text
        assert "pending" in text
        assert "❌" in text

    @pytest.mark.asyncio
    async def test_history_error(self, runtime, funded, gateway, call):
        gateway.history_error = True
        await wallet.tx_history(call)
        assert "Error loading transaction history" in sent_text(call.message.answer)

    @pytest.mark.asyncio
    async def test_export_is_protected_and_deleted(self, runtime, monkeypatch, funded, call):
        monkeypatch.setattr(settings, "EXPORT_TTL", 0)
        secret_msg = Mock(message_id=99)
        secret_msg.delete = AsyncMock()
        call.message.answer = AsyncMock(return_value=secret_msg)

        await wallet.export_private_key(call)
        await asyncio.sleep(0.01)

        first_args, first_kwargs = call.message.answer.await_args_list[0]
        assert base58.b58encode(bytes(funded)).decode() in first_args[0]
        assert first_kwargs["protect_content"] is True
        secret_msg.delete.assert_awaited_once()
        assert not wallet._background

    @pytest.mark.asyncio
    async def test_export_delete_survives_telegram_errors(self, runtime, monkeypatch, funded, call, caplog):
        monkeypatch.setattr(settings, "EXPORT_TTL", 0)
        secret_msg = Mock(message_id=99)
        secret_msg.delete = AsyncMock(side_effect=TelegramNetworkError(method=Mock(), message="down"))
        call.message.answer = AsyncMock(return_value=secret_msg)

        with caplog.at_level(logging.WARNING):
            await wallet.export_private_key(call)
            assert len(wallet._background) == 1
            await asyncio.sleep(0.01)

        secret_msg.delete.assert_awaited_once()
        assert "Could not delete secret message 99" in caplog.text
        assert not wallet._background

    @pytest.mark.asyncio
    async def test_forget(self, runtime, wallets, funded, call, uid):
        await wallet.forget_wallet_confirm(call)
        assert uid not in wallets
        assert "removed" in sent_text(call.message.answer)


class TestSendRouter:
    @pytest.mark.asyncio
    async def test_low_balance(self, runtime, flows, wallets, gateway, call, uid):
        gateway.set_balance(wallets.generate(uid).pubkey(), "0.0005")

        await send.send_start(call)

        text = sent_text(call.message.answer)
        assert "Insufficient balance" in text
        assert "0.001 SOL" in text
        assert uid not in flows

    @pytest.mark.asyncio
    async def test_full_conversation(self, runtime, flows, gateway, funded, call, message, uid, destination):
        await send.send_start(call)
        assert isinstance(flows.get(uid), AwaitingDestination)

        message.text = "not-an-address"
        await send.send_destination(message)
        assert "Invalid Solana address" in sent_text(message.answer)
        assert isinstance(flows.get(uid), AwaitingDestination)

        message.text = destination
        await send.send_destination(message)
        assert flows.get(uid) == AwaitingAmount(destination)

        message.text = "5"
        await send.send_amount(message)
        assert "Insufficient balance" in sent_text(message.answer)

        message.text = "0.3"
        await send.send_amount(message)
        _, kwargs = message.answer.await_args
        assert "Confirm Transaction" in sent_text(message.answer)
        flow = flows.get(uid)
        assert flow.amount == Decimal("0.3")

        markup = kwargs["reply_markup"]
        confirm_data = markup.inline_keyboard[0][0].callback_data
        status = Mock()
        status.edit_text = AsyncMock()
        call.message.answer = AsyncMock(return_value=status)
        call.data = confirm_data

        await send.send_confirm(call)

        call.message.edit_reply_markup.assert_awaited_once_with(reply_markup=None)
        assert "Transaction Successful" in sent_text(status.edit_text)
        assert len(gateway.submitted) == 1
        assert uid not in flows

    @pytest.mark.asyncio
    async def test_confirm_without_flow(self, runtime, gateway, funded, call):
        status = Mock()
        status.edit_text = AsyncMock()
        call.message.answer = AsyncMock(return_value=status)
        call.data = "confirm_send:deadbeef:0.3"

        await send.send_confirm(call)

        assert "expired" in sent_text(status.edit_text)
        assert gateway.submitted == []

    def test_outcome_text_failure_is_generic(self):
        from walletbot.pipeline import Errored

        text = send.outcome_text(Decimal("0.3"), "dest", Errored("rpc said something internal"))
        assert "Transaction Failed" in text
        assert "internal" not in text
