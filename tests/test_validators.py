"""Verdicts of the input validators."""
from decimal import Decimal

import base58
import pytest
from solders.keypair import Keypair

from walletbot.validators import (
    is_valid_address,
    is_valid_amount,
    is_valid_secret_key,
    parse_amount,
    to_lamports,
)


def b58_of_length(n: int) -> str:
    return base58.b58encode(bytes([7]) * n).decode()


class TestAmount:
    @pytest.mark.parametrize("text", ["0", "-5", "abc", "1000", "1000.0001", "", "NaN", "inf", "1e-10", "0.3000000009"])
    def test_rejects(self, text):
        assert is_valid_amount(text) is False

    @pytest.mark.parametrize("text", ["0.5", "999.9999", " 0.3 ", "0.000000001"])
    def test_accepts(self, text):
        assert is_valid_amount(text) is True

    def test_parse_amount_is_exact(self):
        assert parse_amount("0.3") == Decimal("0.3")

    def test_parse_amount_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_amount("abc")

    def test_lamports_round_down(self):
        assert to_lamports(Decimal("0.3")) == 300_000_000
        assert to_lamports(Decimal("0.000000001")) == 1
        assert to_lamports(Decimal("999.999999999")) == 999_999_999_999


class TestAddress:
    def test_accepts_generated_pubkey(self):
        assert is_valid_address(str(Keypair().pubkey())) is True

    @pytest.mark.parametrize("length", [0, 31, 33, 64])
    def test_rejects_wrong_length(self, length):
        assert is_valid_address(b58_of_length(length)) is False

    @pytest.mark.parametrize("text", ["0OIl", "not an address", "So1111111111111111111111111111111111111111112!"])
    def test_rejects_non_base58(self, text):
        assert is_valid_address(text) is False


class TestSecretKey:
    def test_accepts_64_bytes(self):
        assert is_valid_secret_key(b58_of_length(64)) is True

    def test_accepts_real_keypair(self):
        assert is_valid_secret_key(base58.b58encode(bytes(Keypair())).decode()) is True

    @pytest.mark.parametrize("length", [63, 65, 32])
    def test_rejects_other_lengths(self, length):
        assert is_valid_secret_key(b58_of_length(length)) is False

    def test_rejects_garbage(self):
        assert is_valid_secret_key("this is not base58 at all!") is False
