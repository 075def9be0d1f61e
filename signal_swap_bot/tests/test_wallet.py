"""
Unit tests for Balance Oracle
"""

import pytest
import asyncio
import sys
import os
from decimal import Decimal
from types import SimpleNamespace

# Add repo root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from solders.keypair import Keypair  # type: ignore

from signal_swap_bot.core.wallet import BalanceOracle
from signal_swap_bot.exceptions import LedgerUnavailableException

OWNER = Keypair().pubkey()


def token_account(amount: str, decimals: int = 6):
    parsed = {"info": {"tokenAmount": {"amount": amount, "decimals": decimals}}}
    return SimpleNamespace(account=SimpleNamespace(data=SimpleNamespace(parsed=parsed)))


class FakeClient:
    def __init__(self, lamports=0, accounts=(), error=None):
        self.lamports = lamports
        self.accounts = list(accounts)
        self.error = error
        self.token_opts = None

    async def get_balance(self, owner):
        if self.error:
            raise self.error
        return SimpleNamespace(value=self.lamports)

    async def get_token_accounts_by_owner_json_parsed(self, owner, opts):
        self.token_opts = opts
        return SimpleNamespace(value=self.accounts)


class TestBalances:
    """Test balance snapshot"""

    def test_snapshot_in_ui_units(self):
        client = FakeClient(lamports=1_250_000_000, accounts=[token_account("42500000")])
        snapshot = asyncio.run(BalanceOracle(client).get_balances(OWNER))

        assert snapshot.native_amount == Decimal("1.25")
        assert snapshot.token_amount == Decimal("42.5")

    def test_sums_all_token_accounts(self):
        client = FakeClient(accounts=[token_account("1000000"), token_account("2500000")])
        snapshot = asyncio.run(BalanceOracle(client).get_balances(str(OWNER)))

        assert snapshot.token_amount == Decimal("3.5")

    def test_no_token_account_is_zero(self):
        client = FakeClient(lamports=5)
        snapshot = asyncio.run(BalanceOracle(client).get_balances(OWNER))

        assert snapshot.token_amount == 0
        assert snapshot.native_amount == Decimal("0.000000005")

    def test_filters_by_tracked_mint(self):
        client = FakeClient()
        oracle = BalanceOracle(client)
        asyncio.run(oracle.get_balances(OWNER))

        assert client.token_opts.mint == oracle.token_mint

    def test_node_failure_raises(self):
        client = FakeClient(error=ConnectionError("timeout"))
        with pytest.raises(LedgerUnavailableException):
            asyncio.run(BalanceOracle(client).get_balances(OWNER))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
