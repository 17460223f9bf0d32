"""Tests for the two-path balance ledger."""

from __future__ import annotations

import asyncio

import pytest

from engine.errors import RemoteWriteFailure, ValidationError
from engine.ledger import BalanceLedger
from engine.remote import InMemoryBackend
from models.account import Account
from models.config import LedgerConfig


def _run_async(coro):
    return asyncio.run(coro)


def _ledger(backend: InMemoryBackend, **config) -> BalanceLedger:
    ledger = BalanceLedger(LedgerConfig(**config), privileged=backend.privileged, direct=backend.direct)
    ledger.register(Account(user_id="u1", cash_available=100_000))
    return ledger


class _SlowWriter:
    def __init__(self, delay: float) -> None:
        self.delay = delay

    async def write_balance(self, user_id: str, new_balance: float) -> None:
        await asyncio.sleep(self.delay)


class TestApplyDelta:
    def test_privileged_path(self):
        backend = InMemoryBackend()
        ledger = _ledger(backend)
        result = _run_async(ledger.apply_delta("u1", 90_000))
        assert result.success and result.path == "privileged"
        assert ledger.balance("u1") == 90_000
        assert backend.balances["u1"] == 90_000
        assert backend.calls == [("privileged", "u1")]

    def test_fallback_when_privileged_fails(self):
        backend = InMemoryBackend(privileged_available=False)
        ledger = _ledger(backend)
        result = _run_async(ledger.apply_delta("u1", 90_000))
        assert result
        assert result.path == "direct"
        assert ledger.balance("u1") == 90_000
        assert backend.calls == [("privileged", "u1"), ("direct", "u1")]
        assert len(result.errors) == 1

    def test_both_paths_fail(self):
        backend = InMemoryBackend(privileged_available=False, direct_available=False)
        ledger = _ledger(backend)
        result = _run_async(ledger.apply_delta("u1", 90_000))
        assert not result
        assert result.path is None
        assert ledger.balance("u1") == 100_000
        assert "u1" not in backend.balances
        assert len(result.errors) == 2

    def test_timeout_falls_back(self):
        backend = InMemoryBackend()
        ledger = BalanceLedger(
            LedgerConfig(remote_timeout_seconds=0.05),
            privileged=_SlowWriter(1.0),
            direct=backend.direct,
        )
        ledger.register(Account(user_id="u1", cash_available=100_000))
        result = _run_async(ledger.apply_delta("u1", 95_000))
        assert result.path == "direct"
        assert "timed out" in result.errors[0]
        assert ledger.balance("u1") == 95_000

    def test_timeout_on_both_paths(self):
        backend = InMemoryBackend(latency_seconds=0.5)
        ledger = _ledger(backend, remote_timeout_seconds=0.02)
        result = _run_async(ledger.apply_delta("u1", 95_000))
        assert not result.success
        assert ledger.balance("u1") == 100_000

    def test_optimistic_mode_is_flagged(self):
        backend = InMemoryBackend(privileged_available=False, direct_available=False)
        ledger = _ledger(backend, optimistic_on_failure=True)
        result = _run_async(ledger.apply_delta("u1", 90_000))
        assert result.success
        assert result.degraded
        assert ledger.balance("u1") == 90_000

    def test_rounds_to_whole_units(self):
        ledger = _ledger(InMemoryBackend())
        result = _run_async(ledger.apply_delta("u1", 90_000.6))
        assert result.new_balance == 90_001
        assert ledger.balance("u1") == 90_001

    def test_rounding_can_be_disabled(self):
        ledger = _ledger(InMemoryBackend(), round_balances=False)
        _run_async(ledger.apply_delta("u1", 90_000.6))
        assert ledger.balance("u1") == 90_000.6

    def test_negative_balance_rejected(self):
        backend = InMemoryBackend()
        ledger = _ledger(backend)
        with pytest.raises(ValidationError):
            _run_async(ledger.apply_delta("u1", -1))
        assert backend.calls == []

    def test_unknown_user(self):
        ledger = _ledger(InMemoryBackend())
        with pytest.raises(KeyError):
            _run_async(ledger.apply_delta("nobody", 10))

    def test_journal_records_every_attempt(self):
        backend = InMemoryBackend()
        ledger = _ledger(backend)
        _run_async(ledger.apply_delta("u1", 90_000))
        backend.privileged_available = backend.direct_available = False
        _run_async(ledger.apply_delta("u1", 80_000))
        assert [w.success for w in ledger.journal] == [True, False]


class TestDebitCredit:
    def test_debit(self):
        ledger = _ledger(InMemoryBackend())
        _run_async(ledger.debit("u1", 10_000))
        assert ledger.balance("u1") == 90_000

    def test_overdraft_rejected_without_remote_call(self):
        backend = InMemoryBackend()
        ledger = _ledger(backend)
        with pytest.raises(ValidationError, match="Insufficient funds"):
            _run_async(ledger.debit("u1", 100_001))
        assert backend.calls == []
        assert ledger.balance("u1") == 100_000

    def test_credit(self):
        ledger = _ledger(InMemoryBackend())
        _run_async(ledger.credit("u1", 2_500))
        assert ledger.balance("u1") == 102_500

    def test_failed_debit_raises_and_keeps_balance(self):
        ledger = _ledger(InMemoryBackend(privileged_available=False, direct_available=False))
        with pytest.raises(RemoteWriteFailure):
            _run_async(ledger.debit("u1", 10_000))
        assert ledger.balance("u1") == 100_000

    @pytest.mark.parametrize("method", ["debit", "credit"])
    def test_negative_amounts_rejected(self, method):
        ledger = _ledger(InMemoryBackend())
        with pytest.raises(ValidationError):
            _run_async(getattr(ledger, method)("u1", -5))

    def test_half_units_round_up(self):
        ledger = _ledger(InMemoryBackend())
        result = _run_async(ledger.apply_delta("u1", 90_000.5))
        assert result.new_balance == 90_001
        assert ledger.round_amount(10_000.5) == 10_001
        assert ledger.round_amount(10_000.4) == 10_000


class TestConcurrentWrites:
    def test_overlapping_credits_both_land(self):
        backend = InMemoryBackend(latency_seconds=0.01)
        ledger = _ledger(backend)

        async def scenario():
            await asyncio.gather(ledger.credit("u1", 100), ledger.credit("u1", 100))

        _run_async(scenario())
        assert ledger.balance("u1") == 100_200
        assert backend.balances["u1"] == 100_200
        assert [w.previous_balance for w in ledger.journal] == [100_000, 100_100]

    def test_overlapping_debit_and_credit(self):
        backend = InMemoryBackend(latency_seconds=0.01)
        ledger = _ledger(backend)

        async def scenario():
            await asyncio.gather(
                ledger.debit("u1", 30_000),
                ledger.credit("u1", 5_000),
                ledger.debit("u1", 10_000),
            )

        _run_async(scenario())
        assert ledger.balance("u1") == 65_000

    def test_overdraft_checked_against_latest_balance(self):
        ledger = _ledger(InMemoryBackend(latency_seconds=0.01))

        async def scenario():
            return await asyncio.gather(
                ledger.debit("u1", 60_000),
                ledger.debit("u1", 60_000),
                return_exceptions=True,
            )

        first, second = _run_async(scenario())
        assert first.success
        assert isinstance(second, ValidationError)
        assert ledger.balance("u1") == 40_000
