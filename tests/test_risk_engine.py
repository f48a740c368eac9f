#!/usr/bin/env python3
"""
Tests for the risk scoring engine, tier mapping and sanctions screening.

Run with:
    pytest tests/test_risk_engine.py -v
"""

import asyncio
import random

import pytest

from aml_facilitator.errors import FaultPolicy, InvalidAddressError
from aml_facilitator.models.risk import RiskTier, WalletSignals
from aml_facilitator.services.behavior import BehaviorAnalyzer
from aml_facilitator.services.risk_engine import RiskEngine, score_signals
from aml_facilitator.services.sanctions import SanctionsCache, SanctionsSource
from fakes import FakeChain, SANCTIONED

ADDRESS = "0x1111111111111111111111111111111111111111"


def make_engine(chain, cache=None, oracle=None, policy=FaultPolicy.FALLBACK):
    sanctions = SanctionsSource(
        cache if cache is not None else SanctionsCache([SANCTIONED]),
        oracle=oracle,
        on_oracle_failure=policy,
    )
    return RiskEngine(sanctions, BehaviorAnalyzer(chain))


def assess(engine, address=ADDRESS):
    return asyncio.run(engine.assess(address))


class TestRiskTier:

    @pytest.mark.parametrize("score,tier", [
        (0, RiskTier.LOW), (39, RiskTier.LOW),
        (40, RiskTier.MEDIUM), (69, RiskTier.MEDIUM),
        (70, RiskTier.HIGH), (89, RiskTier.HIGH),
        (90, RiskTier.CRITICAL), (100, RiskTier.CRITICAL),
    ])
    def test_breakpoints(self, score, tier):
        assert RiskTier.from_score(score) is tier

    def test_monotonic_over_random_scores(self):
        order = [RiskTier.LOW, RiskTier.MEDIUM, RiskTier.HIGH, RiskTier.CRITICAL]
        rng = random.Random(1234)
        for _ in range(500):
            a, b = sorted(rng.randint(0, 100) for _ in range(2))
            assert order.index(RiskTier.from_score(a)) <= order.index(RiskTier.from_score(b))
            assert RiskTier.from_score(a) is RiskTier.from_score(a)


class TestScoreSignals:

    def test_eoa_without_history(self):
        score, flags = score_signals(WalletSignals(transaction_count=0))
        assert score == 40
        assert flags == ["no transaction history", "zero balance"]

    def test_contract_without_history(self):
        score, flags = score_signals(WalletSignals(is_contract=True, balance=1))
        assert score == 70
        assert flags == ["contract address", "no transaction history"]

    def test_new_wallet(self):
        score, flags = score_signals(WalletSignals(transaction_count=5, balance=1))
        assert score == 25 + 20
        assert flags == ["new wallet (< 10 transactions)", "wallet age estimate < 1"]

    def test_limited_history(self):
        score, _ = score_signals(WalletSignals(transaction_count=30, balance=1))
        assert score == 10 + 10

    def test_established_wallet(self):
        score, flags = score_signals(WalletSignals(transaction_count=70, balance=1))
        assert score == 0
        assert flags == []

    def test_non_sanctioned_never_reaches_100(self):
        for tx in (0, 1, 9, 10, 49, 50, 69, 70, 1000):
            for is_contract in (True, False):
                score, _ = score_signals(WalletSignals(is_contract=is_contract, transaction_count=tx))
                assert 0 <= score < 90


class TestRiskEngine:

    def test_eoa_without_history_is_medium(self):
        result = assess(make_engine(FakeChain(transaction_count=0, balance=5)))
        assert result.score == 40
        assert result.tier is RiskTier.MEDIUM
        assert not result.sanctioned

    def test_contract_without_history_is_high(self):
        result = assess(make_engine(FakeChain(code=b"\x60\x80", transaction_count=0, balance=5)))
        assert result.score == 70
        assert result.tier is RiskTier.HIGH
        assert result.is_contract
        assert result.flags[0] == "contract address"

    def test_sanctioned_short_circuits(self):
        chain = FakeChain()
        result = assess(make_engine(chain), SANCTIONED)
        assert result.score == 100
        assert result.tier is RiskTier.CRITICAL
        assert result.sanctioned
        assert result.flags[0] == "sanctioned address"
        assert chain.calls == []

    def test_wallet_age_is_tx_count_over_ten(self):
        result = assess(make_engine(FakeChain(transaction_count=37, balance=1)))
        assert result.wallet_age_estimate == 3
        assert result.transaction_count == 37

    def test_invalid_address_rejected_before_network(self):
        chain = FakeChain()
        oracle = FakeChain()
        engine = make_engine(chain, oracle=oracle)
        with pytest.raises(InvalidAddressError):
            assess(engine, "not-an-address")
        assert chain.calls == []
        assert oracle.calls == []

    def test_chain_read_failure_degrades(self):
        result = assess(make_engine(FakeChain(read_error=ConnectionError("rpc down"))))
        assert result.flags[0] == "analysis failed"
        assert result.transaction_count == 0
        assert result.is_contract is False
        assert not result.sanctioned
        assert result.score < 100

    def test_fresh_assessment_per_call(self):
        chain = FakeChain(transaction_count=0, balance=1)
        engine = make_engine(chain)
        first = assess(engine)
        chain.transaction_count = 200
        second = assess(engine)
        assert first.score == 40
        assert second.score == 0


class TestSanctionsSource:

    def test_oracle_hit_grows_cache(self):
        cache = SanctionsCache()
        oracle = FakeChain(sanctioned=(ADDRESS,))
        result = assess(make_engine(FakeChain(), cache=cache, oracle=oracle))
        assert result.sanctioned
        assert ADDRESS in cache

    def test_oracle_is_authoritative_over_local(self):
        """A clean oracle answer is not overridden by the local list."""
        oracle = FakeChain()
        source = SanctionsSource(SanctionsCache([ADDRESS]), oracle=oracle)
        assert asyncio.run(source.is_sanctioned(ADDRESS)) is False

    def test_oracle_failure_falls_back_to_local(self):
        oracle = FakeChain(oracle_error=TimeoutError("oracle timeout"))
        source = SanctionsSource(SanctionsCache([SANCTIONED]), oracle=oracle)
        assert asyncio.run(source.is_sanctioned(SANCTIONED)) is True
        assert asyncio.run(source.is_sanctioned(ADDRESS)) is False

    def test_oracle_failure_propagates_without_fallback(self):
        oracle = FakeChain(oracle_error=TimeoutError("oracle timeout"))
        engine = make_engine(FakeChain(), oracle=oracle, policy=FaultPolicy.PROPAGATE)
        with pytest.raises(TimeoutError):
            assess(engine)

    def test_local_lookup_is_case_insensitive(self):
        source = SanctionsSource(SanctionsCache([SANCTIONED.upper().replace("0X", "0x")]))
        assert asyncio.run(source.is_sanctioned(SANCTIONED)) is True

    def test_deny_is_not_an_oracle_policy(self):
        with pytest.raises(ValueError):
            SanctionsSource(SanctionsCache(), on_oracle_failure=FaultPolicy.DENY)


def test_cache_inserts_are_idempotent():
    cache = SanctionsCache([SANCTIONED])
    cache.add(SANCTIONED.upper().replace("0X", "0x"))
    cache.add(ADDRESS)
    cache.add(ADDRESS)
    assert len(cache) == 2
