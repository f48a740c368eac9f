"""Shared pytest fixtures for facilitator tests."""

import sys
from pathlib import Path

import pytest

# Ensure the project root and test helpers are importable
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from fakes import FakeChain, Wallet  # noqa: E402


@pytest.fixture
def payer() -> Wallet:
    return Wallet.from_seed(1)


@pytest.fixture
def merchant() -> Wallet:
    return Wallet.from_seed(2)


@pytest.fixture
def chain() -> FakeChain:
    """Established EOA with plenty of tokens: scores LOW."""
    return FakeChain(transaction_count=120, balance=10**18, token_balance=10**9)
