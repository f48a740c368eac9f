"""
Risk assessment types.

A RiskAssessment is produced fresh for every payment and never cached.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List


class RiskTier(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_score(cls, score: int) -> "RiskTier":
        """Map a 0-100 score onto its tier. Breakpoints: 90 / 70 / 40."""
        if score >= 90:
            return cls.CRITICAL
        if score >= 70:
            return cls.HIGH
        if score >= 40:
            return cls.MEDIUM
        return cls.LOW


@dataclass
class WalletSignals:
    """Raw on-chain behavior readings for one address."""
    is_contract: bool = False
    transaction_count: int = 0
    balance: int = 0
    analysis_failed: bool = False

    @property
    def wallet_age_estimate(self) -> int:
        # Crude proxy: one "age unit" per ten sent transactions, not calendar days
        return self.transaction_count // 10


@dataclass
class RiskAssessment:
    address: str
    score: int
    tier: RiskTier
    sanctioned: bool = False
    flags: List[str] = field(default_factory=list)
    wallet_age_estimate: int = 0
    transaction_count: int = 0
    is_contract: bool = False
    balance: int = 0

    def to_summary(self) -> dict:
        return {
            "checked": True,
            "address": self.address,
            "risk_score": self.score,
            "risk_tier": self.tier.value,
            "sanctioned": self.sanctioned,
            "flags": list(self.flags),
            "wallet_age_estimate": self.wallet_age_estimate,
            "transaction_count": self.transaction_count,
            "is_contract": self.is_contract,
        }
