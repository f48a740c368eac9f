"""
Risk scoring engine.

Combines the sanctions source and on-chain behavior into one
point-in-time RiskAssessment:

    score 100 / CRITICAL   if sanctioned (behavior analysis skipped)
    otherwise additive, capped at 100:
        contract address            +30
        0 transactions              +40
        < 10 transactions           +25
        < 50 transactions           +10
        age estimate < 1            +20   (only with transaction history)
        age estimate < 7            +10   (only with transaction history)

Non-sanctioned addresses therefore never reach 100, and never reach CRITICAL.
"""
import logging

from web3 import Web3

from aml_facilitator.errors import InvalidAddressError
from aml_facilitator.models.risk import RiskAssessment, RiskTier, WalletSignals
from aml_facilitator.services.behavior import BehaviorAnalyzer
from aml_facilitator.services.sanctions import SanctionsSource

logger = logging.getLogger("risk")

SANCTIONED_SCORE = 100
MAX_SCORE = 100

CONTRACT_WEIGHT = 30
NO_HISTORY_WEIGHT = 40
NEW_WALLET_WEIGHT = 25       # < 10 transactions
LIMITED_HISTORY_WEIGHT = 10  # < 50 transactions
AGE_UNDER_1_WEIGHT = 20
AGE_UNDER_7_WEIGHT = 10

FLAG_SANCTIONED = "sanctioned address"
FLAG_ANALYSIS_FAILED = "analysis failed"
FLAG_CONTRACT = "contract address"
FLAG_NO_HISTORY = "no transaction history"
FLAG_NEW_WALLET = "new wallet (< 10 transactions)"
FLAG_LIMITED_HISTORY = "limited history (< 50 transactions)"
FLAG_AGE_UNDER_1 = "wallet age estimate < 1"
FLAG_AGE_UNDER_7 = "wallet age estimate < 7"
FLAG_ZERO_BALANCE = "zero balance"


def score_signals(signals: WalletSignals) -> tuple[int, list[str]]:
    """
    Score behavior signals for a non-sanctioned address.

    Returns:
        Tuple of (score, flags) with flags in check order
    """
    score = 0
    flags: list[str] = []

    if signals.analysis_failed:
        flags.append(FLAG_ANALYSIS_FAILED)

    if signals.is_contract:
        score += CONTRACT_WEIGHT
        flags.append(FLAG_CONTRACT)

    tx_count = signals.transaction_count
    if tx_count == 0:
        score += NO_HISTORY_WEIGHT
        flags.append(FLAG_NO_HISTORY)
    elif tx_count < 10:
        score += NEW_WALLET_WEIGHT
        flags.append(FLAG_NEW_WALLET)
    elif tx_count < 50:
        score += LIMITED_HISTORY_WEIGHT
        flags.append(FLAG_LIMITED_HISTORY)

    # No history means no age to estimate; that risk is already counted above
    if tx_count > 0:
        age = signals.wallet_age_estimate
        if age < 1:
            score += AGE_UNDER_1_WEIGHT
            flags.append(FLAG_AGE_UNDER_1)
        elif age < 7:
            score += AGE_UNDER_7_WEIGHT
            flags.append(FLAG_AGE_UNDER_7)

    if signals.balance == 0:
        flags.append(FLAG_ZERO_BALANCE)

    # Sanctioned is the only path to 100
    return min(score, MAX_SCORE - 1), flags


class RiskEngine:
    """Produces a fresh RiskAssessment per address; nothing is cached here."""

    def __init__(self, sanctions: SanctionsSource, analyzer: BehaviorAnalyzer):
        self.sanctions = sanctions
        self.analyzer = analyzer

    async def assess(self, address: str) -> RiskAssessment:
        """
        Assess an address.

        Raises:
            InvalidAddressError: malformed address (checked before any network call)
            Exception: oracle failure when the sanctions source propagates faults
        """
        if not isinstance(address, str) or not Web3.is_address(address):
            raise InvalidAddressError(f"Invalid address: {address}")

        logger.info(f"Running risk assessment for {address}")

        if await self.sanctions.is_sanctioned(address):
            assessment = RiskAssessment(
                address=address,
                score=SANCTIONED_SCORE,
                tier=RiskTier.from_score(SANCTIONED_SCORE),
                sanctioned=True,
                flags=[FLAG_SANCTIONED],
            )
            logger.warning(f"Risk assessment for {address}: CRITICAL (sanctioned)")
            return assessment

        signals = await self.analyzer.analyze(address)
        score, flags = score_signals(signals)
        tier = RiskTier.from_score(score)

        logger.info(f"Risk assessment for {address}: {tier.value} (score: {score})")
        if flags:
            logger.info(f"  Flags: {', '.join(flags)}")

        return RiskAssessment(
            address=address,
            score=score,
            tier=tier,
            sanctioned=False,
            flags=flags,
            wallet_age_estimate=signals.wallet_age_estimate,
            transaction_count=signals.transaction_count,
            is_contract=signals.is_contract,
            balance=signals.balance,
        )
