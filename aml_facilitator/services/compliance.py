"""
Compliance modifier - AML screening as a verification modifier.

Wraps the RiskEngine with merchant policy:
- sanctioned addresses are always rejected (no override)
- score >= threshold is rejected, unless manual review is enabled and the
  tier is HIGH, in which case the payment passes with a review flag
- any engine failure rejects the payment (fail closed)
"""
import logging
from dataclasses import dataclass

from aml_facilitator.models.risk import RiskTier
from aml_facilitator.services.modifiers import ModifierVerdict, VerificationContext
from aml_facilitator.services.risk_engine import RiskEngine

logger = logging.getLogger("compliance")

COMPLIANCE_PRIORITY = 10
METADATA_KEY = "compliance"


@dataclass
class CompliancePolicy:
    enabled: bool = True
    risk_threshold: int = 70
    require_manual_review: bool = False

    def __post_init__(self):
        if not 0 <= self.risk_threshold <= 100:
            raise ValueError(f"risk_threshold must be within [0, 100], got {self.risk_threshold}")


class ComplianceModifier:
    """Runs early in the chain: compliance gates every later check."""

    priority = COMPLIANCE_PRIORITY
    name = "ComplianceModifier"

    def __init__(self, engine: RiskEngine, policy: CompliancePolicy):
        self.engine = engine
        self.policy = policy

    async def execute(self, context: VerificationContext) -> ModifierVerdict:
        if not self.policy.enabled:
            return ModifierVerdict(
                allowed=True,
                metadata={METADATA_KEY: {"enabled": False, "checked": False}},
            )

        payer = context.payer
        if not payer:
            return ModifierVerdict(
                allowed=False,
                reason="Cannot perform compliance check: no payer to check",
            )

        try:
            assessment = await self.engine.assess(payer)
        except Exception as e:
            logger.exception(f"Compliance check error for {payer}: {e}")
            return ModifierVerdict(
                allowed=False,
                reason="Compliance check error",
                metadata={METADATA_KEY: {"checked": False, "error": str(e)}},
            )

        metadata = {METADATA_KEY: assessment.to_summary()}
        threshold = self.policy.risk_threshold

        if assessment.sanctioned:
            logger.warning(f"Compliance: REJECTED - {payer} is sanctioned")
            return ModifierVerdict(allowed=False, reason="SANCTIONED address", metadata=metadata)

        if assessment.score >= threshold:
            if self.policy.require_manual_review and assessment.tier is RiskTier.HIGH:
                logger.warning(f"Compliance: PASSED (flagged for manual review, score {assessment.score})")
                return ModifierVerdict(
                    allowed=True,
                    reason="HIGH RISK - requires manual review",
                    metadata={**metadata, "requires_manual_review": True},
                )

            logger.info(f"Compliance: REJECTED - risk score {assessment.score} >= threshold {threshold}")
            return ModifierVerdict(
                allowed=False,
                reason=f"Risk score too high ({assessment.score}/{threshold})",
                metadata=metadata,
            )

        logger.info(f"Compliance: PASSED ({assessment.tier.value}, score {assessment.score})")
        return ModifierVerdict(allowed=True, metadata=metadata)
