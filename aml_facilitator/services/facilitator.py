"""
Facilitator - wires verification and settlement from settings.
"""
import logging
from typing import Optional

from aml_facilitator.config import Settings
from aml_facilitator.errors import FaultPolicy
from aml_facilitator.models.payment import (
    PaymentAuthorization,
    PaymentRequirements,
    SettlementResult,
    VerificationResult,
)
from aml_facilitator.services.behavior import BehaviorAnalyzer
from aml_facilitator.services.chain import ChainClient
from aml_facilitator.services.compliance import ComplianceModifier, CompliancePolicy
from aml_facilitator.services.modifiers import ModifierChain
from aml_facilitator.services.pipeline import VerificationPipeline
from aml_facilitator.services.risk_engine import RiskEngine
from aml_facilitator.services.sanctions import (
    SanctionsCache,
    SanctionsSource,
    load_sanctions_list,
)
from aml_facilitator.services.settlement import SettlementExecutor

logger = logging.getLogger("facilitator")


def build_risk_engine(
    settings: Settings,
    chain: ChainClient,
    oracle_chain: Optional[ChainClient] = None,
) -> RiskEngine:
    cache = SanctionsCache(load_sanctions_list(settings.sanctions_list_path))
    sanctions = SanctionsSource(
        cache,
        oracle=oracle_chain if settings.use_oracle else None,
        oracle_address=settings.oracle_address,
        on_oracle_failure=FaultPolicy.FALLBACK if settings.fallback_to_local else FaultPolicy.PROPAGATE,
    )
    return RiskEngine(sanctions, BehaviorAnalyzer(chain))


class Facilitator:

    def __init__(self, pipeline: VerificationPipeline, executor: SettlementExecutor):
        self.pipeline = pipeline
        self.executor = executor

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        chain: Optional[ChainClient] = None,
        oracle_chain: Optional[ChainClient] = None,
    ) -> "Facilitator":
        chain = chain or ChainClient(settings.rpc_url)

        merchant_account = None
        if settings.merchant_private_key:
            merchant_account = chain.load_account(settings.merchant_private_key)
            logger.info(f"Merchant account loaded: {merchant_account.address}")
        else:
            logger.warning("No MERCHANT_PRIVATE_KEY set - settlement will fail")

        # Always registered: when disabled it records the skip in the result metadata
        if not settings.aml_enabled:
            oracle_chain = None
        elif settings.use_oracle and oracle_chain is None:
            oracle_chain = ChainClient(settings.oracle_rpc_url)
        engine = build_risk_engine(settings, chain, oracle_chain)
        modifiers = ModifierChain([ComplianceModifier(
            engine,
            CompliancePolicy(
                enabled=settings.aml_enabled,
                risk_threshold=settings.risk_threshold,
                require_manual_review=settings.require_manual_review,
            ),
        )])

        if settings.aml_enabled:
            logger.info(
                f"AML enabled (threshold: {settings.risk_threshold}"
                f"{', oracle: ON' if settings.use_oracle else ''})"
            )
        else:
            logger.info("AML disabled")

        return cls(
            VerificationPipeline(chain, modifiers),
            SettlementExecutor(chain, merchant_account),
        )

    async def verify(
        self,
        authorization: PaymentAuthorization,
        requirements: PaymentRequirements,
    ) -> VerificationResult:
        return await self.pipeline.verify(authorization, requirements)

    async def settle(
        self,
        authorization: PaymentAuthorization,
        requirements: PaymentRequirements,
    ) -> SettlementResult:
        return await self.executor.settle(authorization, requirements)

    async def verify_and_settle(
        self,
        authorization: PaymentAuthorization,
        requirements: PaymentRequirements,
    ) -> tuple[VerificationResult, Optional[SettlementResult]]:
        """Settle only after a successful verification."""
        verification = await self.verify(authorization, requirements)
        if not verification.is_valid:
            return verification, None
        return verification, await self.settle(authorization, requirements)
