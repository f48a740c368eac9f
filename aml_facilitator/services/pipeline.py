"""
Payment verification pipeline.

    signature -> balance -> modifier chain -> verdict

Each step is a hard gate. Modifiers (compliance screening) only run for
payments that already passed the cheap checks. No step raises to the caller:
every fault becomes `is_valid=False` with the fault message as the reason.
"""
import logging

from aml_facilitator.lib.signatures import (
    addresses_match,
    build_payment_message,
    recover_message_signer,
)
from aml_facilitator.models.payment import (
    PaymentAuthorization,
    PaymentRequirements,
    VerificationResult,
)
from aml_facilitator.services.chain import ChainClient
from aml_facilitator.services.compliance import METADATA_KEY
from aml_facilitator.services.modifiers import ModifierChain, VerificationContext

logger = logging.getLogger("verify")


def _short(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


class VerificationPipeline:

    def __init__(self, chain: ChainClient, modifiers: ModifierChain):
        self.chain = chain
        self.modifiers = modifiers

    async def verify(
        self,
        authorization: PaymentAuthorization,
        requirements: PaymentRequirements,
    ) -> VerificationResult:
        logger.info("Payment verification started")
        try:
            return await self._verify(authorization, requirements)
        except Exception as e:
            logger.exception(f"Verification error: {e}")
            return VerificationResult(is_valid=False, invalid_reason=str(e) or type(e).__name__)

    async def _verify(
        self,
        authorization: PaymentAuthorization,
        requirements: PaymentRequirements,
    ) -> VerificationResult:
        payer = authorization.payer
        signature = authorization.signature

        if not payer or not signature:
            return VerificationResult(
                is_valid=False,
                invalid_reason="Missing payer address or signature",
                payer=payer,
            )

        message = authorization.signed_message or build_payment_message(
            network=requirements.network,
            asset=requirements.asset,
            payer=payer,
            pay_to=requirements.pay_to,
            amount=requirements.max_amount_required,
        )

        recovered = recover_message_signer(message, signature)
        if not addresses_match(recovered, payer):
            return VerificationResult(
                is_valid=False,
                invalid_reason=f"Signature verification failed. Expected {payer}, got {recovered}",
                payer=payer,
            )
        logger.info("Signature verified")

        balance = await self.chain.token_balance_of(requirements.asset, payer)
        if balance < requirements.required_amount():
            logger.info(f"Insufficient balance for {_short(payer)}")
            return VerificationResult(
                is_valid=False,
                invalid_reason="Insufficient balance",
                payer=payer,
            )
        logger.info("Balance checked")

        context = VerificationContext(
            payer=payer,
            authorization=authorization,
            requirements=requirements,
        )
        verdict = await self.modifiers.execute(context)

        # Keep what the denying modifier produced as well as what came before it
        metadata = {**context.metadata, **verdict.metadata}
        summary = metadata.get(METADATA_KEY)
        manual_review = bool(metadata.get("requires_manual_review", False))

        if not verdict.allowed:
            return VerificationResult(
                is_valid=False,
                invalid_reason=verdict.reason,
                payer=payer,
                risk_assessment_summary=summary,
                requires_manual_review=manual_review,
                metadata=metadata,
            )

        logger.info(f"Payment verified ({_short(payer)})")
        return VerificationResult(
            is_valid=True,
            payer=payer,
            risk_assessment_summary=summary,
            requires_manual_review=manual_review,
            metadata=metadata,
        )
