"""
Settlement of verified payments via ERC-20 transferFrom.

The payer must have approved the merchant account as a spender beforehand;
that approval is an external precondition and is not checked here.
"""
import logging
from typing import Any, Optional

from aml_facilitator.models.payment import (
    PaymentAuthorization,
    PaymentRequirements,
    SettlementResult,
)
from aml_facilitator.services.chain import ChainClient

logger = logging.getLogger("settle")

ALLOWANCE_ERRORS = (
    "insufficient allowance",
    "transfer amount exceeds allowance",
)


def explain_settlement_error(error: str) -> str:
    """Rewrite allowance failures into something the payer can act on."""
    lowered = error.lower()
    if any(marker in lowered for marker in ALLOWANCE_ERRORS):
        return (
            "Insufficient token approval. The payer must approve the merchant to spend "
            f"tokens before payment can be settled. Error: {error}"
        )
    return error


class SettlementExecutor:
    """Moves exactly `max_amount_required` from payer to `pay_to`, signed by the merchant."""

    def __init__(self, chain: ChainClient, merchant_account: Optional[Any] = None):
        self.chain = chain
        self.merchant_account = merchant_account

    async def settle(
        self,
        authorization: PaymentAuthorization,
        requirements: PaymentRequirements,
    ) -> SettlementResult:
        logger.info("Settlement started")

        if self.merchant_account is None:
            return SettlementResult(
                success=False,
                network=requirements.network,
                error_reason="Merchant account not configured. Set MERCHANT_PRIVATE_KEY.",
            )

        payer = authorization.payer
        if not payer:
            return SettlementResult(
                success=False,
                network=requirements.network,
                error_reason="Could not extract payer address from authorization",
            )

        try:
            tx_hash = await self.chain.transfer_from(
                self.merchant_account,
                requirements.asset,
                payer,
                requirements.pay_to,
                requirements.required_amount(),
            )
            logger.info("Waiting for confirmation...")
            receipt = await self.chain.wait_for_receipt(tx_hash) if tx_hash else None
        except Exception as e:
            logger.exception(f"Settlement error: {e}")
            return SettlementResult(
                success=False,
                network=requirements.network,
                error_reason=explain_settlement_error(str(e)),
            )

        if tx_hash and receipt and receipt.get("status") == 1:
            logger.info(f"Settlement complete: {tx_hash[:10]}...{tx_hash[-8:]}")
            return SettlementResult(
                success=True,
                transaction=tx_hash,
                network=requirements.network,
                payer=payer,
            )

        logger.error(f"Settlement failed (tx: {tx_hash})")
        return SettlementResult(
            success=False,
            network=requirements.network,
            error_reason="Transaction failed",
        )
