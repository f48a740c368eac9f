"""
Payment facilitator endpoints.

POST /v1/verify - Screen a payment authorization (signature, balance, compliance)
POST /v1/settle - Verify, then settle on-chain via transferFrom
"""
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends

from aml_facilitator.config import load_settings
from aml_facilitator.models.payment import (
    PaymentRequest,
    SettlementResult,
    VerificationResult,
)
from aml_facilitator.services.facilitator import Facilitator

logger = logging.getLogger("payments")

router = APIRouter(prefix="/v1", tags=["payments"])


@lru_cache(maxsize=1)
def get_facilitator() -> Facilitator:
    """Process-wide facilitator, built from env on first use."""
    return Facilitator.from_settings(load_settings())


@router.post("/verify", response_model=VerificationResult)
async def verify_payment(body: PaymentRequest, facilitator: Facilitator = Depends(get_facilitator)):
    return await facilitator.verify(body.authorization, body.requirements)


@router.post("/settle", response_model=SettlementResult)
async def settle_payment(body: PaymentRequest, facilitator: Facilitator = Depends(get_facilitator)):
    """
    Settle a payment.

    Verification always runs first; a rejected payment is never settled.
    """
    verification, settlement = await facilitator.verify_and_settle(
        body.authorization, body.requirements
    )
    if settlement is None:
        logger.info(f"Settlement refused: {verification.invalid_reason}")
        return SettlementResult(
            success=False,
            network=body.requirements.network,
            payer=verification.payer,
            error_reason=f"Verification failed: {verification.invalid_reason}",
        )
    return settlement
