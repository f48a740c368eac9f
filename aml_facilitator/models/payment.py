from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, Union


class PaymentAuthorization(BaseModel):
    """Payer-signed intent to move `value` units of an asset to `to`."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: Optional[str] = Field(default=None, alias="from")
    to: str
    value: Union[str, int]
    valid_after: int = Field(default=0, alias="validAfter")
    valid_before: int = Field(default=0, alias="validBefore")
    nonce: str = ""
    signature: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None

    @property
    def payer(self) -> Optional[str]:
        return self.from_

    @property
    def signed_message(self) -> Optional[str]:
        """Explicit signed message carried in `extra`, if any."""
        if self.extra and isinstance(self.extra.get("message"), str):
            return self.extra["message"]
        return None


class PaymentRequirements(BaseModel):
    """Merchant-declared payment terms."""
    model_config = ConfigDict(populate_by_name=True)

    scheme: str = "exact"
    network: str
    asset: str
    pay_to: str = Field(alias="payTo")
    max_amount_required: str = Field(alias="maxAmountRequired")
    resource: str = ""
    description: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    max_timeout_seconds: int = Field(default=600, alias="maxTimeoutSeconds")

    def required_amount(self) -> int:
        return int(self.max_amount_required)


class VerificationResult(BaseModel):
    is_valid: bool
    payer: Optional[str] = None
    invalid_reason: Optional[str] = None
    risk_assessment_summary: Optional[Dict[str, Any]] = None
    requires_manual_review: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SettlementResult(BaseModel):
    success: bool
    transaction: Optional[str] = None
    network: Optional[str] = None
    payer: Optional[str] = None
    error_reason: Optional[str] = None


class PaymentRequest(BaseModel):
    """Body of /v1/verify and /v1/settle."""
    authorization: PaymentAuthorization
    requirements: PaymentRequirements
