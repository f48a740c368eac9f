"""
Environment-driven settings.

Defaults favor safety: oracle on, local fallback on.
"""
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_RPC_URL = "https://sepolia.base.org"
DEFAULT_ORACLE_RPC_URL = "https://eth.llamarpc.com"


class Settings(BaseModel):
    rpc_url: str = DEFAULT_RPC_URL
    oracle_rpc_url: str = DEFAULT_ORACLE_RPC_URL
    merchant_private_key: Optional[str] = None

    aml_enabled: bool = False
    risk_threshold: int = Field(default=70, ge=0, le=100)
    require_manual_review: bool = False
    use_oracle: bool = True
    oracle_address: Optional[str] = None
    fallback_to_local: bool = True
    sanctions_list_path: Optional[Path] = None


TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def _env_flag(name: str, default: bool) -> bool:
    """
    Read a boolean env var.

    Only an explicit value moves a flag away from its default, so an
    unrecognized value never disables a safety default.
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if default:
        return value not in FALSE_VALUES
    return value in TRUE_VALUES


def load_settings() -> Settings:
    """Build Settings from the process environment."""
    sanctions_path = os.getenv("SANCTIONS_LIST_PATH")
    return Settings(
        rpc_url=os.getenv("RPC_URL") or os.getenv("BASE_SEPOLIA_RPC_URL") or DEFAULT_RPC_URL,
        oracle_rpc_url=os.getenv("ORACLE_RPC_URL") or DEFAULT_ORACLE_RPC_URL,
        merchant_private_key=os.getenv("MERCHANT_PRIVATE_KEY") or None,
        aml_enabled=_env_flag("AML_ENABLED", False),
        risk_threshold=int(os.getenv("AML_RISK_THRESHOLD", "70")),
        require_manual_review=_env_flag("AML_REQUIRE_MANUAL_REVIEW", False),
        use_oracle=_env_flag("AML_USE_ORACLE", True),
        oracle_address=os.getenv("AML_ORACLE_ADDRESS") or None,
        fallback_to_local=_env_flag("AML_FALLBACK_TO_LOCAL", True),
        sanctions_list_path=Path(sanctions_path) if sanctions_path else None,
    )
