"""
Heuristic on-chain behavior readings for wallet risk.
"""
import logging

from aml_facilitator.models.risk import WalletSignals
from aml_facilitator.services.chain import ChainClient

logger = logging.getLogger("behavior")


class BehaviorAnalyzer:
    """Reads code presence, transaction count and native balance for an address."""

    def __init__(self, chain: ChainClient):
        self.chain = chain

    async def analyze(self, address: str) -> WalletSignals:
        """
        Collect wallet signals. Reads run sequentially.

        A failed read does not raise: it returns zeroed signals with
        `analysis_failed` set, so the assessment stays complete but visibly degraded.
        """
        try:
            code = await self.chain.get_code(address)
            transaction_count = await self.chain.get_transaction_count(address)
            balance = await self.chain.get_balance(address)
        except Exception as e:
            logger.exception(f"On-chain behavior analysis failed for {address}: {e}")
            return WalletSignals(analysis_failed=True)

        return WalletSignals(
            is_contract=len(code) > 0,
            transaction_count=int(transaction_count),
            balance=int(balance),
        )
