"""
Sanctions screening: remote oracle first, local list as fallback.

The SanctionsCache is the only state that outlives a single payment. It is
seeded from the static list at startup and grows whenever the oracle
confirms a hit. Entries are never removed within a process lifetime and are
not persisted across restarts.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Iterable, Optional

from aml_facilitator.errors import FaultPolicy
from aml_facilitator.services.chain import ChainClient

logger = logging.getLogger("sanctions")

# Chainalysis sanctions oracle, Ethereum mainnet only.
# Other networks must query it through a mainnet client or rely on the local list.
ETHEREUM_MAINNET_ORACLE = "0x40C57923924B5c5c5455c48D93317139ADDaC8fb"

DEFAULT_SANCTIONS_LIST = Path(__file__).resolve().parents[1] / "data" / "sanctions_list.json"


def load_sanctions_list(path: Optional[Path] = None) -> list[str]:
    """
    Load addresses from a static {"addresses": [...]} record.

    A missing or malformed file yields an empty list (the oracle is still
    authoritative when configured).
    """
    path = Path(path) if path else DEFAULT_SANCTIONS_LIST
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        entries = data.get("addresses", [])
    except (OSError, ValueError, AttributeError) as e:
        logger.warning(f"Could not load local sanctions list from {path}: {e}")
        return []

    if not isinstance(entries, list):
        logger.warning(f"Malformed sanctions list {path}: \"addresses\" is not a list")
        return []
    addresses = [a for a in entries if isinstance(a, str)]

    logger.info(f"Loaded {len(addresses)} sanctioned addresses (local)")
    return addresses


class SanctionsCache:
    """Append-only, thread-safe set of lower-cased addresses."""

    def __init__(self, addresses: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._addresses = {a.lower() for a in addresses}

    def add(self, address: str) -> None:
        with self._lock:
            self._addresses.add(address.lower())

    def __contains__(self, address: str) -> bool:
        with self._lock:
            return address.lower() in self._addresses

    def __len__(self) -> int:
        with self._lock:
            return len(self._addresses)


class SanctionsSource:
    """
    Answers "is this address sanctioned?".

    Oracle result is authoritative. On oracle failure the fault policy
    decides: FALLBACK checks the local cache, PROPAGATE re-raises.
    """

    def __init__(
        self,
        cache: SanctionsCache,
        oracle: Optional[ChainClient] = None,
        oracle_address: Optional[str] = None,
        on_oracle_failure: FaultPolicy = FaultPolicy.FALLBACK,
    ):
        if on_oracle_failure not in (FaultPolicy.FALLBACK, FaultPolicy.PROPAGATE):
            raise ValueError(f"Unsupported oracle fault policy: {on_oracle_failure}")
        self.cache = cache
        self.oracle = oracle
        self.oracle_address = oracle_address or ETHEREUM_MAINNET_ORACLE
        self.on_oracle_failure = on_oracle_failure

        if oracle is not None:
            logger.info(f"Sanctions oracle (Ethereum mainnet): {self.oracle_address}")

    async def is_sanctioned(self, address: str) -> bool:
        if self.oracle is not None:
            try:
                sanctioned = await self.oracle.is_sanctioned(self.oracle_address, address)
            except Exception as e:
                if self.on_oracle_failure is FaultPolicy.PROPAGATE:
                    raise
                logger.warning(f"Oracle check failed for {address}, using local list: {e}")
            else:
                if sanctioned:
                    logger.warning(f"Address flagged by sanctions oracle: {address}")
                    self.cache.add(address)
                return sanctioned

        hit = address in self.cache
        if hit:
            logger.warning(f"Address found in local sanctions list: {address}")
        return hit
