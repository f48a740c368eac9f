"""
Verification modifiers: pluggable policy units run after signature and
balance checks.

A modifier is anything with `priority`, `name` and an async `execute(context)`.
Lower priority runs first. The chain stops at the first denial and fails
closed when a modifier raises.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from aml_facilitator.errors import FaultPolicy
from aml_facilitator.models.payment import PaymentAuthorization, PaymentRequirements

logger = logging.getLogger("modifiers")


@dataclass
class VerificationContext:
    payer: Optional[str]
    authorization: PaymentAuthorization
    requirements: PaymentRequirements
    metadata: Dict[str, Any] = field(default_factory=dict)

    def merge(self, metadata: Optional[Dict[str, Any]]) -> None:
        """Additive merge: later keys overwrite, nothing is removed."""
        if metadata:
            self.metadata.update(metadata)


@dataclass
class ModifierVerdict:
    allowed: bool
    reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Modifier(Protocol):
    priority: int
    name: str

    async def execute(self, context: VerificationContext) -> ModifierVerdict:
        ...


class ModifierChain:
    """Ordered, extensible list of modifiers executed strictly in sequence."""

    # Modifier faults always deny
    fault_policy = FaultPolicy.DENY

    def __init__(self, modifiers: Iterable[Modifier] = ()):
        self._modifiers: List[Modifier] = sorted(modifiers, key=lambda m: m.priority)

    def add(self, modifier: Modifier) -> None:
        self._modifiers.append(modifier)
        self._modifiers.sort(key=lambda m: m.priority)

    @property
    def modifiers(self) -> List[Modifier]:
        return list(self._modifiers)

    def __len__(self) -> int:
        return len(self._modifiers)

    async def execute(self, context: VerificationContext) -> ModifierVerdict:
        """
        Run every modifier in priority order.

        Allowed verdicts have their metadata merged into `context` before the
        next modifier starts. The first denial is returned immediately, with
        its own metadata; the context keeps everything accumulated so far.
        """
        for modifier in self._modifiers:
            try:
                verdict = await modifier.execute(context)
                if not isinstance(verdict, ModifierVerdict):
                    raise TypeError(f"expected ModifierVerdict, got {type(verdict).__name__}")
            except Exception as e:
                logger.exception(f"Modifier {modifier.name} raised: {e}")
                return ModifierVerdict(
                    allowed=False,
                    reason=f"Modifier {modifier.name} failed: {e}",
                )

            if not verdict.allowed:
                logger.info(f"Payment rejected by {modifier.name}: {verdict.reason}")
                if not verdict.reason:
                    verdict.reason = f"Rejected by {modifier.name}"
                return verdict

            context.merge(verdict.metadata)

        return ModifierVerdict(allowed=True, metadata=dict(context.metadata))
