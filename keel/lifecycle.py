"""
Bulk lifecycle results.

Bulk start/stop drive every component in dependency order and report, per
component, whether its transition succeeded, failed, or was skipped after an
earlier failure aborted the run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .faults import BulkLifecycleFault, RegistryFault


class FailurePolicy(str, Enum):
    """What a bulk operation does when one component fails."""
    CONTINUE = "continue"  # Record the failure and move on (best-effort)
    ABORT = "abort"        # Stop at the first failure and raise


class OutcomeStatus(str, Enum):
    """Per-component result of a bulk operation."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


def coerce_policy(policy: Union[FailurePolicy, str]) -> FailurePolicy:
    """
    Accept a FailurePolicy or its string value.

    Raises:
        RegistryFault: If `policy` names no known policy
    """
    if isinstance(policy, FailurePolicy):
        return policy
    try:
        return FailurePolicy(policy)
    except ValueError:
        raise RegistryFault(
            code="INVALID_POLICY",
            message=(
                f"Unknown failure policy {policy!r}, expected one of "
                f"{', '.join(p.value for p in FailurePolicy)}"
            ),
            metadata={"policy": policy},
        ) from None


@dataclass
class ProviderOutcome:
    """Outcome of one component's transition during a bulk operation."""
    name: str
    status: OutcomeStatus
    error: Optional[BaseException] = None
    duration: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED


@dataclass
class BulkResult:
    """
    Ordered per-component outcomes of a bulk start/stop/destroy.

    Outcomes appear in the order the components were visited.
    """
    operation: str
    outcomes: List[ProviderOutcome] = field(default_factory=list)

    def record(
        self,
        name: str,
        status: OutcomeStatus,
        error: Optional[BaseException] = None,
        duration: Optional[float] = None,
    ) -> ProviderOutcome:
        outcome = ProviderOutcome(name=name, status=status, error=error, duration=duration)
        self.outcomes.append(outcome)
        return outcome

    @property
    def order(self) -> List[str]:
        """Names in visit order."""
        return [o.name for o in self.outcomes]

    @property
    def succeeded(self) -> List[ProviderOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.SUCCEEDED]

    @property
    def failed(self) -> List[ProviderOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    @property
    def skipped(self) -> List[ProviderOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.SKIPPED]

    @property
    def ok(self) -> bool:
        """True when no component failed or was skipped."""
        return all(o.ok for o in self.outcomes)

    def raise_for_failures(self) -> None:
        """
        Raise if any component failed.

        Raises:
            BulkLifecycleFault: Carrying this result
        """
        if self.failed:
            raise BulkLifecycleFault(self.operation, self)

    def get_status(self) -> Dict[str, Any]:
        """
        Summary for logging and tooling.

        Returns:
            Status dict with counts and per-component errors
        """
        return {
            "operation": self.operation,
            "total": len(self.outcomes),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
            "errors": {o.name: str(o.error) for o in self.failed},
        }
