"""Cost model for environment estimates.

Estimates are deterministic functions of the requested compute, storage and
capability count. They are not reconciled against any provider's billing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ses_api.models.environment import ComputeConfig, CostEstimate

if TYPE_CHECKING:
    from ses_api.models.environment import EnvironmentSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostRates:
    """Daily unit rates in USD.

    Attributes:
        compute_unit: Per cpu * memory(GB) * instance
        storage_gb: Per GB of storage
        capability: Per requested capability
    """

    compute_unit: float = 0.05
    storage_gb: float = 0.1
    capability: float = 5.0


class CostModel:
    """Calculates daily and monthly cost estimates for environment specs.

    Example:
        ```python
        model = CostModel()
        daily = model.calculate(ComputeConfig(cpu=4, memory=16, instances=2), 100, 3)
        estimate = model.estimate(spec)
        print(f"${estimate.daily_cost:.2f}/day, ${estimate.monthly_cost:.2f}/month")
        ```
    """

    DAYS_PER_MONTH = 30
    AUTOSCALING_INSTANCE_THRESHOLD = 5

    def __init__(self, rates: CostRates | None = None) -> None:
        self.rates = rates or CostRates()

    def breakdown(
        self, compute: ComputeConfig, storage: int, capability_count: int
    ) -> dict[str, float]:
        """Per-component daily cost."""
        return {
            "compute": float(compute.cpu * compute.memory * compute.instances)
            * self.rates.compute_unit,
            "storage": float(storage) * self.rates.storage_gb,
            "capabilities": float(capability_count) * self.rates.capability,
        }

    def calculate(
        self, compute: ComputeConfig, storage: int, capability_count: int
    ) -> float:
        """Daily cost for the given resources.

        Args:
            compute: Requested compute
            storage: Storage size in GB
            capability_count: Number of requested capabilities

        Returns:
            Estimated daily cost in USD
        """
        return sum(self.breakdown(compute, storage, capability_count).values())

    def estimate(self, spec: EnvironmentSpec) -> CostEstimate:
        """Full estimate for a specification, with breakdown and tip."""
        capability_count = len(spec.capabilities)
        daily = self.calculate(spec.compute, spec.storage, capability_count)

        tip = None
        if spec.compute.instances > self.AUTOSCALING_INSTANCE_THRESHOLD:
            tip = "Consider using auto-scaling to optimize costs during low usage"

        return CostEstimate(
            daily_cost=daily,
            monthly_cost=daily * self.DAYS_PER_MONTH,
            breakdown=self.breakdown(spec.compute, spec.storage, capability_count),
            optimization_tip=tip,
        )


# Global model instance
_cost_model: CostModel | None = None


def get_cost_model() -> CostModel:
    """Get the global CostModel instance."""
    global _cost_model
    if _cost_model is None:
        _cost_model = CostModel()
    return _cost_model
