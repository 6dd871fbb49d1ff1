"""
Extraction strategies.

Each strategy is one self-contained technique for obtaining raw records
from the portal. Strategies are selected by name from configuration.
"""
from typing import Dict, List, Type

from ..base import BaseStrategy
from .api_probe import ApiProbeStrategy
from .district_partitioned import DistrictPartitionedStrategy
from .human_paced import HumanPacedStrategy
from .paginated_table import PaginatedTableStrategy

STRATEGY_REGISTRY: Dict[str, Type[BaseStrategy]] = {
    ApiProbeStrategy.NAME: ApiProbeStrategy,
    PaginatedTableStrategy.NAME: PaginatedTableStrategy,
    DistrictPartitionedStrategy.NAME: DistrictPartitionedStrategy,
    HumanPacedStrategy.NAME: HumanPacedStrategy,
}

DEFAULT_STRATEGY_ORDER = [
    ApiProbeStrategy.NAME,
    PaginatedTableStrategy.NAME,
    DistrictPartitionedStrategy.NAME,
]


def build_strategies(names: List[str]) -> List[BaseStrategy]:
    """
    Instantiate strategies in the given priority order.

    Raises:
        ValueError: unknown strategy name
    """
    strategies = []
    for name in names:
        strategy_class = STRATEGY_REGISTRY.get(name.strip().replace("_", "-"))
        if strategy_class is None:
            raise ValueError(f"Unknown strategy {name!r}; expected one of {sorted(STRATEGY_REGISTRY)}")
        strategies.append(strategy_class())
    return strategies


__all__ = [
    "ApiProbeStrategy",
    "PaginatedTableStrategy",
    "DistrictPartitionedStrategy",
    "HumanPacedStrategy",
    "STRATEGY_REGISTRY",
    "DEFAULT_STRATEGY_ORDER",
    "build_strategies",
]
