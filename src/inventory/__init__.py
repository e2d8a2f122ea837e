from .cost_basis import (
    CostBasisRecord,
    CostBasisStore,
    CostBasisStoreError,
    InMemoryCostBasisStore,
    JsonFileCostBasisStore,
)

__all__ = [
    "CostBasisRecord",
    "CostBasisStore",
    "CostBasisStoreError",
    "InMemoryCostBasisStore",
    "JsonFileCostBasisStore",
]
