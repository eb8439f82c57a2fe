from gacha_node.services.gacha import (
    DEFAULT_SUBMODELS,
    FetchPipeline,
    Gacha,
    PipelineState,
    SubmodelDescriptor,
    progress_attribute,
    record_count_progress,
)
from gacha_node.services.payout_ledger import PayoutRowContext

__all__ = [
    "DEFAULT_SUBMODELS",
    "FetchPipeline",
    "Gacha",
    "PayoutRowContext",
    "PipelineState",
    "SubmodelDescriptor",
    "progress_attribute",
    "record_count_progress",
]
