"""Core abstractions and types for the export backend."""
from .types import DateValue, RawRecord, RawRecords
from .results import FoldResult, ItemOutcome, attempt, fold_batch, fold_outcomes
from .schemas import (
    CatalogListResponse,
    RIPSGenerateRequest,
    RIPSValidateRequest,
    RIPSValidateResponse,
    StatusResponse,
)

__all__ = [
    # Types
    "DateValue",
    "RawRecord",
    "RawRecords",
    # Batch results
    "FoldResult",
    "ItemOutcome",
    "attempt",
    "fold_batch",
    "fold_outcomes",
    # Schemas
    "CatalogListResponse",
    "RIPSGenerateRequest",
    "RIPSValidateRequest",
    "RIPSValidateResponse",
    "StatusResponse",
]
