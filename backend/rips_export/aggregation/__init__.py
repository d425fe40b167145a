"""Record aggregation across consultations, group sessions and perinatal sessions."""
from .aggregator import AggregationResult, RecordAggregator

__all__ = ["AggregationResult", "RecordAggregator"]
