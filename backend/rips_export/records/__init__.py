"""Source records: typed schemas, date handling and the read-only record store."""
from .dates import (
    DateRange,
    calculate_age,
    event_day,
    format_rips_date,
    format_rips_datetime,
    parse_rips_datetime,
    parse_timestamp,
)
from .memory_store import InMemoryRecordStore
from .schemas import (
    Consultation,
    GroupSession,
    Patient,
    PatientRecords,
    PerinatalSession,
    Professional,
    RecordParseError,
    ServiceEvent,
)
from .store import BaseRecordStore, RecordStoreError

__all__ = [
    # Dates
    "DateRange",
    "calculate_age",
    "event_day",
    "format_rips_date",
    "format_rips_datetime",
    "parse_rips_datetime",
    "parse_timestamp",
    # Schemas
    "Consultation",
    "GroupSession",
    "Patient",
    "PatientRecords",
    "PerinatalSession",
    "Professional",
    "RecordParseError",
    "ServiceEvent",
    # Store
    "BaseRecordStore",
    "InMemoryRecordStore",
    "RecordStoreError",
]
