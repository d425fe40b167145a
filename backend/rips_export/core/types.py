"""Common type definitions for the export pipeline."""
from typing import Any, Dict, List, Union
from datetime import date, datetime

# Type aliases for clarity
RawRecord = Dict[str, Any]  # document as read from the record store
RawRecords = List[RawRecord]
DateValue = Union[datetime, date, str, None]  # timestamp fields or "YYYY-MM-DD" strings
