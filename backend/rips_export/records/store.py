"""Base class for the read-only clinical record store."""
import abc
from typing import Sequence

from ..core.types import RawRecord, RawRecords
from .dates import DateRange


class RecordStoreError(RuntimeError):
    """Raised when a record store query fails."""


class BaseRecordStore(abc.ABC):
    """
    Abstract read-only access to patients, service records and catalog rows.

    Queries return stored documents as plain dictionaries; parsing into the
    typed schemas happens in the aggregator. Implementations never write.
    """

    @abc.abstractmethod
    async def get_patient(self, patient_id: str) -> RawRecord | None:
        pass

    @abc.abstractmethod
    async def get_patients(self, patient_ids: Sequence[str]) -> RawRecords:
        """Return the stored patients among ``patient_ids`` in request order."""
        pass

    @abc.abstractmethod
    async def patients_with_records(self, date_range: DateRange) -> list[str]:
        """Ids of patients referenced by any service-bearing record in range."""
        pass

    @abc.abstractmethod
    async def consultations_for_patient(self, patient_id: str, date_range: DateRange) -> RawRecords:
        pass

    @abc.abstractmethod
    async def sessions_for_patient(self, patient_id: str, date_range: DateRange) -> RawRecords:
        """Group sessions the patient attended."""
        pass

    @abc.abstractmethod
    async def perinatal_sessions_for_patient(
        self, patient_id: str, date_range: DateRange
    ) -> RawRecords:
        pass

    @abc.abstractmethod
    async def latest_consultation_for_patient(self, patient_id: str) -> RawRecord | None:
        pass

    @abc.abstractmethod
    async def get_consultation(self, consultation_id: str) -> RawRecord | None:
        pass

    @abc.abstractmethod
    async def catalog_entries(self) -> RawRecords:
        pass
