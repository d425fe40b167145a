"""Record store backed by an in-memory snapshot of the clinical collections."""
from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from ..core.types import RawRecord, RawRecords
from .dates import DateRange, parse_timestamp
from .precedence import CONSULTATION_FIELDS, PERINATAL_SESSION_FIELDS, first_present
from .store import BaseRecordStore, RecordStoreError

COLLECTION_PATIENTS = "pacientes"
COLLECTION_CONSULTATIONS = "valoraciones"
COLLECTION_GROUP_SESSIONS = "clases"
COLLECTION_PERINATAL_SESSIONS = "sesionesPerinatales"
COLLECTION_CATALOG = "codigosCUPS"

_COLLECTIONS = (
    COLLECTION_PATIENTS,
    COLLECTION_CONSULTATIONS,
    COLLECTION_GROUP_SESSIONS,
    COLLECTION_PERINATAL_SESSIONS,
    COLLECTION_CATALOG,
)


def _ref_id(value: Any) -> str | None:
    if isinstance(value, Mapping):
        value = value.get("_id") or value.get("id")
    if value is None:
        return None
    return str(value)


def _record_id(record: Mapping[str, Any]) -> str | None:
    return _ref_id(record.get("_id") or record.get("id"))


def _in_range(date_range: DateRange, value: Any) -> bool:
    try:
        return date_range.contains(value)
    except ValueError:
        # Unreadable dates cannot be placed inside a bounded range.
        return False


def _attendees(session: Mapping[str, Any]) -> Iterable[Mapping[str, Any]]:
    for attendee in session.get("ninos") or session.get("asistentes") or []:
        if isinstance(attendee, Mapping):
            yield attendee
        else:
            yield {"paciente": attendee}


def _attended_by(session: Mapping[str, Any], patient_id: str) -> bool:
    for attendee in _attendees(session):
        if _ref_id(attendee.get("paciente")) == patient_id and attendee.get("asistio", True) is not False:
            return True
    return False


class InMemoryRecordStore(BaseRecordStore):
    """
    Read-only store over a dictionary of collections.

    Expected shape::

        {
          "pacientes": [...],
          "valoraciones": [...],
          "clases": [...],
          "sesionesPerinatales": [...],
          "codigosCUPS": [...]
        }

    Returned documents are deep copies so callers cannot alter the snapshot.
    """

    def __init__(self, collections: Mapping[str, RawRecords] | None = None) -> None:
        collections = collections or {}
        unknown = set(collections) - set(_COLLECTIONS)
        if unknown:
            raise RecordStoreError(f"Unknown collections: {', '.join(sorted(unknown))}")
        self._collections: dict[str, RawRecords] = {
            name: list(collections.get(name) or []) for name in _COLLECTIONS
        }

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryRecordStore":
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as err:
            raise RecordStoreError(f"Failed to load records from {path}: {err}") from err
        if not isinstance(data, dict):
            raise RecordStoreError(f"Records file {path} must contain a JSON object")
        return cls(data)

    def _copies(self, records: Iterable[RawRecord]) -> RawRecords:
        return [copy.deepcopy(record) for record in records]

    async def get_patient(self, patient_id: str) -> RawRecord | None:
        for record in self._collections[COLLECTION_PATIENTS]:
            if _record_id(record) == patient_id:
                return copy.deepcopy(record)
        return None

    async def get_patients(self, patient_ids: Sequence[str]) -> RawRecords:
        by_id = {_record_id(record): record for record in self._collections[COLLECTION_PATIENTS]}
        found = [by_id[patient_id] for patient_id in dict.fromkeys(patient_ids) if patient_id in by_id]
        return self._copies(found)

    async def patients_with_records(self, date_range: DateRange) -> list[str]:
        seen: dict[str, None] = {}
        for collection, precedence in (
            (COLLECTION_CONSULTATIONS, CONSULTATION_FIELDS),
            (COLLECTION_PERINATAL_SESSIONS, PERINATAL_SESSION_FIELDS),
        ):
            for record in self._collections[collection]:
                if not _in_range(date_range, first_present(record, precedence["date"])):
                    continue
                patient_id = _ref_id(first_present(record, precedence["patient_id"]))
                if patient_id:
                    seen.setdefault(patient_id, None)
        for session in self._collections[COLLECTION_GROUP_SESSIONS]:
            if not _in_range(date_range, session.get("fecha")):
                continue
            for attendee in _attendees(session):
                patient_id = _ref_id(attendee.get("paciente"))
                if patient_id and attendee.get("asistio", True) is not False:
                    seen.setdefault(patient_id, None)
        return list(seen)

    async def consultations_for_patient(self, patient_id: str, date_range: DateRange) -> RawRecords:
        return self._copies(
            record
            for record in self._collections[COLLECTION_CONSULTATIONS]
            if _ref_id(first_present(record, CONSULTATION_FIELDS["patient_id"])) == patient_id
            and _in_range(date_range, first_present(record, CONSULTATION_FIELDS["date"]))
        )

    async def sessions_for_patient(self, patient_id: str, date_range: DateRange) -> RawRecords:
        return self._copies(
            session
            for session in self._collections[COLLECTION_GROUP_SESSIONS]
            if _attended_by(session, patient_id) and _in_range(date_range, session.get("fecha"))
        )

    async def perinatal_sessions_for_patient(
        self, patient_id: str, date_range: DateRange
    ) -> RawRecords:
        return self._copies(
            record
            for record in self._collections[COLLECTION_PERINATAL_SESSIONS]
            if _ref_id(first_present(record, PERINATAL_SESSION_FIELDS["patient_id"])) == patient_id
            and _in_range(date_range, first_present(record, PERINATAL_SESSION_FIELDS["date"]))
        )

    async def latest_consultation_for_patient(self, patient_id: str) -> RawRecord | None:
        candidates = await self.consultations_for_patient(patient_id, DateRange())
        if not candidates:
            return None

        def _sort_key(record: RawRecord):
            stamp = first_present(record, ("createdAt",) + CONSULTATION_FIELDS["date"])
            try:
                parsed = parse_timestamp(stamp)
            except ValueError:
                parsed = None
            return (parsed is not None, parsed or 0)

        return max(candidates, key=_sort_key)

    async def get_consultation(self, consultation_id: str) -> RawRecord | None:
        for record in self._collections[COLLECTION_CONSULTATIONS]:
            if _record_id(record) == consultation_id:
                return copy.deepcopy(record)
        return None

    async def catalog_entries(self) -> RawRecords:
        return self._copies(self._collections[COLLECTION_CATALOG])
