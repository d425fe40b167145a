"""Per-patient collection of service events across the three source kinds."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
import time
from typing import Awaitable, Callable, Sequence

from pydantic import ValidationError

from ..core.logging_utils import log_event, log_latency_event
from ..core.results import ItemOutcome, fold_outcomes
from ..core.types import RawRecord, RawRecords
from ..records import (
    BaseRecordStore,
    Consultation,
    DateRange,
    GroupSession,
    Patient,
    PatientRecords,
    PerinatalSession,
    RecordParseError,
)

_COMPONENT = "record_aggregator"


@dataclass(frozen=True)
class AggregationResult:
    """Patients with at least one service event, in request order."""

    patients: tuple[PatientRecords, ...] = ()
    errors: tuple[str, ...] = ()
    missing_patient_ids: tuple[str, ...] = ()
    dropped_patient_ids: tuple[str, ...] = ()


def _parse(schema, record: RawRecord, label: str):
    try:
        return schema.model_validate(record)
    except ValidationError as err:
        record_id = record.get("_id") or record.get("id") or "?"
        problems = "; ".join(
            f"{'.'.join(str(part) for part in issue['loc']) or 'record'}: {issue['msg']}"
            for issue in err.errors()
        )
        raise RecordParseError(f"invalid {label} {record_id}: {problems}") from err


class RecordAggregator:
    """
    Resolve the patient set of a request and gather each patient's events.

    The three source reads of a patient run concurrently and are joined
    before the patient's event list is built. A failed read or an unreadable
    record excludes that patient and is reported as an error; patients with
    no events in range are dropped silently.
    """

    def __init__(self, store: BaseRecordStore) -> None:
        self._store = store

    async def resolve_patient_ids(
        self,
        patient_ids: Sequence[str] | None,
        date_range: DateRange,
    ) -> list[str]:
        if patient_ids is not None:
            return list(dict.fromkeys(str(patient_id) for patient_id in patient_ids))
        if not date_range.is_bounded:
            raise ValueError("a date range is required when no patient ids are given")
        return await self._store.patients_with_records(date_range)

    async def collect(
        self,
        patient_ids: Sequence[str] | None,
        date_range: DateRange,
    ) -> AggregationResult:
        resolved_ids = await self.resolve_patient_ids(patient_ids, date_range)
        raw_patients = await self._store.get_patients(resolved_ids)
        found_ids = {str(record.get("_id") or record.get("id")) for record in raw_patients}
        missing = tuple(patient_id for patient_id in resolved_ids if patient_id not in found_ids)

        outcomes = await asyncio.gather(
            *(self._collect_patient(record, date_range) for record in raw_patients)
        )
        folded = fold_outcomes(outcomes)
        kept = tuple(records for records in folded.successes if records.events)
        dropped = tuple(records.patient.id for records in folded.successes if not records.events)

        log_event(
            component=_COMPONENT,
            event="aggregation_completed",
            details={
                "requested": len(resolved_ids),
                "found": len(raw_patients),
                "kept": len(kept),
                "dropped_without_services": len(dropped),
                "errors": len(folded.errors),
                "date_range": date_range.as_dict(),
            },
        )
        return AggregationResult(
            patients=kept,
            errors=folded.errors,
            missing_patient_ids=missing,
            dropped_patient_ids=dropped,
        )

    async def _timed_read(
        self,
        kind: str,
        read: Callable[[str, DateRange], Awaitable[RawRecords]],
        patient_id: str,
        date_range: DateRange,
    ) -> RawRecords:
        started = time.perf_counter()
        status = "ok"
        try:
            return await read(patient_id, date_range)
        except Exception:
            status = "error"
            raise
        finally:
            log_latency_event(
                component=_COMPONENT,
                event="source_read",
                stage=f"read_{kind}",
                duration_s=time.perf_counter() - started,
                status=status,
                level="DEBUG",
                details={"patient_id": patient_id},
            )

    async def _collect_patient(
        self,
        raw_patient: RawRecord,
        date_range: DateRange,
    ) -> ItemOutcome[PatientRecords]:
        label = raw_patient.get("_id") or raw_patient.get("id") or raw_patient.get("numeroDocumento")
        try:
            patient = _parse(Patient, raw_patient, "patient")
        except RecordParseError as err:
            return ItemOutcome(error=f"Patient {label}: {err}")

        consultations, sessions, perinatal = await asyncio.gather(
            self._timed_read("consultations", self._store.consultations_for_patient, patient.id, date_range),
            self._timed_read("sessions", self._store.sessions_for_patient, patient.id, date_range),
            self._timed_read(
                "perinatal_sessions", self._store.perinatal_sessions_for_patient, patient.id, date_range
            ),
            return_exceptions=True,
        )
        failures = [
            f"{kind} read failed ({result})"
            for kind, result in (
                ("consultations", consultations),
                ("sessions", sessions),
                ("perinatal sessions", perinatal),
            )
            if isinstance(result, BaseException)
        ]
        if failures:
            log_event(
                component=_COMPONENT,
                event="patient_read_failed",
                level="WARNING",
                details={"patient_id": patient.id, "failures": failures},
            )
            return ItemOutcome(error=f"Patient {patient.id}: {'; '.join(failures)}")

        try:
            events = [
                *(_parse(Consultation, record, "consultation") for record in consultations),
                *(_parse(GroupSession, record, "group session") for record in sessions),
                *(_parse(PerinatalSession, record, "perinatal session") for record in perinatal),
            ]
        except RecordParseError as err:
            return ItemOutcome(error=f"Patient {patient.id}: {err}")

        events.sort(key=lambda event: event.timestamp)
        return ItemOutcome(value=PatientRecords(patient=patient, events=tuple(events)))
