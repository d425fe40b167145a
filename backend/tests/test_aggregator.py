from datetime import date

import pytest

from rips_export.aggregation import RecordAggregator
from rips_export.records import (
    Consultation,
    DateRange,
    GroupSession,
    InMemoryRecordStore,
    PerinatalSession,
    RecordStoreError,
)

MAY_2025 = DateRange(start=date(2025, 5, 1), end=date(2025, 5, 31))


@pytest.mark.asyncio
async def test_collect_by_date_range_drops_patients_without_services(memory_store):
    result = await RecordAggregator(memory_store).collect(None, MAY_2025)

    assert [records.patient.id for records in result.patients] == ["p-child", "p-adult"]
    assert result.errors == ()


@pytest.mark.asyncio
async def test_events_are_typed_and_sorted_by_date(memory_store):
    result = await RecordAggregator(memory_store).collect(["p-adult"], MAY_2025)

    (adult,) = result.patients
    assert [type(event) for event in adult.events] == [GroupSession, Consultation, PerinatalSession]
    assert [event.id for event in adult.events] == ["c-pelvic", "v-adult", "s-prep"]
    assert adult.group_sessions[0].instructor.is_placeholder


@pytest.mark.asyncio
async def test_explicit_ids_report_missing_and_dropped_patients(memory_store):
    result = await RecordAggregator(memory_store).collect(["p-idle", "ghost", "p-child"], MAY_2025)

    assert [records.patient.id for records in result.patients] == ["p-child"]
    assert result.missing_patient_ids == ("ghost",)
    assert result.dropped_patient_ids == ("p-idle",)


@pytest.mark.asyncio
async def test_out_of_range_sessions_are_excluded(memory_store):
    april = DateRange(start=date(2025, 4, 1), end=date(2025, 4, 1))
    result = await RecordAggregator(memory_store).collect(None, april)

    (child,) = result.patients
    assert [event.id for event in child.events] == ["c-april"]


@pytest.mark.asyncio
async def test_unbounded_range_without_ids_is_rejected(memory_store):
    with pytest.raises(ValueError):
        await RecordAggregator(memory_store).collect(None, DateRange())


class _FailingSessionsStore(InMemoryRecordStore):
    async def sessions_for_patient(self, patient_id, date_range):
        if patient_id == "p-adult":
            raise RecordStoreError("sessions collection unavailable")
        return await super().sessions_for_patient(patient_id, date_range)


@pytest.mark.asyncio
async def test_failed_read_excludes_only_that_patient(sample_collections):
    store = _FailingSessionsStore(sample_collections)
    result = await RecordAggregator(store).collect(None, MAY_2025)

    assert [records.patient.id for records in result.patients] == ["p-child"]
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Patient p-adult:")
    assert "sessions collection unavailable" in result.errors[0]


@pytest.mark.asyncio
async def test_unparsable_record_excludes_patient_with_error(sample_collections):
    sample_collections["valoraciones"].append(
        {"_id": "v-broken", "paciente": "p-child", "fecha": "2025-05-12", "vrServicio": "gratis"}
    )
    result = await RecordAggregator(InMemoryRecordStore(sample_collections)).collect(None, MAY_2025)

    assert [records.patient.id for records in result.patients] == ["p-adult"]
    assert "v-broken" in result.errors[0]


@pytest.mark.asyncio
async def test_fractional_service_values_round_to_whole_pesos(sample_collections):
    sample_collections["valoraciones"].extend(
        [
            {"_id": "v-fraction", "paciente": "p-child", "fecha": "2025-05-12", "vrServicio": 50000.6},
            {"_id": "v-half", "paciente": "p-child", "fecha": "2025-05-13", "vrServicio": "45000.5"},
        ]
    )
    result = await RecordAggregator(InMemoryRecordStore(sample_collections)).collect(["p-child"], MAY_2025)

    assert result.errors == ()
    (child,) = result.patients
    values = {event.id: event.value for event in child.events}
    assert values["v-fraction"] == 50001
    assert values["v-half"] == 45001
