import json
import logging

import pytest
from sqlalchemy.exc import SQLAlchemyError

from core.local_storage import LocalStorage
from models.patient import NO_VALUE
from services.clinic_store import ClinicDataStore, InvalidSnapshotError


class FailingWritesStorage(LocalStorage):
    def write_json(self, key, obj):
        raise SQLAlchemyError("disk full")


class TestPatients:
    def test_new_patients_get_sequential_numbers_and_defaults(self, store):
        first = store.add_patient(name="Durant", first_name="Marie")
        second = store.add_patient(name="Martin", first_name="Pierre")

        marie = store.get_patient_by_id(first)
        assert marie.patient_number == "P001"
        assert store.get_patient_by_id(second).patient_number == "P002"
        assert marie.last_consultation == "01/03/2024"
        assert marie.next_appointment == NO_VALUE
        assert marie.consultation_count == 0
        assert first != second

    def test_generated_fields_cannot_be_supplied(self, store):
        patient_id = store.add_patient(id="mine", patient_number="P999", consultation_count=7, name="Durant")
        patient = store.get_patient_by_id(patient_id)
        assert patient_id != "mine"
        assert patient.patient_number == "P001"
        assert patient.consultation_count == 0

    def test_numbers_follow_live_count_so_deletions_reuse_them(self, store):
        first = store.add_patient(name="A")
        store.add_patient(name="B")
        store.delete_patient(first)

        third = store.add_patient(name="C")

        numbers = [p.patient_number for p in store.patients]
        assert store.get_patient_by_id(third).patient_number == "P002"
        assert numbers == ["P002", "P002"]

    def test_insurance_and_history_are_coerced(self, store):
        patient_id = store.add_patient(
            name="Durant", insurance={"active": True, "name": "CNOPS"}, history=["asthma"]
        )
        patient = store.get_patient_by_id(patient_id)
        assert patient.insurance.active is True
        assert patient.insurance.name == "CNOPS"
        assert patient.history == ["asthma"]

    def test_update_unknown_patient_is_a_no_op(self, store):
        assert store.update_patient("missing", name="X") is None
        assert store.delete_patient("missing") is False

    def test_unknown_fields_are_ignored(self, store, durant):
        store.update_patient(durant, shoe_size="42", city="Fes")
        patient = store.get_patient_by_id(durant)
        assert patient.city == "Fes"
        assert not hasattr(patient, "shoe_size")

    def test_bad_value_leaves_patient_untouched(self, store, durant):
        with pytest.raises(ValueError):
            store.update_patient(durant, name="Dupont", consultation_count="lots")

        patient = store.get_patient_by_id(durant)
        assert patient.name == "Durant"
        assert patient.consultation_count == 0

    def test_returned_records_are_copies(self, store, durant):
        patient = store.get_patient_by_id(durant)
        patient.name = "Changed"
        assert store.get_patient_by_id(durant).name == "Durant"

    def test_search_patients(self, store, durant):
        store.add_patient(name="Martin", first_name="Pierre", phone="0611")
        assert [p.id for p in store.search_patients("dur")] == [durant]
        assert [p.name for p in store.search_patients("P002")] == ["Martin"]
        assert len(store.search_patients("")) == 2


class TestAppointmentsAndPatientAggregates:
    def test_scenario_add_then_delete_appointment(self, store, durant):
        appointment_id = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z", type="Consultation")

        patient = store.get_patient_by_id(durant)
        assert patient.consultation_count == 1
        assert patient.next_appointment == "20/03/2024 10:00"
        assert store.get_appointment_by_id(appointment_id).time == "2024-03-20T10:00:00.000Z"

        assert store.delete_appointment(appointment_id) is True
        patient = store.get_patient_by_id(durant)
        assert patient.consultation_count == 0
        assert patient.next_appointment == NO_VALUE

    def test_denormalized_fields_filled_from_patient(self, store, durant):
        appointment_id = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        appointment = store.get_appointment_by_id(appointment_id)
        assert appointment.patient == "Durant Marie"
        assert appointment.contact == "0600000001"

    def test_next_appointment_is_earliest_upcoming(self, store, durant):
        store.add_appointment(patient_id=durant, time="2024-03-25T09:00:00Z")
        store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        store.add_appointment(patient_id=durant, time="2024-04-02T11:30:00Z")

        assert store.get_patient_by_id(durant).next_appointment == "20/03/2024 10:00"

    def test_last_consultation_is_latest_past_appointment(self, store, durant):
        store.add_appointment(patient_id=durant, time="2024-01-15T10:00:00Z")
        store.add_appointment(patient_id=durant, time="2024-02-10T10:00:00Z")
        store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")

        patient = store.get_patient_by_id(durant)
        assert patient.last_consultation == "10/02/2024"
        assert patient.next_appointment == "20/03/2024 10:00"
        assert patient.consultation_count == 3

    def test_moving_appointment_recomputes_next(self, store, durant):
        early = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        store.add_appointment(patient_id=durant, time="2024-03-25T10:00:00Z")

        store.update_appointment(early, time="2024-03-28 16:00")

        assert store.get_patient_by_id(durant).next_appointment == "25/03/2024 10:00"
        assert store.get_appointment_by_id(early).time == "2024-03-28T16:00:00.000Z"

    def test_deleting_earliest_appointment_moves_next_to_following_one(self, store, durant):
        first = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        store.add_appointment(patient_id=durant, time="2024-03-25T10:00:00Z")

        store.delete_appointment(first)

        assert store.get_patient_by_id(durant).next_appointment == "25/03/2024 10:00"

    def test_consultation_count_never_goes_negative(self, store, durant):
        first = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        second = store.add_appointment(patient_id=durant, time="2024-03-21T10:00:00Z")
        store.update_patient(durant, consultation_count=0)

        store.delete_appointment(first)
        store.delete_appointment(second)

        assert store.get_patient_by_id(durant).consultation_count == 0

    def test_reassigning_appointment_moves_the_visit_count(self, store, durant):
        other = store.add_patient(name="Martin", first_name="Pierre", phone="0611")
        appointment_id = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")

        store.update_appointment(appointment_id, patient_id=other)

        moved = store.get_appointment_by_id(appointment_id)
        assert moved.patient == "Martin Pierre"
        assert moved.contact == "0611"

        assert store.get_patient_by_id(durant).consultation_count == 0
        assert store.get_patient_by_id(durant).next_appointment == NO_VALUE
        assert store.get_patient_by_id(other).consultation_count == 1
        assert store.get_patient_by_id(other).next_appointment == "20/03/2024 10:00"

    def test_appointment_without_patient_touches_no_patient(self, store, durant):
        store.add_appointment(patient="Walk-in", time="2024-03-20T10:00:00Z")
        assert store.get_patient_by_id(durant).consultation_count == 0

    def test_unparseable_time_is_rejected_and_nothing_stored(self, store, durant):
        with pytest.raises(ValueError):
            store.add_appointment(patient_id=durant, time="someday")
        assert store.appointments == []
        assert store.get_patient_by_id(durant).consultation_count == 0

    def test_reassigning_keeps_explicit_display_fields(self, store, durant):
        other = store.add_patient(name="Martin", first_name="Pierre", phone="0611")
        appointment_id = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")

        store.update_appointment(appointment_id, patient_id=other, patient="P. Martin", contact="0622")

        moved = store.get_appointment_by_id(appointment_id)
        assert (moved.patient, moved.contact) == ("P. Martin", "0622")

    @pytest.mark.parametrize("bad_time", [None, "", "someday"])
    def test_update_with_unusable_time_is_rejected_and_nothing_changes(self, store, durant, bad_time):
        appointment_id = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z", status="Pending")

        with pytest.raises(ValueError):
            store.update_appointment(appointment_id, status="Confirmed", time=bad_time)

        appointment = store.get_appointment_by_id(appointment_id)
        assert appointment.time == "2024-03-20T10:00:00.000Z"
        assert appointment.status == "Pending"
        assert store.get_patient_by_id(durant).next_appointment == "20/03/2024 10:00"

    def test_missing_appointment_is_a_no_op(self, store):
        assert store.update_appointment("missing", status="Done") is None
        assert store.delete_appointment("missing") is False
        assert store.get_appointment_by_id("missing") is None


class TestPatientAppointmentSync:
    def test_rename_and_new_phone_propagate_to_appointments(self, store, durant):
        other = store.add_patient(name="Martin", first_name="Pierre", phone="0611")
        mine = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        theirs = store.add_appointment(patient_id=other, time="2024-03-20T11:00:00Z")

        store.update_patient(durant, name="Dupont", phone="0700000000")

        appointment = store.get_appointment_by_id(mine)
        assert appointment.patient == "Dupont Marie"
        assert appointment.contact == "0700000000"
        untouched = store.get_appointment_by_id(theirs)
        assert untouched.patient == "Martin Pierre"
        assert untouched.contact == "0611"

    def test_first_name_only_change_keeps_family_name(self, store, durant):
        mine = store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        store.update_patient(durant, first_name="Anne")
        assert store.get_appointment_by_id(mine).patient == "Durant Anne"

    def test_delete_patient_cascades_only_to_their_appointments(self, store, durant):
        other = store.add_patient(name="Martin")
        store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        store.add_appointment(patient_id=durant, time="2024-03-21T10:00:00Z")
        kept = store.add_appointment(patient_id=other, time="2024-03-20T11:00:00Z")
        walk_in = store.add_appointment(patient="Walk-in", time="2024-03-20T12:00:00Z")

        assert store.delete_patient(durant) is True

        assert store.get_patient_by_id(durant) is None
        assert sorted(a.id for a in store.appointments) == sorted([kept, walk_in])


class TestPersistence:
    def test_state_survives_a_restart(self, storage, clock, store, durant):
        store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")

        reloaded = ClinicDataStore(storage, clock=clock)

        assert reloaded.last_load.loaded is True
        assert [p.to_dict() for p in reloaded.patients] == [p.to_dict() for p in store.patients]
        assert [a.to_dict() for a in reloaded.appointments] == [a.to_dict() for a in store.appointments]

    def test_layout_of_stored_keys(self, storage, store, durant):
        store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")

        data = storage.read_json("clinic_data")
        assert set(data) == {"patients", "appointments"}
        assert data["patients"][0]["id"] == durant
        assert storage.read_json("appointments") == data["appointments"]

    def test_empty_storage_reports_no_saved_data(self, store):
        assert store.last_load.loaded is False
        assert store.last_load.reason == "no saved data"

    def test_corrupt_storage_starts_empty_and_logs(self, storage, clock, caplog):
        storage.set_item("clinic_data", "{broken")

        with caplog.at_level(logging.ERROR):
            store = ClinicDataStore(storage, clock=clock)

        assert store.patients == []
        assert store.appointments == []
        assert store.last_load.loaded is False
        assert "unreadable" in store.last_load.reason
        assert "Could not load clinic data" in caplog.text

    def test_appointments_only_layout_is_still_loaded(self, storage, clock):
        storage.write_json("appointments", [{"id": "a1", "patient": "Walk-in", "time": "2024-03-20T10:00:00Z"}])

        store = ClinicDataStore(storage, clock=clock)

        assert store.last_load.loaded is True
        assert store.get_appointment_by_id("a1").time == "2024-03-20T10:00:00.000Z"

    def test_write_failures_are_logged_not_raised(self, session_factory, clock, caplog):
        store = ClinicDataStore(FailingWritesStorage(session_factory), clock=clock)

        with caplog.at_level(logging.ERROR):
            patient_id = store.add_patient(name="Durant")

        assert store.get_patient_by_id(patient_id) is not None
        assert "Could not save clinic data" in caplog.text


class TestSnapshots:
    def test_export_format(self, store, durant):
        snapshot = store.export_snapshot()
        assert snapshot["version"] == "1.0"
        assert snapshot["exportDate"] == "2024-03-01T09:00:00.000Z"
        assert [p["id"] for p in snapshot["patients"]] == [durant]
        assert snapshot["appointments"] == []

    def test_import_of_export_restores_identical_data(self, store, durant):
        store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")
        before_patients = [p.to_dict() for p in store.patients]
        before_appointments = [a.to_dict() for a in store.appointments]
        payload = json.dumps(store.export_snapshot()).encode("utf-8")

        store.reset_all()
        counts = store.import_snapshot(payload)

        assert counts == (1, 1)
        assert [p.to_dict() for p in store.patients] == before_patients
        assert [a.to_dict() for a in store.appointments] == before_appointments

    def test_import_replaces_without_merging(self, store, durant):
        snapshot = store.export_snapshot()
        store.add_patient(name="Martin")

        store.import_snapshot(json.dumps(snapshot))

        assert [p.id for p in store.patients] == [durant]

    @pytest.mark.parametrize("missing", ["version", "exportDate"])
    def test_import_without_required_fields_leaves_data_untouched(self, store, durant, missing):
        snapshot = store.export_snapshot()
        snapshot["patients"] = []
        del snapshot[missing]

        with pytest.raises(InvalidSnapshotError):
            store.import_snapshot(json.dumps(snapshot))

        assert [p.id for p in store.patients] == [durant]

    @pytest.mark.parametrize("payload", ["not json", b"\xff\xfe", "[1, 2]", '{"version": "1.0", "exportDate": "x", "patients": [1]}'])
    def test_bad_payloads_are_rejected(self, store, durant, payload):
        with pytest.raises(InvalidSnapshotError):
            store.import_snapshot(payload)
        assert [p.id for p in store.patients] == [durant]

    def test_import_is_persisted(self, storage, clock, store, durant):
        snapshot = store.export_snapshot()
        store.reset_all()
        store.import_snapshot(json.dumps(snapshot))

        assert [p.id for p in ClinicDataStore(storage, clock=clock).patients] == [durant]

    def test_reset_clears_memory_and_storage(self, storage, clock, store, durant):
        store.add_appointment(patient_id=durant, time="2024-03-20T10:00:00Z")

        store.reset_all()

        assert store.patients == []
        assert store.appointments == []
        assert storage.get_item("clinic_data") is None
        assert storage.get_item("appointments") is None
        assert ClinicDataStore(storage, clock=clock).last_load.reason == "no saved data"
