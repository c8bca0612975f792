"""Tests for recording, editing and deleting cleaning events."""
import pytest

from streamertrack.errors import NotFound, ScopeViolation, ValidationError
from streamertrack.models.cleaning_event import CleaningEvent
from streamertrack.modules import event_ingest


def _create(db, scope, **overrides):
    payload = {
        "streamer_id": 1,
        "section_index_start": 0,
        "section_index_end": 3,
        "cleaning_method": "rope",
        "cleaned_at": "2024-05-01T10:00:00Z",
    }
    payload.update(overrides)
    return event_ingest.create_events(db, scope, **payload)


@pytest.fixture
def tail_project(make_project):
    """Active TTN project with five tail sections."""
    return make_project("P-1", "TTN", activate=True, use_rope_for_tail=False)


class TestCreateEvents:
    def test_defaults_to_active_project(self, db, tail_project, admin_scope):
        (event,) = _create(db, admin_scope)
        assert event.project_number == "P-1"
        assert event.vessel_tag == "TTN"
        assert event.section_type == "active"
        assert event.cleaning_count == 1

    def test_no_active_project(self, db, admin_scope):
        with pytest.raises(ValidationError, match="No active project"):
            _create(db, admin_scope)

    def test_viewer_cannot_record(self, db, tail_project, viewer_scope):
        with pytest.raises(ScopeViolation):
            _create(db, viewer_scope)

    def test_straddling_range_creates_two_rows(self, db, tail_project, admin_scope):
        created = _create(db, admin_scope, section_index_start=105, section_index_end=108)
        assert [(e.section_type, e.section_index_start, e.section_index_end) for e in created] == [
            ("active", 105, 106),
            ("tail", 0, 1),
        ]
        assert db.query(CleaningEvent).count() == 2

    def test_reversed_bounds_are_normalized(self, db, tail_project, admin_scope):
        (event,) = _create(db, admin_scope, section_index_start=9, section_index_end=2)
        assert (event.section_index_start, event.section_index_end) == (2, 9)

    def test_tail_range_without_tail_sections(self, db, make_project, admin_scope):
        make_project("P-1", "TTN", activate=True, use_rope_for_tail=True)
        with pytest.raises(ValidationError, match="out of bounds"):
            _create(db, admin_scope, section_index_start=107, section_index_end=108)

    def test_explicit_tail_type_is_validated(self, db, tail_project, admin_scope):
        (event,) = _create(db, admin_scope, section_type="tail", section_index_start=0, section_index_end=4)
        assert event.section_type == "tail"
        with pytest.raises(ValidationError, match="Tail sections must be 0..4"):
            _create(db, admin_scope, section_type="tail", section_index_start=0, section_index_end=5)

    def test_explicit_active_type_past_last_section(self, db, tail_project, admin_scope):
        with pytest.raises(ValidationError, match="Active sections must be 0..106"):
            _create(db, admin_scope, section_type="active", section_index_end=107)

    def test_unknown_section_type(self, db, tail_project, admin_scope):
        with pytest.raises(ValidationError):
            _create(db, admin_scope, section_type="middle")

    def test_negative_index(self, db, tail_project, admin_scope):
        with pytest.raises(ValidationError):
            _create(db, admin_scope, section_index_start=-1)

    @pytest.mark.parametrize("streamer_id", [0, 13])
    def test_streamer_out_of_range(self, db, tail_project, admin_scope, streamer_id):
        with pytest.raises(ValidationError, match="streamer_id"):
            _create(db, admin_scope, streamer_id=streamer_id)

    def test_missing_method(self, db, tail_project, admin_scope):
        with pytest.raises(ValidationError):
            _create(db, admin_scope, cleaning_method="  ")

    def test_scoped_caller_cannot_write_other_vessel(self, db, tail_project, admin_scope):
        (event,) = _create(db, admin_scope, project_number="P-1", vessel_tag="NOR")
        assert event.vessel_tag == "TTN"

    def test_explicit_project_uses_its_geometry(self, db, tail_project, make_project, admin_scope):
        make_project("P-2", "TTN", num_cables=4)
        with pytest.raises(ValidationError, match="1..4"):
            _create(db, admin_scope, project_number="P-2", streamer_id=6)

    def test_unknown_project_number_is_kept(self, db, tail_project, admin_scope):
        (event,) = _create(db, admin_scope, project_number="LEGACY")
        assert event.project_number == "LEGACY"


class TestUpdateEvent:
    def test_replaces_fields(self, db, tail_project, admin_scope, make_event):
        event = make_event(project_number="P-1")
        updated = event_ingest.update_event(
            db, admin_scope, event.id,
            streamer_id=2, section_index_start=4, section_index_end=1,
            cleaning_method="brush", cleaned_at="2024-06-01T00:00:00Z",
        )
        assert updated.streamer_id == 2
        assert (updated.section_index_start, updated.section_index_end) == (1, 4)
        assert updated.cleaning_method == "brush"
        assert updated.section_type == "active"

    def test_range_checked_against_type(self, db, tail_project, admin_scope, make_event):
        event = make_event(section_type="tail", project_number="P-1")
        with pytest.raises(ValidationError):
            event_ingest.update_event(
                db, admin_scope, event.id,
                streamer_id=1, section_index_start=0, section_index_end=6,
                cleaning_method="rope", cleaned_at="2024-06-01",
            )

    def test_other_vessel_event(self, db, tail_project, other_admin_scope, make_event):
        event = make_event(project_number="P-1", vessel_tag="TTN")
        with pytest.raises(ScopeViolation):
            event_ingest.update_event(
                db, other_admin_scope, event.id,
                streamer_id=1, section_index_start=0, section_index_end=0,
                cleaning_method="rope", cleaned_at="2024-06-01",
            )

    def test_missing_event(self, db, tail_project, admin_scope):
        with pytest.raises(NotFound):
            event_ingest.update_event(
                db, admin_scope, 999,
                streamer_id=1, section_index_start=0, section_index_end=0,
                cleaning_method="rope", cleaned_at="2024-06-01",
            )


class TestDeleteEvents:
    def test_delete_single(self, db, admin_scope, make_event):
        event = make_event()
        event_ingest.delete_event(db, admin_scope, event.id)
        assert db.query(CleaningEvent).count() == 0

    def test_delete_other_vessel_event_is_not_found(self, db, other_admin_scope, make_event):
        event = make_event(vessel_tag="TTN")
        with pytest.raises(NotFound):
            event_ingest.delete_event(db, other_admin_scope, event.id)

    def test_project_clear_is_scoped_to_vessel(self, db, admin_scope, make_event):
        make_event(project_number="P-1", vessel_tag="TTN")
        make_event(project_number="P-1", vessel_tag="NOR")
        make_event(project_number="P-2", vessel_tag="TTN")
        assert event_ingest.delete_events(db, admin_scope, "P-1") == 1
        assert db.query(CleaningEvent).count() == 2

    def test_global_clear_requires_unrestricted_superuser(self, db, admin_scope, super_scope, make_event):
        make_event()
        for scope in (admin_scope, super_scope):
            with pytest.raises(ScopeViolation):
                event_ingest.delete_events(db, scope)

    def test_global_clear(self, db, grand_scope, make_event):
        make_event(vessel_tag="TTN")
        make_event(vessel_tag="NOR")
        assert event_ingest.delete_events(db, grand_scope) == 2
