"""Tests for project CRUD, deployments and streamer cleanup."""
import pytest

from streamertrack.errors import ConflictError, NotFound, ScopeViolation, ValidationError
from streamertrack.models.app_config import AppConfigEntry
from streamertrack.models.cleaning_event import CleaningEvent
from streamertrack.models.project import Project
from streamertrack.models.streamer_deployment import StreamerDeployment
from streamertrack.modules import project_manager, scope_resolver


class TestCreateProject:
    def test_copies_global_defaults(self, db, super_scope):
        db.add(AppConfigEntry(key="num_cables", value="10"))
        db.commit()
        project = project_manager.create_project(db, super_scope, "P-1", sections_per_cable=90)
        assert project.num_cables == 10
        assert project.sections_per_cable == 90
        assert project.vessel_tag == "TTN"

    def test_scoped_caller_cannot_create_for_other_vessel(self, db, super_scope):
        with pytest.raises(ScopeViolation):
            project_manager.create_project(db, super_scope, "P-1", vessel_tag="NOR")

    def test_grand_superuser_picks_vessel(self, db, grand_scope):
        project = project_manager.create_project(db, grand_scope, "P-1", vessel_tag="NOR")
        assert project.vessel_tag == "NOR"

    def test_duplicate_number(self, db, super_scope, make_project):
        make_project("P-1")
        with pytest.raises(ConflictError):
            project_manager.create_project(db, super_scope, "P-1")

    def test_blank_number(self, db, super_scope):
        with pytest.raises(ValidationError):
            project_manager.create_project(db, super_scope, "   ")

    def test_admin_cannot_create(self, db, admin_scope):
        with pytest.raises(ScopeViolation):
            project_manager.create_project(db, admin_scope, "P-1")


class TestListAndUpdate:
    def test_list_marks_active_and_filters_by_vessel(self, db, super_scope, grand_scope, make_project):
        make_project("P-1", "TTN", activate=True)
        make_project("P-2", "TTN")
        make_project("P-3", "NOR", activate=True)

        scoped = project_manager.list_projects(db, super_scope)
        assert {p["projectNumber"]: p["isActive"] for p in scoped} == {"P-1": True, "P-2": False}

        everything = project_manager.list_projects(db, grand_scope)
        assert sorted(p["projectNumber"] for p in everything if p["isActive"]) == ["P-1", "P-3"]

    def test_update_only_given_fields(self, db, super_scope, make_project):
        project = make_project("P-1", num_cables=12, comments="keep")
        project_manager.update_project(db, super_scope, project.id, {"num_cables": 8})
        db.commit()
        refreshed = db.get(Project, project.id)
        assert refreshed.num_cables == 8
        assert refreshed.comments == "keep"

    def test_update_unknown_field(self, db, super_scope, make_project):
        project = make_project("P-1")
        with pytest.raises(ValidationError):
            project_manager.update_project(db, super_scope, project.id, {"project_number": "X"})

    def test_update_other_vessel(self, db, super_scope, make_project):
        project = make_project("P-1", "NOR")
        with pytest.raises(ScopeViolation):
            project_manager.update_project(db, super_scope, project.id, {"comments": "x"})


class TestDeleteProject:
    def test_delete_without_dependents(self, db, super_scope, make_project):
        project = make_project("P-1", activate=True)
        project_manager.delete_project(db, super_scope, project.id)
        db.commit()
        assert db.query(Project).count() == 0
        assert scope_resolver.resolve(db, "TTN") is None

    def test_dependents_require_confirmation(self, db, super_scope, make_project, make_event):
        project = make_project("P-1")
        make_event(project_number="P-1")
        make_event(project_number="P-1")
        db.add(StreamerDeployment(project_id=project.id, streamer_id=1))
        db.commit()

        with pytest.raises(ConflictError) as exc_info:
            project_manager.delete_project(db, super_scope, project.id)
        assert exc_info.value.details == {
            "requiresConfirmation": True,
            "eventCount": 2,
            "deploymentCount": 1,
        }

    def test_force_delete_removes_dependents(self, db, super_scope, make_project, make_event):
        project = make_project("P-1", activate=True)
        make_event(project_number="P-1")
        make_event(project_number="OTHER")
        db.add(StreamerDeployment(project_id=project.id, streamer_id=1))
        db.commit()

        result = project_manager.delete_project(db, super_scope, project.id, force=True)
        db.commit()
        assert result == {"eventCount": 1, "deploymentCount": 1}
        assert db.query(CleaningEvent).count() == 1
        assert db.query(StreamerDeployment).count() == 0
        assert scope_resolver.active_project_ids(db) == {}

    def test_delete_missing(self, db, super_scope):
        with pytest.raises(NotFound):
            project_manager.delete_project(db, super_scope, 999)


class TestDeployments:
    def test_save_and_read_back(self, db, super_scope, make_project):
        project = make_project("P-1")
        saved = project_manager.save_deployments(db, super_scope, project.id, {
            1: {"deployment_date": "2024-04-01", "is_coated": True},
            2: {"deployment_date": None, "is_coated": False},
        })
        db.commit()
        assert saved == 2
        assert project_manager.get_deployments(db, project.id) == {
            1: {"deploymentDate": "2024-04-01", "isCoated": True},
            2: {"deploymentDate": None, "isCoated": False},
        }

    def test_save_updates_existing_row(self, db, super_scope, make_project):
        project = make_project("P-1")
        project_manager.save_deployments(db, super_scope, project.id, {1: {"is_coated": False}})
        project_manager.save_deployments(db, super_scope, project.id, {1: {"is_coated": True}})
        db.commit()
        assert db.query(StreamerDeployment).count() == 1
        assert project_manager.get_deployments(db, project.id)[1]["isCoated"] is True

    def test_delete_deployment(self, db, super_scope, make_project):
        project = make_project("P-1")
        project_manager.save_deployments(db, super_scope, project.id, {3: {"is_coated": True}})
        assert project_manager.delete_deployment(db, super_scope, project.id, 3) == 1
        assert project_manager.get_deployments(db, project.id) == {}

    def test_invalid_streamer(self, db, super_scope, make_project):
        project = make_project("P-1")
        with pytest.raises(ValidationError):
            project_manager.save_deployments(db, super_scope, project.id, {0: {}})


class TestCleanupStreamers:
    def test_removes_rows_above_max(self, db, grand_scope, make_project, make_event):
        project = make_project("P-1")
        for sid in (1, 8, 9):
            make_event(streamer_id=sid)
        db.add_all([StreamerDeployment(project_id=project.id, streamer_id=s) for s in (1, 9)])
        db.commit()

        result = project_manager.cleanup_streamers(db, grand_scope, 8)
        assert result == {"deletedEvents": 1, "deletedDeployments": 1}

    def test_scoped_cleanup_leaves_other_vessels(self, db, super_scope, make_project, make_event):
        nor = make_project("P-2", "NOR")
        make_event(streamer_id=10, vessel_tag="NOR")
        make_event(streamer_id=10, vessel_tag="TTN")
        db.add(StreamerDeployment(project_id=nor.id, streamer_id=10))
        db.commit()

        result = project_manager.cleanup_streamers(db, super_scope, 4)
        assert result == {"deletedEvents": 1, "deletedDeployments": 0}

    def test_invalid_max(self, db, grand_scope):
        with pytest.raises(ValidationError):
            project_manager.cleanup_streamers(db, grand_scope, 0)
