"""Tests for the story audit trail."""

from datetime import date

import pytest

from conftest import positions
from tracker.errors import InvalidPositionError, NotFoundError, ValidationError
from tracker.models.audit import AuditEntry
from tracker.models.iteration import Iteration
from tracker.models.story import Story, StoryRisk, StoryStatus, StoryValue
from tracker.story.audit import TRACKED_FIELDS, AuditRecorder


def audit_count(db):
    db.expire_all()
    return db.query(AuditEntry).count()


class TestDiff:
    def test_only_changed_fields(self, db):
        story = Story(title="Login", status=StoryStatus.NEW, description="old")
        changes = AuditRecorder(db).diff(story, {"title": "Login", "description": "new"})
        assert changes == {"description": {"old": "old", "new": "new"}}

    def test_enums_recorded_by_name(self, db):
        story = Story(title="Login", status=StoryStatus.NEW, value=None)
        changes = AuditRecorder(db).diff(story, {"status": StoryStatus.STARTED, "value": StoryValue.HIGH})
        assert changes == {
            "status": {"old": "NEW", "new": "STARTED"},
            "value": {"old": None, "new": "HIGH"},
        }

    def test_untracked_fields_ignored(self, db):
        story = Story(title="Login", position=1)
        assert AuditRecorder(db).diff(story, {"position": 4}) == {}

    def test_tracked_fields(self):
        assert set(TRACKED_FIELDS) == {
            "title", "description", "status", "value", "risk", "owner_id", "iteration_id",
        }


class TestRecordOnUpdate:
    def test_one_entry_for_multi_field_edit(self, db, service, user, make_stories):
        (story,) = make_stories("Login")

        service.update_story(
            story.id,
            {"title": "Login page", "status": StoryStatus.STARTED, "risk": StoryRisk.HIGH},
            user.id,
        )

        entries = service.audit_log(story.id)
        assert len(entries) == 1
        assert entries[0].user_id == user.id
        assert entries[0].changes == {
            "title": {"old": "Login", "new": "Login page"},
            "status": {"old": "NEW", "new": "STARTED"},
            "risk": {"old": None, "new": "HIGH"},
        }

    def test_raw_integers_become_enums(self, db, service, user, make_stories):
        (story,) = make_stories("Login")
        service.update_story(story.id, {"status": 3}, user.id)

        db.expire_all()
        assert db.get(Story, story.id).status is StoryStatus.FINISHED
        assert service.audit_log(story.id)[0].changes == {"status": {"old": "NEW", "new": "FINISHED"}}

    def test_no_change_no_entry(self, db, service, user, make_stories):
        (story,) = make_stories("Login")
        service.update_story(story.id, {"title": "Login", "status": StoryStatus.NEW}, user.id)
        service.update_story(story.id, {}, user.id)
        assert audit_count(db) == 0

    def test_history_newest_first(self, db, service, user, make_stories):
        (story,) = make_stories("Login")
        service.update_story(story.id, {"title": "v2"}, user.id)
        service.update_story(story.id, {"title": "v3"}, user.id)
        service.update_story(story.id, {"title": "v4"}, user.id)

        titles = [entry.changes["title"]["new"] for entry in service.audit_log(story.id)]
        assert titles == ["v4", "v3", "v2"]

    def test_updater_recorded_only_on_change(self, db, service, user, make_stories):
        (story,) = make_stories("Login")
        service.update_story(story.id, {"title": "Login"}, user.id)
        db.expire_all()
        assert db.get(Story, story.id).updater_id is None

        service.update_story(story.id, {"title": "Logout"}, user.id)
        db.expire_all()
        assert db.get(Story, story.id).updater_id == user.id

    def test_reprioritize_is_not_audited(self, db, service, make_stories):
        a, b = make_stories("A", "B")
        service.reprioritize(b.id, 1)
        assert audit_count(db) == 0


class TestAllOrNothing:
    def test_invalid_status_changes_nothing(self, db, service, user, make_stories):
        (story,) = make_stories("Login")

        with pytest.raises(ValidationError) as excinfo:
            service.update_story(story.id, {"title": "New title", "status": 42}, user.id)

        assert "status" in excinfo.value.fields
        db.expire_all()
        assert db.get(Story, story.id).title == "Login"
        assert audit_count(db) == 0

    def test_blank_title_rejected(self, db, service, user, make_stories):
        (story,) = make_stories("Login")

        with pytest.raises(ValidationError) as excinfo:
            service.update_story(story.id, {"title": "   "}, user.id)

        assert "title" in excinfo.value.fields
        assert audit_count(db) == 0

    def test_unknown_iteration_rolls_back(self, db, service, user, make_stories):
        (story,) = make_stories("Login")

        with pytest.raises(NotFoundError):
            service.update_story(story.id, {"title": "Changed", "iteration_id": 999}, user.id)

        db.expire_all()
        assert db.get(Story, story.id).title == "Login"
        assert audit_count(db) == 0

    def test_bad_position_rolls_back_field_changes(self, db, service, user, project, make_stories):
        a, b = make_stories("A", "B")

        with pytest.raises(InvalidPositionError):
            service.update_story(a.id, {"title": "Changed", "position": 7}, user.id)

        assert positions(db, project.id) == [("A", 1), ("B", 2)]
        assert audit_count(db) == 0

    @pytest.mark.parametrize("target", [True, 2.0, "abc"])
    def test_non_integer_position_rejected(self, db, service, user, project, make_stories, target):
        a, b = make_stories("A", "B")

        with pytest.raises(InvalidPositionError):
            service.update_story(a.id, {"title": "Changed", "position": target}, user.id)

        assert positions(db, project.id) == [("A", 1), ("B", 2)]
        assert audit_count(db) == 0

    def test_update_with_position_moves_and_audits(self, db, service, user, project, make_stories):
        a, b, c = make_stories("A", "B", "C")
        service.update_story(c.id, {"title": "C!", "position": 1}, user.id)

        assert positions(db, project.id) == [("C!", 1), ("A", 2), ("B", 3)]
        assert [e.changes for e in service.audit_log(c.id)] == [{"title": {"old": "C", "new": "C!"}}]


class TestCascade:
    def test_deleting_story_removes_its_entries(self, db, service, user, make_stories):
        a, b = make_stories("A", "B")
        service.update_story(a.id, {"title": "A2"}, user.id)
        service.update_story(b.id, {"title": "B2"}, user.id)

        service.delete_story(a.id)

        db.expire_all()
        remaining = db.query(AuditEntry).all()
        assert [entry.story_id for entry in remaining] == [b.id]

    def test_iteration_assignment_is_audited(self, db, service, user, project, make_stories):
        (story,) = make_stories("A")
        iteration = Iteration(project_id=project.id, name="Sprint 1", start_date=date(2024, 1, 1), end_date=date(2024, 1, 14))
        db.add(iteration)
        db.commit()

        service.assign_iteration(story.id, iteration.id, user.id)
        service.assign_iteration(story.id, None, user.id)

        changes = [entry.changes for entry in service.audit_log(story.id)]
        assert changes == [
            {"iteration_id": {"old": iteration.id, "new": None}},
            {"iteration_id": {"old": None, "new": iteration.id}},
        ]
