"""Tests for the issue mutation pipeline.

Covers:
- Creation defaults (status, reporter, priority) and ISSUE_CREATED
- Single-field edits and their activity entries
- Assignment notifications
- Batched edits in declared field order
- Rejections leave no state change and no activity
"""
from datetime import date

from taskverse.errors import ErrorKind
from taskverse.models import ActivityLog, ActivityType, Issue, Notification, NotificationType, ProjectType, Status
from taskverse.schemas.issue import (
    AssigneeChange,
    DueDateChange,
    IssueCreate,
    PriorityChange,
    StatusChange,
    TitleChange,
)
from taskverse.services import issue_service
from tests.conftest import (
    add_member,
    add_member_via_invite,
    auth_headers,
    caller_for,
    create_test_issue,
    create_test_org,
    create_test_project,
    create_test_user,
    make_org,
    make_project,
    make_user,
)


def _setup(db):
    alice = make_user(db, "Alice")
    bob = make_user(db, "Bob")
    org = make_org(db, alice)
    add_member(db, org, bob)
    project = make_project(db, alice, org)
    return alice, bob, org, project


def _status(db, project, name):
    return db.query(Status).filter(Status.project_id == project.project_id, Status.name == name).one()


def _activity_types(db, issue_id):
    entries = db.query(ActivityLog).filter(ActivityLog.issue_id == issue_id).order_by(ActivityLog.activity_id).all()
    return [entry.type for entry in entries]


class TestCreateIssue:
    def test_defaults(self, db):
        alice, _, _, project = _setup(db)
        result = issue_service.create_issue(db, caller_for(db, alice), project.project_id, IssueCreate(title="Login page"))
        assert result.ok
        issue = result.value
        assert issue.key == "ALPHA-1"
        assert issue.reporter_id == alice.user_id
        assert issue.assignee_id is None
        assert issue.status.name == "To Do"
        assert [a.type for a in result.activities] == [ActivityType.issue_created]
        assert result.notifications == []

    def test_kanban_defaults_to_first_todo_status(self, db):
        alice = make_user(db, "Alice")
        org = make_org(db, alice)
        project = make_project(db, alice, org, key="KAN", type=ProjectType.kanban)
        result = issue_service.create_issue(db, caller_for(db, alice), project.project_id, IssueCreate(title="x"))
        assert result.value.status.name == "Backlog"

    def test_assignee_gets_notified(self, db):
        alice, bob, _, project = _setup(db)
        result = issue_service.create_issue(
            db, caller_for(db, alice), project.project_id, IssueCreate(title="x", assignee_id=bob.user_id),
        )
        assert result.ok
        assert len(result.notifications) == 1
        assert result.notifications[0].recipient_id == bob.user_id
        assert result.notifications[0].type == NotificationType.assignment

    def test_self_assignment_is_not_notified(self, db):
        alice, _, _, project = _setup(db)
        result = issue_service.create_issue(
            db, caller_for(db, alice), project.project_id, IssueCreate(title="x", assignee_id=alice.user_id),
        )
        assert result.ok
        assert result.notifications == []

    def test_non_member_cannot_create(self, db):
        _, _, _, project = _setup(db)
        mallory = make_user(db, "Mallory")
        result = issue_service.create_issue(db, caller_for(db, mallory), project.project_id, IssueCreate(title="x"))
        assert result.kind == ErrorKind.not_authorized
        assert db.query(Issue).count() == 0

    def test_unauthenticated(self, db):
        _, _, _, project = _setup(db)
        result = issue_service.create_issue(db, None, project.project_id, IssueCreate(title="x"))
        assert result.kind == ErrorKind.not_authenticated

    def test_status_from_another_project_is_not_found(self, db):
        alice, _, org, project = _setup(db)
        other = make_project(db, alice, org, key="BETA")
        foreign = _status(db, other, "Done")
        result = issue_service.create_issue(
            db, caller_for(db, alice), project.project_id, IssueCreate(title="x", status_id=foreign.status_id),
        )
        assert result.kind == ErrorKind.not_found


class TestFieldEdits:
    def test_status_change_records_names(self, db):
        alice, _, _, project = _setup(db)
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
        done = _status(db, project, "Done")
        result = issue_service.change_issue_status(db, caller, issue.issue_id, done.status_id)
        assert result.ok
        assert len(result.activities) == 1
        entry = result.activities[0]
        assert entry.type == ActivityType.status_changed
        assert entry.metadata_["from"] == "To Do"
        assert entry.metadata_["to"] == "Done"
        assert db.get(Issue, issue.issue_id).status_id == done.status_id

    def test_assignee_change_emits_one_entry_and_one_notification(self, db):
        alice, bob, _, project = _setup(db)
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
        result = issue_service.update_issue_field(db, caller, issue.issue_id, AssigneeChange(value=bob.user_id))
        assert [a.type for a in result.activities] == [ActivityType.assignee_changed]
        assert [n.recipient_id for n in result.notifications] == [bob.user_id]

    def test_assigning_self_has_no_notification(self, db):
        alice, _, _, project = _setup(db)
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
        result = issue_service.update_issue_field(db, caller, issue.issue_id, AssigneeChange(value=alice.user_id))
        assert len(result.activities) == 1
        assert result.notifications == []

    def test_assignee_must_be_member(self, db):
        alice, _, _, project = _setup(db)
        mallory = make_user(db, "Mallory")
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
        result = issue_service.update_issue_field(db, caller, issue.issue_id, AssigneeChange(value=mallory.user_id))
        assert result.kind == ErrorKind.not_found
        assert db.get(Issue, issue.issue_id).assignee_id is None

    def test_no_op_edit_has_no_activity(self, db):
        alice, _, _, project = _setup(db)
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="Same")).value
        result = issue_service.update_issue_field(db, caller, issue.issue_id, TitleChange(value="Same"))
        assert result.ok
        assert result.activities == []
        assert _activity_types(db, issue.issue_id) == [ActivityType.issue_created]

    def test_other_fields_emit_issue_updated(self, db):
        alice, _, _, project = _setup(db)
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
        result = issue_service.update_issue_field(db, caller, issue.issue_id, PriorityChange(value="HIGH"))
        assert result.activities[0].type == ActivityType.issue_updated
        assert result.activities[0].metadata_ == {"field": "priority", "from": "MEDIUM", "to": "HIGH"}

    def test_non_member_update_changes_nothing(self, db):
        alice, _, _, project = _setup(db)
        mallory = make_user(db, "Mallory")
        issue = issue_service.create_issue(db, caller_for(db, alice), project.project_id, IssueCreate(title="x")).value
        result = issue_service.update_issue_field(
            db, caller_for(db, mallory), issue.issue_id, TitleChange(value="hacked"),
        )
        assert result.kind == ErrorKind.not_authorized
        db.expire_all()
        assert db.get(Issue, issue.issue_id).title == "x"
        assert _activity_types(db, issue.issue_id) == [ActivityType.issue_created]

    def test_missing_issue(self, db):
        alice, _, _, _ = _setup(db)
        result = issue_service.update_issue_field(db, caller_for(db, alice), "nope", TitleChange(value="y"))
        assert result.kind == ErrorKind.not_found


class TestBatchedEdits:
    def test_entries_follow_declared_field_order(self, db):
        alice, bob, _, project = _setup(db)
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
        done = _status(db, project, "Done")
        edits = [
            DueDateChange(value=date(2030, 1, 1)),
            TitleChange(value="renamed"),
            AssigneeChange(value=bob.user_id),
            StatusChange(value=done.status_id),
        ]
        result = issue_service.update_issue_fields(db, caller, issue.issue_id, edits)
        assert result.ok
        assert [a.type for a in result.activities] == [
            ActivityType.status_changed,
            ActivityType.assignee_changed,
            ActivityType.issue_updated,
            ActivityType.issue_updated,
        ]
        assert [a.metadata_.get("field") for a in result.activities[2:]] == ["title", "due_date"]

    def test_duplicate_fields_rejected(self, db):
        alice, _, _, project = _setup(db)
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
        result = issue_service.update_issue_fields(
            db, caller, issue.issue_id, [TitleChange(value="a"), TitleChange(value="b")],
        )
        assert result.kind == ErrorKind.validation_error
        assert result.details == {"duplicate_fields": ["title"]}

    def test_failure_rolls_back_earlier_edits(self, db):
        alice, _, _, project = _setup(db)
        mallory = make_user(db, "Mallory")
        caller = caller_for(db, alice)
        issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
        done = _status(db, project, "Done")
        result = issue_service.update_issue_fields(
            db, caller, issue.issue_id,
            [StatusChange(value=done.status_id), AssigneeChange(value=mallory.user_id)],
        )
        assert not result.ok
        db.expire_all()
        assert db.get(Issue, issue.issue_id).status.name == "To Do"
        assert _activity_types(db, issue.issue_id) == [ActivityType.issue_created]
        assert db.query(Notification).count() == 0


class TestIssueApi:
    """HTTP surface and envelopes."""

    def _setup(self, client):
        alice = create_test_user(client, "Alice")
        org = create_test_org(client, alice)
        project = create_test_project(client, org, alice)
        return alice, org, project

    def test_create_envelope(self, client):
        alice, _, project = self._setup(client)
        body = create_test_issue(client, project, alice)
        assert body["success"] is True
        assert body["data"]["key"] == "ALPHA-1"
        assert body["data"]["status"]["name"] == "To Do"
        assert body["data"]["reporter"]["name"] == "Alice"
        assert [a["type"] for a in body["activities"]] == ["ISSUE_CREATED"]

    def test_patch_with_edits(self, client):
        alice, _, project = self._setup(client)
        issue = create_test_issue(client, project, alice)["data"]
        resp = client.patch(
            f"/api/issues/{issue['issue_id']}",
            json={"edits": [{"field": "priority", "value": "CRITICAL"}, {"field": "title", "value": "New"}]},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["data"]["priority"] == "CRITICAL"
        assert body["data"]["title"] == "New"
        assert len(body["activities"]) == 2

    def test_unknown_field_is_validation_error(self, client):
        alice, _, project = self._setup(client)
        issue = create_test_issue(client, project, alice)["data"]
        resp = client.patch(
            f"/api/issues/{issue['issue_id']}",
            json={"edits": [{"field": "reporter_id", "value": "x"}]},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "VALIDATION_ERROR"

    def test_status_endpoint(self, client):
        alice, _, project = self._setup(client)
        issue = create_test_issue(client, project, alice)["data"]
        in_progress = next(s for s in project["statuses"] if s["name"] == "In Progress")
        resp = client.post(
            f"/api/issues/{issue['issue_id']}/status",
            json={"status_id": in_progress["status_id"]},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"]["name"] == "In Progress"
        assert resp.json()["activities"][0]["metadata"] == {
            "from": "To Do", "to": "In Progress",
            "from_status_id": issue["status_id"], "to_status_id": in_progress["status_id"],
        }

    def test_non_member_update_is_not_authorized(self, client):
        alice, _, project = self._setup(client)
        mallory = create_test_user(client, "Mallory")
        issue = create_test_issue(client, project, alice)["data"]
        resp = client.patch(
            f"/api/issues/{issue['issue_id']}",
            json={"edits": [{"field": "title", "value": "mine now"}]},
            headers=auth_headers(mallory["access_token"]),
        )
        assert resp.status_code == 403
        body = resp.json()
        assert body["success"] is False
        assert body["error_code"] == "NOT_AUTHORIZED"
        assert body["path"] == f"/api/issues/{issue['issue_id']}"

        timeline = client.get(
            f"/api/issues/{issue['issue_id']}/timeline", headers=auth_headers(alice["access_token"]),
        ).json()
        assert [e["activity"]["type"] for e in timeline] == ["ISSUE_CREATED"]
        fetched = client.get(f"/api/issues/{issue['issue_id']}", headers=auth_headers(alice["access_token"])).json()
        assert fetched["title"] == "First issue"

    def test_missing_token_is_not_authenticated(self, client):
        alice, _, project = self._setup(client)
        issue = create_test_issue(client, project, alice)["data"]
        resp = client.get(f"/api/issues/{issue['issue_id']}")
        assert resp.status_code == 401
        assert resp.json()["error_code"] == "NOT_AUTHENTICATED"

    def test_garbage_token_is_not_authenticated(self, client):
        resp = client.get("/api/notifications/count", headers=auth_headers("not-a-jwt"))
        assert resp.status_code == 401

    def test_list_issues_in_creation_order(self, client):
        alice, _, project = self._setup(client)
        for i in range(3):
            create_test_issue(client, project, alice, title=f"Issue {i}")
        resp = client.get(f"/api/projects/{project['project_id']}/issues", headers=auth_headers(alice["access_token"]))
        assert [i["key"] for i in resp.json()] == ["ALPHA-1", "ALPHA-2", "ALPHA-3"]

    def test_member_role_does_not_matter_for_edits(self, client):
        alice, org, project = self._setup(client)
        bob = create_test_user(client, "Bob")
        add_member_via_invite(client, org, alice, bob)
        issue = create_test_issue(client, project, alice)["data"]
        resp = client.patch(
            f"/api/issues/{issue['issue_id']}",
            json={"edits": [{"field": "assignee_id", "value": bob["user"]["user_id"]}]},
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["assignee"]["name"] == "Bob"
        assert resp.json()["notifications"] == []
