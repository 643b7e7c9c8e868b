"""Tests for the merged issue timeline."""
from datetime import datetime, timezone

from taskverse.models import ActivityLog, ActivityType, Comment, Issue
from taskverse.schemas.issue import IssueCreate, PriorityChange, TitleChange
from taskverse.services import activity_service, issue_service
from tests.conftest import caller_for, make_org, make_project, make_user


def _issue(db):
    alice = make_user(db, "Alice")
    org = make_org(db, alice)
    project = make_project(db, alice, org)
    caller = caller_for(db, alice)
    issue = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title="x")).value
    return alice, caller, org, issue


class TestTimeline:
    def test_non_decreasing_created_at(self, db):
        _, caller, _, issue = _issue(db)
        issue_service.create_comment(db, caller, issue.issue_id, "first")
        issue_service.update_issue_field(db, caller, issue.issue_id, PriorityChange(value="LOW"))
        issue_service.create_comment(db, caller, issue.issue_id, "second")
        timeline = activity_service.build_timeline(db, issue.issue_id)
        stamps = [item.created_at for _, item in timeline]
        assert stamps == sorted(stamps)
        assert len(timeline) == 6

    def test_ties_keep_insertion_order_across_comments_and_activity(self, db):
        _, caller, _, issue = _issue(db)
        issue_service.update_issue_field(db, caller, issue.issue_id, PriorityChange(value="LOW"))
        issue_service.update_issue_field(db, caller, issue.issue_id, TitleChange(value="y"))
        issue_service.create_comment(db, caller, issue.issue_id, "a")
        moment = datetime(2030, 1, 1, tzinfo=timezone.utc)
        db.query(ActivityLog).update({ActivityLog.created_at: moment}, synchronize_session=False)
        db.query(Comment).update({Comment.created_at: moment}, synchronize_session=False)
        db.commit()
        db.expire_all()

        timeline = activity_service.build_timeline(db, issue.issue_id)
        assert [kind for kind, _ in timeline] == ["activity", "activity", "activity", "comment", "activity"]
        activity_types = [item.type for kind, item in timeline if kind == "activity"]
        assert activity_types == [
            ActivityType.issue_created, ActivityType.issue_updated,
            ActivityType.issue_updated, ActivityType.comment_added,
        ]
        assert [item.position for _, item in timeline] == [1, 2, 3, 4, 5]

    def test_comment_does_not_touch_updated_at(self, db):
        _, caller, _, issue = _issue(db)
        before = issue.updated_at
        issue_service.create_comment(db, caller, issue.issue_id, "no edits here")
        db.expire_all()
        assert db.get(Issue, issue.issue_id).updated_at == before
