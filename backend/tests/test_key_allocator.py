"""Tests for issue key parsing and per-project allocation."""
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.orm import sessionmaker

from taskverse.errors import ValidationError
from taskverse.models import Issue, Project
from taskverse.schemas.issue import IssueCreate
from taskverse.services import issue_service
from taskverse.services.key_allocator import allocate_issue_key, next_key, parse_key_number
from tests.conftest import caller_for, make_org, make_project, make_user


class TestNextKey:
    def test_first_key_starts_at_one(self):
        assert next_key("ALPHA", None) == "ALPHA-1"

    def test_increments_suffix(self):
        assert next_key("ALPHA", "ALPHA-9") == "ALPHA-10"

    def test_malformed_last_key_rejected(self):
        with pytest.raises(ValidationError):
            next_key("ALPHA", "ALPHA-x")

    def test_key_from_other_project_rejected(self):
        with pytest.raises(ValidationError):
            next_key("ALPHA", "BETA-3")

    def test_malformed_project_key_rejected(self):
        with pytest.raises(ValidationError):
            next_key("alpha", None)

    def test_parse_key_number(self):
        assert parse_key_number("QA-42") == 42


class TestAllocation:
    """Keys come from the project counter, so they never repeat."""

    def test_counter_advances(self, db):
        owner = make_user(db, "Alice")
        org = make_org(db, owner)
        project = make_project(db, owner, org)
        assert allocate_issue_key(db, project) == "ALPHA-1"
        assert allocate_issue_key(db, project) == "ALPHA-2"
        db.commit()
        assert db.get(Project, project.project_id).issue_counter == 2

    def test_n_creations_yield_distinct_increasing_keys(self, db):
        owner = make_user(db, "Alice")
        org = make_org(db, owner)
        project = make_project(db, owner, org)
        caller = caller_for(db, owner)
        keys = []
        for i in range(12):
            result = issue_service.create_issue(db, caller, project.project_id, IssueCreate(title=f"Issue {i}"))
            assert result.ok
            keys.append(result.value.key)
        assert len(set(keys)) == 12
        assert [parse_key_number(k) for k in keys] == list(range(1, 13))

    def test_concurrent_creations_yield_distinct_keys(self, db, db_engine):
        owner = make_user(db, "Alice")
        org = make_org(db, owner)
        project = make_project(db, owner, org)
        caller = caller_for(db, owner)
        project_id = project.project_id
        WorkerSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

        def create(i):
            session = WorkerSession()
            try:
                result = issue_service.create_issue(session, caller, project_id, IssueCreate(title=f"Issue {i}"))
                assert result.ok, result.message
                return result.value.key
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=10) as pool:
            keys = list(pool.map(create, range(10)))

        assert sorted(keys, key=parse_key_number) == [f"ALPHA-{n}" for n in range(1, 11)]
        db.expire_all()
        assert db.get(Project, project_id).issue_counter == 10

    def test_rejected_creation_does_not_consume_a_number(self, db):
        owner = make_user(db, "Alice")
        stranger = make_user(db, "Mallory")
        org = make_org(db, owner)
        project = make_project(db, owner, org)
        result = issue_service.create_issue(
            db, caller_for(db, owner), project.project_id,
            IssueCreate(title="Bad assignee", assignee_id=stranger.user_id),
        )
        assert not result.ok
        result = issue_service.create_issue(db, caller_for(db, owner), project.project_id, IssueCreate(title="Ok"))
        assert result.value.key == "ALPHA-1"

    def test_keys_are_scoped_per_project(self, db):
        owner = make_user(db, "Alice")
        org = make_org(db, owner)
        alpha = make_project(db, owner, org, key="ALPHA")
        beta = make_project(db, owner, org, key="BETA")
        caller = caller_for(db, owner)
        issue_service.create_issue(db, caller, alpha.project_id, IssueCreate(title="a"))
        result = issue_service.create_issue(db, caller, beta.project_id, IssueCreate(title="b"))
        assert result.value.key == "BETA-1"
        assert db.query(Issue).count() == 2
