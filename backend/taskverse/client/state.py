"""Client-side views of issue state.

Each view keeps its own copy of the issues it shows as plain JSON-shaped
dicts. All of them merge server or optimistic data through ``apply_issue``
and can be snapshotted and restored byte for byte.
"""
import json
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ViewSnapshot:
    """Immutable copy of a view's state, serialized as canonical JSON."""

    state: str


class IssueView:
    def __init__(self, issues=()):
        self._issues: dict[str, dict] = {}
        self.closed = False
        for issue in issues:
            self.apply_issue(issue)

    def shows(self, issue_id: str) -> bool:
        return issue_id in self._issues

    def get_issue(self, issue_id: str) -> Optional[dict]:
        issue = self._issues.get(issue_id)
        return json.loads(json.dumps(issue)) if issue is not None else None

    def apply_issue(self, issue: dict) -> None:
        merged = dict(self._issues.get(issue["issue_id"], {}))
        merged.update(json.loads(json.dumps(issue)))
        self._issues[issue["issue_id"]] = merged

    def _state(self) -> dict:
        return {"issues": self._issues}

    def _load(self, state: dict) -> None:
        self._issues = state["issues"]

    def snapshot(self) -> ViewSnapshot:
        return ViewSnapshot(json.dumps(self._state(), sort_keys=True))

    def restore(self, snapshot: ViewSnapshot) -> None:
        self._load(json.loads(snapshot.state))

    def close(self) -> None:
        self.closed = True


def _key_number(issue: dict) -> int:
    return int(issue["key"].rsplit("-", 1)[1])


class BoardView(IssueView):
    """Issues grouped into one column per status, in status order."""

    def __init__(self, statuses: list[dict], issues=()):
        self.statuses = sorted(statuses, key=lambda s: s["order"])
        super().__init__(issues)

    def columns(self) -> dict[str, list[dict]]:
        columns = {status["status_id"]: [] for status in self.statuses}
        for issue in sorted(self._issues.values(), key=_key_number):
            columns.setdefault(issue["status_id"], []).append(issue)
        return columns


class BacklogView(IssueView):
    """Flat issue list in key order."""

    def rows(self) -> list[dict]:
        return sorted(self._issues.values(), key=_key_number)


class DetailPanel(IssueView):
    """One issue plus its timeline."""

    def __init__(self, issue: dict, timeline: Optional[list[dict]] = None):
        self.issue_id = issue["issue_id"]
        self.timeline: list[dict] = []
        super().__init__([issue])
        for entry in timeline or []:
            self.timeline.append(json.loads(json.dumps(entry)))

    @property
    def issue(self) -> dict:
        return self._issues[self.issue_id]

    def apply_issue(self, issue: dict) -> None:
        if issue["issue_id"] == self.issue_id:
            super().apply_issue(issue)

    def append_comment(self, comment: dict) -> None:
        if comment.get("issue_id") != self.issue_id:
            return
        self.timeline.append({
            "kind": "comment",
            "created_at": comment["created_at"],
            "comment": json.loads(json.dumps(comment)),
            "activity": None,
        })

    def append_activities(self, activities: list[dict]) -> None:
        for activity in activities:
            if activity.get("issue_id") != self.issue_id:
                continue
            self.timeline.append({
                "kind": "activity",
                "created_at": activity["created_at"],
                "comment": None,
                "activity": json.loads(json.dumps(activity)),
            })

    def _state(self) -> dict:
        return {"issues": self._issues, "timeline": self.timeline}

    def _load(self, state: dict) -> None:
        self._issues = state["issues"]
        self.timeline = state["timeline"]
