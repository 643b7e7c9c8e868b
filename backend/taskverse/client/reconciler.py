"""Optimistic issue mutations with commit-or-rollback.

``IssueReconciler`` snapshots every open view that shows the issue, applies
an optimistic patch, sends the request and then either merges the server's
issue into the views or restores the snapshots.

One request per issue is in flight at a time. The issue stays locked until
its request settles, even when the caller stopped waiting for it after a
timeout or a cancellation, so the next mutation always starts from settled
state. Every mutation settles exactly once: a timed-out request is rolled
back when the timeout fires and its late outcome is dropped, while a
cancelled caller's request settles on its own when it completes. Views
closed in the meantime are left alone.
"""
import asyncio
import functools
import logging
from collections import defaultdict
from typing import Optional

from taskverse.client.state import DetailPanel, IssueView
from taskverse.client.transport import ClientResult
from taskverse.config import settings
from taskverse.errors import ErrorKind
from taskverse.schemas.issue import StatusChange

logger = logging.getLogger(__name__)


class IssueReconciler:
    def __init__(self, transport, statuses: list[dict], users: list[dict], timeout: Optional[float] = None):
        self._transport = transport
        self._statuses = {status["status_id"]: status for status in statuses}
        self._users = {user["user_id"]: user for user in users}
        self._timeout = timeout if timeout is not None else settings.CLIENT_REQUEST_TIMEOUT_SECONDS
        self._views: list[IssueView] = []
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        # Bumped each time a mutation of the issue settles.
        self._generations: dict[str, int] = defaultdict(int)

    def attach(self, view: IssueView) -> IssueView:
        self._views.append(view)
        return view

    def open_views(self, issue_id: str) -> list[IssueView]:
        return [view for view in self._views if not view.closed and view.shows(issue_id)]

    def optimistic_patch(self, issue: dict, edits: list) -> dict:
        """The issue as it will look once ``edits`` succeed, resolved locally."""
        patched = dict(issue)
        for edit in edits:
            data = edit.model_dump(mode="json")
            field, value = data["field"], data["value"]
            patched[field] = value
            if field == "status_id":
                patched["status"] = self._statuses.get(value, patched.get("status"))
            elif field == "assignee_id":
                user = self._users.get(value) if value else None
                patched["assignee"] = (
                    {"user_id": user["user_id"], "name": user["name"], "avatar_url": user.get("avatar_url")}
                    if user else None
                )
        return patched

    async def update_issue(self, issue_id: str, edits: list) -> ClientResult:
        return await self._reconcile(issue_id, edits, lambda: self._transport.update_issue(issue_id, edits))

    async def change_status(self, issue_id: str, status_id: str) -> ClientResult:
        edits = [StatusChange(value=status_id)]
        return await self._reconcile(issue_id, edits, lambda: self._transport.change_status(issue_id, status_id))

    async def submit_comment(self, issue_id: str, body: str) -> ClientResult:
        """Post a comment on the issue.

        Nothing is patched up front. Once the server accepts the comment, the
        returned issue (possibly reassigned by a mention) is merged into every
        open view and open detail panels gain the comment and its activity.
        """
        return await self._reconcile(issue_id, [], lambda: self._transport.create_comment(issue_id, body))

    async def _reconcile(self, issue_id: str, edits: list, send) -> ClientResult:
        lock = self._locks[issue_id]
        await lock.acquire()
        try:
            generation = self._generations[issue_id]
            snapshots = [(view, view.snapshot()) for view in self.open_views(issue_id)]
            if edits:
                for view, _ in snapshots:
                    view.apply_issue(self.optimistic_patch(view.get_issue(issue_id), edits))
            request = asyncio.ensure_future(send())
        except BaseException:
            lock.release()
            raise
        request.add_done_callback(functools.partial(self._finish, issue_id, generation, snapshots, lock))

        try:
            result = await asyncio.wait_for(asyncio.shield(request), self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Mutation of issue %s timed out after %.1fs", issue_id, self._timeout)
            result = ClientResult.failure(ErrorKind.unknown, "Request timed out")
        self._settle(issue_id, generation, snapshots, result)
        return result

    def _finish(self, issue_id: str, generation: int, snapshots, lock: asyncio.Lock, request: asyncio.Future) -> None:
        try:
            self._settle(issue_id, generation, snapshots, _task_result(request))
        finally:
            lock.release()

    def _settle(self, issue_id: str, generation: int, snapshots, result: ClientResult) -> None:
        if self._generations[issue_id] != generation:
            logger.debug("Outcome of an earlier mutation of issue %s already settled", issue_id)
            return
        self._generations[issue_id] += 1

        if result.ok:
            for view in self.open_views(issue_id):
                view.apply_issue(result.issue)
                if isinstance(view, DetailPanel):
                    if result.comment is not None:
                        view.append_comment(result.comment)
                    view.append_activities(result.activities)
            return
        logger.info("Rolling back issue %s: %s", issue_id, result.message)
        for view, snapshot in snapshots:
            if not view.closed:
                view.restore(snapshot)


def _task_result(task: asyncio.Future) -> ClientResult:
    if task.cancelled():
        return ClientResult.failure(ErrorKind.unknown, "Request cancelled")
    if task.exception() is not None:
        return ClientResult.failure(ErrorKind.unknown, str(task.exception()))
    return task.result()
