"""Async client layer: optimistic views reconciled against the HTTP API."""
from taskverse.client.inbox import NotificationInbox  # noqa: F401
from taskverse.client.reconciler import IssueReconciler  # noqa: F401
from taskverse.client.state import BacklogView, BoardView, DetailPanel, ViewSnapshot  # noqa: F401
from taskverse.client.transport import ClientResult, HttpIssueTransport  # noqa: F401
