"""Import every model so Base.metadata knows about all tables."""
from taskverse.models.user import User  # noqa: F401
from taskverse.models.organization import Organization, OrganizationMember, Invitation, MemberRole  # noqa: F401
from taskverse.models.project import Project, Status, ProjectType, StatusCategory  # noqa: F401
from taskverse.models.issue import Issue, IssueType, IssuePriority  # noqa: F401
from taskverse.models.comment import Comment  # noqa: F401
from taskverse.models.activity_log import ActivityLog, ActivityType  # noqa: F401
from taskverse.models.notification import Notification, NotificationType  # noqa: F401
