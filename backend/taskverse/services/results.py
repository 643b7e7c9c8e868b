"""Result types returned across the mutation boundary.

Mutations never raise to their callers. ``mutation_boundary`` owns the
transaction: it commits when the wrapped service returns and turns any
exception into a ``Failure`` after rolling back, so a rejected mutation
leaves no partial state behind.
"""
import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from taskverse.errors import ErrorKind, TaskverseError

logger = logging.getLogger(__name__)


@dataclass
class Success:
    value: Any
    activities: list = field(default_factory=list)
    notifications: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True


@dataclass
class Failure:
    kind: ErrorKind
    message: str
    details: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return False


def mutation_boundary(operation: str):
    """Run a service mutation as one transaction returning Success or Failure.

    The wrapped function takes ``(db, caller, ...)`` and returns a
    ``Success``.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(db, caller, *args, **kwargs):
            actor = caller.user_id if caller is not None else None
            try:
                result = fn(db, caller, *args, **kwargs)
                db.commit()
            except TaskverseError as exc:
                db.rollback()
                logger.info("%s rejected for user=%s: %s %s", operation, actor, exc.kind.value, exc.message)
                return Failure(exc.kind, exc.message, exc.details)
            except IntegrityError:
                db.rollback()
                logger.warning("%s hit a constraint violation for user=%s", operation, actor)
                return Failure(ErrorKind.conflict, "The change conflicts with existing data")
            except Exception:
                db.rollback()
                logger.exception("%s failed unexpectedly for user=%s", operation, actor)
                return Failure(ErrorKind.unknown, "An unexpected error occurred")
            logger.info(
                "%s committed by user=%s (%d activities, %d notifications)",
                operation, actor, len(result.activities), len(result.notifications),
            )
            return result

        return wrapper

    return decorator
