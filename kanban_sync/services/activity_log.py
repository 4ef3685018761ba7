"""
Activity log derivation

The log is never edited in place. Optimistic actions push a client entry to
the front of a capped list; each poll rebuilds the whole list from the
server's board activities plus the client entries the server has not
reported yet.
"""
import uuid
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from kanban_sync.config import settings
from kanban_sync.core.logging import get_logger
from kanban_sync.models import Activity, ActivityType
from kanban_sync.models.base import utcnow

logger = get_logger(__name__)


def new_activity(activity_type: ActivityType, user_id: str, description: str,
                 card_id: Optional[str] = None, list_id: Optional[str] = None) -> Activity:
    """Build a client-side entry; it has no board id until the server reports it."""
    return Activity(
        id=str(uuid.uuid4()),
        type=activity_type,
        user_id=user_id,
        card_id=card_id,
        list_id=list_id,
        board_id=None,
        description=description,
        created_at=utcnow(),
    )


def push_local(activities: List[Activity], activity: Activity,
               cap: Optional[int] = None) -> List[Activity]:
    cap = settings.activity_local_cap if cap is None else cap
    return [activity, *activities][:cap]


def collect_server_activities(project_payload: Dict[str, Any]) -> List[Activity]:
    """Gather activities embedded in a project's boards, first occurrence per id."""
    collected: List[Activity] = []
    seen = set()
    for board in project_payload.get("boards") or []:
        for raw in board.get("activities") or []:
            activity_id = raw.get("id")
            if activity_id is None or activity_id in seen:
                continue
            try:
                activity = Activity.from_api({"boardId": board.get("id"), **raw})
            except PydanticValidationError as e:
                logger.warning(
                    f"Skipping unreadable activity {activity_id}",
                    extra={"errors": e.errors(include_url=False)},
                )
                continue
            seen.add(activity_id)
            collected.append(activity)
    return collected


def merge_poll(current: Iterable[Activity], server: Iterable[Activity],
               cap: Optional[int] = None) -> List[Activity]:
    """Combine server entries with local pending ones, newest first, capped.

    Ids are unique in the result; a server entry wins over a local one with
    the same id. Entries with equal timestamps keep server-then-local order.
    """
    cap = settings.activity_merged_cap if cap is None else cap

    merged: List[Activity] = []
    seen = set()
    for activity in server:
        if activity.id not in seen:
            seen.add(activity.id)
            merged.append(activity)
    for activity in current:
        if activity.is_pending and activity.id not in seen:
            seen.add(activity.id)
            merged.append(activity)

    merged.sort(key=lambda a: a.created_at, reverse=True)
    return merged[:cap]
