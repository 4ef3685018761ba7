from .activity import Activity
from .attachment import Attachment, ProjectMedia
from .board import Board
from .board_list import BoardList
from .card import Card
from .comment import Comment
from .enums import ActivityType, Priority, UserRole
from .label import Label
from .project import Membership, Project
from .state import StoreState
from .user import User

__all__ = [
    "Activity",
    "ActivityType",
    "Attachment",
    "Board",
    "BoardList",
    "Card",
    "Comment",
    "Label",
    "Membership",
    "Priority",
    "Project",
    "ProjectMedia",
    "StoreState",
    "User",
    "UserRole",
]
