# Request payload schemas
from .admin import (
    AdminBoardCreate, AdminLabelCreate, AdminProjectCreate, AdminUserCreate, AdminUserUpdate
)
from .board_list import ListCreate
from .card import CardAssign, CardCreate, CardLabelToggle, CardMove, CardUpdate
from .comment import CommentCreate
from .project import (
    BoardCreate, BoardUpdate, LabelCreate, MemberAdd, MemberRemove, MemberRoleUpdate,
    ProjectCreate, ProjectUpdate
)
