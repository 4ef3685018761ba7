"""
Client-side state synchronization for a Kanban project-management backend.

Typical wiring, done once at start-up::

    store = KanbanStore(storage=build_storage())
    store.hydrate()
    async with KanbanAPIClient() as api:
        coordinator = OptimisticCoordinator(store, api)
        sync = ProjectSyncService(store, api)
        await sync.load_projects()
        async with sync.running():
            ...
"""
from kanban_sync.services.admin_api import AdminAPIClient
from kanban_sync.services.coordinator import OptimisticCoordinator
from kanban_sync.services.kanban_api import KanbanAPIClient
from kanban_sync.services.persistence import build_storage
from kanban_sync.services.store import KanbanStore
from kanban_sync.services.sync_service import ProjectSyncService

__version__ = "1.0.0"

__all__ = [
    "AdminAPIClient",
    "KanbanAPIClient",
    "KanbanStore",
    "OptimisticCoordinator",
    "ProjectSyncService",
    "build_storage",
]
