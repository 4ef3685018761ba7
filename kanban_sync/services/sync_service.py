"""
Polling synchronizer

Keeps the current project fresh without a push channel. While a project is
current, a poll task fetches ``GET /projects/{id}`` once right away and then
on every tick, and overwrites the local project record with the server's.

At most one fetch per project id is outstanding: a tick that finds the
previous fetch unresolved is skipped, so responses cannot land out of order.
The poll task follows the store's current project and is cancelled on switch,
logout and ``stop()``.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from kanban_sync.config import settings
from kanban_sync.core.exceptions import APIException, InvalidFormatError
from kanban_sync.core.logging import get_logger, log_sync_event
from kanban_sync.models import Activity, Project, StoreState
from kanban_sync.services import activity_log
from kanban_sync.services import mutation_engine as engine
from kanban_sync.services.kanban_api import KanbanAPIClient
from kanban_sync.services.store import KanbanStore

logger = get_logger(__name__)


def merge_refreshed_project(state: StoreState, project: Project,
                            server_activities: List[Activity]) -> StoreState:
    """Overwrite one project and rebuild the activity log from the poll.

    The activity log belongs to the current project, so it is only rebuilt
    when the refreshed project is still current.
    """
    new_state = engine.replace_project(state, project)
    if project.id != new_state.current_project_id:
        return new_state
    return new_state.model_copy(update={
        "activities": activity_log.merge_poll(new_state.activities, server_activities)
    })


class ProjectSyncService:
    """Per-project poll loop bound to a store"""

    def __init__(self, store: KanbanStore, api: KanbanAPIClient,
                 interval: Optional[float] = None):
        self.store = store
        self.api = api
        self.interval = settings.poll_interval_seconds if interval is None else interval
        if self.interval <= 0:
            raise ValueError("Poll interval must be positive")

        self.project_id: Optional[str] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._in_flight: Set[str] = set()
        self._fetches: Dict[asyncio.Task, str] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def is_in_flight(self, project_id: str) -> bool:
        return project_id in self._in_flight

    # One-shot operations

    async def load_projects(self) -> List[Project]:
        """Replace every project with the server's list."""
        payloads = await self.api.list_projects()
        try:
            projects = [Project.from_api(payload) for payload in payloads]
        except (PydanticValidationError, AttributeError, TypeError) as e:
            raise InvalidFormatError("Unexpected project list shape", details={"error": str(e)})
        self.store.set_projects(projects)
        logger.info(f"Loaded {len(projects)} projects")
        return projects

    async def refresh_project(self, project_id: Optional[str] = None) -> bool:
        """Fetch and merge one project; False when skipped or failed.

        Failures are logged, never raised, so the poll loop survives a
        flaky backend.
        """
        project_id = project_id or self.store.state.current_project_id
        if project_id is None:
            return False
        if project_id in self._in_flight:
            log_sync_event(logger, "refresh_skipped", project_id=project_id)
            return False
        self._in_flight.add(project_id)
        try:
            return await self._fetch_and_merge(project_id)
        finally:
            self._in_flight.discard(project_id)

    async def _fetch_and_merge(self, project_id: str) -> bool:
        try:
            payload = await self.api.get_project(project_id)
            project = Project.from_api(payload)
            server_activities = activity_log.collect_server_activities(payload)
        except APIException as e:
            logger.warning(
                f"Project refresh failed: {e.message}",
                extra={"project_id": project_id, "status_code": e.status_code},
            )
            return False
        except (PydanticValidationError, AttributeError, TypeError) as e:
            logger.warning(
                f"Project refresh returned an unexpected shape: {e}",
                extra={"project_id": project_id},
            )
            return False

        self.store.dispatch(
            lambda state: merge_refreshed_project(state, project, server_activities)
        )
        log_sync_event(logger, "project_merged", project_id=project_id,
                       activities=len(server_activities))
        return True

    # Poll lifecycle

    async def start(self):
        """Begin following the store's current project."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_state_change)
        self._follow(self.store.state.current_project_id)

    async def stop(self):
        """Cancel the poll loop and any outstanding fetch, and wait for them."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = self._cancel_all()
        self.project_id = None
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        log_sync_event(logger, "stopped")

    @asynccontextmanager
    async def running(self):
        await self.start()
        try:
            yield self
        finally:
            await self.stop()

    def _on_state_change(self, state: StoreState):
        if state.current_project_id != self.project_id:
            self._follow(state.current_project_id)

    def _follow(self, project_id: Optional[str]):
        if project_id == self.project_id and self.is_running:
            return
        self._cancel_all()
        self.project_id = project_id
        if project_id is None:
            log_sync_event(logger, "idle")
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll(project_id))
        log_sync_event(logger, "started", level=logging.INFO, project_id=project_id)

    def _cancel_all(self) -> List[asyncio.Task]:
        tasks = list(self._fetches)
        # A fetch cancelled before its first step never reaches its own cleanup
        for project_id in self._fetches.values():
            self._in_flight.discard(project_id)
        if self._poll_task is not None:
            tasks.append(self._poll_task)
            self._poll_task = None
        for task in tasks:
            task.cancel()
        return tasks

    async def _poll(self, project_id: str):
        while True:
            self._spawn_fetch(project_id)
            await asyncio.sleep(self.interval)

    def _spawn_fetch(self, project_id: str):
        if project_id in self._in_flight:
            log_sync_event(logger, "tick_skipped", project_id=project_id)
            return
        self._in_flight.add(project_id)
        task = asyncio.get_running_loop().create_task(self._guarded_fetch(project_id))
        self._fetches[task] = project_id
        task.add_done_callback(self._fetch_done)

    async def _guarded_fetch(self, project_id: str):
        try:
            await self._fetch_and_merge(project_id)
        except Exception:
            logger.exception("Unexpected error while refreshing project",
                             extra={"project_id": project_id})
        finally:
            self._in_flight.discard(project_id)

    def _fetch_done(self, task: asyncio.Task):
        self._fetches.pop(task, None)
