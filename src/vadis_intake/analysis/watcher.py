"""Polling of the aggregated analysis read path."""

import asyncio
from collections.abc import Callable
from typing import Any, Protocol

from vadis_intake.contracts.analysis import ALL_FEATURES, FeatureKey
from vadis_intake.contracts.project import ProjectId
from vadis_intake.errors import APIError, WatchStoppedError
from vadis_intake.logging_config import get_logger

logger = get_logger(__name__)

SnapshotCallback = Callable[[dict[FeatureKey, Any]], None]


class SnapshotSource(Protocol):
    async def fetch_analysis(self, project_id: ProjectId) -> dict[FeatureKey, Any]: ...


class AnalysisWatcher:
    """Polls a project's analysis results until every watched feature is present.

    Progress is what the backend reports. The polling task is owned by the
    watcher: use it as an async context manager (or call ``stop()``) so the
    task never outlives the view that started it.
    """

    def __init__(
        self,
        api: SnapshotSource,
        project_id: ProjectId,
        *,
        interval: float = 5.0,
        features: tuple[FeatureKey, ...] = ALL_FEATURES,
        on_update: SnapshotCallback | None = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._api = api
        self.project_id = project_id
        self.interval = interval
        self.features = features
        self.on_update = on_update

        self.snapshot: dict[FeatureKey, Any] = {}
        self.polls = 0
        self.last_error: str | None = None
        self._done = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def complete(self) -> bool:
        return all(self.snapshot.get(key) is not None for key in self.features)

    def percentage(self) -> int:
        present = sum(1 for key in self.features if self.snapshot.get(key) is not None)
        return int(present * 100 / len(self.features)) if self.features else 100

    async def __aenter__(self) -> "AnalysisWatcher":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self) -> None:
        if self.running:
            return
        self._done.clear()
        self._task = asyncio.create_task(
            self._run_loop(), name=f"analysis-watch-{self.project_id}"
        )
        logger.info("analysis_watch_started", project_id=self.project_id, interval=self.interval)

    async def stop(self) -> None:
        self._done.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("analysis_watch_stopped", project_id=self.project_id, polls=self.polls)

    async def wait(self, timeout: float | None = None) -> dict[FeatureKey, Any]:
        """Wait until all watched features are present.

        Polling started here is stopped again before returning, on every exit path.

        Raises:
            TimeoutError: If they are not all present within ``timeout`` seconds.
            WatchStoppedError: If the watcher is stopped first.
        """
        if self.complete:
            return dict(self.snapshot)

        started_here = not self.running
        if started_here:
            await self.start()
        try:
            await asyncio.wait_for(self._done.wait(), timeout=timeout)
        finally:
            if started_here:
                await self.stop()

        if not self.complete:
            raise WatchStoppedError(f"Watcher for project {self.project_id} was stopped")
        return dict(self.snapshot)

    async def poll_once(self) -> None:
        try:
            snapshot = await self._api.fetch_analysis(self.project_id)
        except APIError as e:
            self.last_error = e.message
            logger.warning(
                "analysis_poll_failed",
                project_id=self.project_id,
                status_code=e.status_code,
                error=e.message,
            )
            return

        self.snapshot = snapshot
        self.polls += 1
        self.last_error = None
        logger.debug(
            "analysis_poll_completed",
            project_id=self.project_id,
            percentage=self.percentage(),
        )
        if self.on_update:
            self.on_update(dict(snapshot))

    async def _run_loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception as e:
                self.last_error = str(e)
                logger.exception("analysis_poll_crashed", project_id=self.project_id)

            if self.complete:
                self._done.set()
                return
            await asyncio.sleep(self.interval)
