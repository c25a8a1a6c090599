from datetime import datetime

import structlog

from bomguard.core.exceptions import BomGuardError
from bomguard.core.exceptions import MalformedStateError
from bomguard.core.stats import UpdateStats
from bomguard.models.status import InspectionStatus
from bomguard.models.status import UpdateStatus
from bomguard.services.blackduck_service import BlackDuckService
from bomguard.services.inspection_state import InspectionStateTracker
from bomguard.services.inspection_state import utcnow
from bomguard.services.notification_service import NotificationReconciler

logger = structlog.get_logger('update_service')

MALFORMED_STATE_ACTION = (
    'The inspection properties of {path} are likely malformed and the repository requires '
    're-inspection. Run `bomguard delete-properties` to re-inspect all configured '
    'repositories or delete the malformed properties manually.'
)


class MetadataUpdater:
    """Advances a repository's notification checkpoint."""

    def __init__(
        self,
        state: InspectionStateTracker,
        reconciler: NotificationReconciler,
        blackduck: BlackDuckService,
    ):
        self.state = state
        self.reconciler = reconciler
        self.blackduck = blackduck

    def window_start(self, repo_key: str) -> datetime:
        candidates = [
            ts for ts in (self.state.get_last_update(repo_key), self.state.get_last_inspection(repo_key))
            if ts is not None
        ]
        if not candidates:
            raise MalformedStateError(repo_key, MALFORMED_STATE_ACTION.format(path=repo_key))
        return max(candidates)

    def update_repository(
        self,
        repo_key: str,
        end: datetime | None = None,
        stats: UpdateStats | None = None,
    ) -> datetime | None:
        """
        Apply notifications created since the checkpoint and advance it.

        The new checkpoint is the later of the window start and the newest
        notification, so an empty window leaves it where it was. On any
        failure the repository is marked OUT_OF_DATE and the checkpoint is
        not moved. Returns the new checkpoint, or None when nothing ran.
        """
        if not self.state.assert_status(repo_key, InspectionStatus.SUCCESS):
            logger.debug('Repository not initialized, skipping update', repo=repo_key)
            return None

        stats = stats or UpdateStats()
        try:
            start = self.window_start(repo_key)
            latest = self.reconciler.reconcile([repo_key], start, end or utcnow(), stats)
            checkpoint = max(start, latest) if latest is not None else start
            self.state.set_last_update(repo_key, checkpoint)
            self.state.set_update_status(repo_key, UpdateStatus.UP_TO_DATE)
        except MalformedStateError as e:
            logger.error('Missing timestamp properties', repo=repo_key, action=str(e))
            self._mark_out_of_date(repo_key, stats)
            return None
        except BomGuardError as e:
            logger.error('Failed to update artifact metadata from notifications', repo=repo_key, error=str(e))
            self._mark_out_of_date(repo_key, stats)
            return None

        self._update_project_version_url(repo_key)
        logger.info('Repository up to date', repo=repo_key, checkpoint=checkpoint.isoformat())
        return checkpoint

    def _mark_out_of_date(self, repo_key: str, stats: UpdateStats) -> None:
        stats.inc_failed()
        try:
            self.state.set_update_status(repo_key, UpdateStatus.OUT_OF_DATE)
        except BomGuardError as e:
            logger.error('Could not record update status', repo=repo_key, error=str(e))

    def _update_project_version_url(self, repo_key: str) -> None:
        project_name, version_name = self.state.get_repo_project(repo_key)
        try:
            project_version = self.blackduck.get_project_version(project_name, version_name)
            if project_version is not None and project_version.href:
                self.state.set_project_version_url(repo_key, project_version.href)
        except BomGuardError as e:
            logger.warning('Could not record the project version URL', repo=repo_key, error=str(e))
