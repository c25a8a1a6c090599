from collections.abc import Callable
from concurrent.futures import as_completed
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

import structlog

from bomguard.core.config import InspectionConfig
from bomguard.core.decorators import module_operation
from bomguard.core.exceptions import BomGuardError
from bomguard.core.exceptions import ConfigurationError
from bomguard.core.exceptions import DownloadBlockedError
from bomguard.core.exceptions import HostRepositoryError
from bomguard.core.stats import InspectionStats
from bomguard.core.stats import UpdateStats
from bomguard.models.coordinate import Coordinate
from bomguard.models.properties import BlackDuckProperty
from bomguard.models.status import InspectionStatus
from bomguard.services.delta_service import DeltaInspector
from bomguard.services.initialization_service import RepositoryInitializer
from bomguard.services.inspection_state import InspectionStateTracker
from bomguard.services.update_service import MetadataUpdater

logger = structlog.get_logger('inspection_service')


class InspectionModule:
    """
    Entry points of the inspection module.

    Batch operations fan out over the configured repositories on a thread
    pool; one repository failing never stops the others. Every operation is
    a no-op returning None while the module is disabled.
    """

    name = 'inspection'

    def __init__(
        self,
        config: InspectionConfig,
        state: InspectionStateTracker,
        delta: DeltaInspector,
        updater: MetadataUpdater,
        initializer: RepositoryInitializer,
    ):
        self.config = config
        self.state = state
        self.delta = delta
        self.updater = updater
        self.initializer = initializer

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _for_each_repo(self, operation: Callable[[str], Any], repo_keys: list[str] | None = None) -> dict[str, Any]:
        repo_keys = list(repo_keys if repo_keys is not None else self.config.repos)
        results: dict[str, Any] = {}
        with ThreadPoolExecutor(max_workers=max(1, self.config.workers)) as executor:
            futures = {executor.submit(operation, repo_key): repo_key for repo_key in repo_keys}
            for future in as_completed(futures):
                repo_key = futures[future]
                try:
                    results[repo_key] = future.result()
                except Exception as e:
                    logger.error('Repository operation failed', repo=repo_key, error=str(e))
                    results[repo_key] = None
        return results

    # Repository initialization

    @module_operation
    def initialize_repositories(self, repo_keys: list[str] | None = None) -> dict[str, bool]:
        results = self._for_each_repo(self.initializer.initialize_repository, repo_keys)
        return {repo_key: bool(ok) for repo_key, ok in results.items()}

    # Delta inspection

    @module_operation
    def inspect_repository_delta(self, repo_key: str, stats: InspectionStats | None = None) -> InspectionStats:
        """Inspect one repository; a repository-level failure is recorded on the repository root."""
        stats = stats or InspectionStats()
        try:
            self.delta.inspect_repository(repo_key, stats)
        except ConfigurationError as e:
            logger.error('Repository cannot be inspected as configured', repo=repo_key, error=e.message)
            stats.inc_failed()
            self._record_failure(repo_key, e.message, retryable=False)
        except BomGuardError as e:
            logger.error('An error occurred when inspecting the repository', repo=repo_key, error=str(e))
            stats.inc_failed()
            self._record_failure(repo_key, str(e))
        return stats

    @module_operation
    def inspect_all_deltas(self, repo_keys: list[str] | None = None) -> InspectionStats:
        stats = InspectionStats()
        self._for_each_repo(lambda repo_key: self.inspect_repository_delta(repo_key, stats), repo_keys)
        return stats

    def _record_failure(self, path: str, reason: str, retryable: bool = True) -> None:
        try:
            self.state.mark_failure(path, reason, retryable=retryable)
        except HostRepositoryError as e:
            logger.error('Could not record inspection failure', path=path, error=str(e))

    # Notification updates

    @module_operation
    def update_repository_metadata(self, repo_key: str, stats: UpdateStats | None = None) -> datetime | None:
        return self.updater.update_repository(repo_key, stats=stats)

    @module_operation
    def update_all_metadata(self, repo_keys: list[str] | None = None) -> UpdateStats:
        stats = UpdateStats()
        self._for_each_repo(lambda repo_key: self.updater.update_repository(repo_key, stats=stats), repo_keys)
        return stats

    # Storage events

    @module_operation
    def handle_artifact_created_or_moved(self, path: str) -> Coordinate | None:
        """Start an artifact over after it was created, copied or moved into place."""
        if not self.delta.should_inspect_artifact(path):
            logger.debug('Artifact is not inspected', path=path)
            return None
        try:
            self.state.properties.delete_all(path)
            return self.delta.identify_and_mark(path)
        except BomGuardError as e:
            logger.error('Failed to inspect artifact added to storage', path=path, error=str(e))
            self._record_failure(path, str(e))
            return None

    @module_operation
    def handle_before_download(self, path: str) -> None:
        """Raise DownloadBlockedError for an artifact that was never inspected, when blocking is on."""
        if not self.config.metadata_block:
            return None
        try:
            pending = self.state.assert_status(path, InspectionStatus.PENDING)
            blocked = pending and self.delta.should_inspect_artifact(path)
        except HostRepositoryError as e:
            logger.error('Could not read inspection status before download', path=path, error=str(e))
            if not self.config.block_fail_closed:
                return None
            blocked = True
        if blocked:
            raise DownloadBlockedError(
                path,
                f'The {self.name} module has prevented the download of {path} '
                'because it has not been inspected yet.',
            )
        return None

    # Administration

    @module_operation
    def reinspect_failures(
        self,
        properties: list[BlackDuckProperty] | None = None,
        repo_keys: list[str] | None = None,
    ) -> list[str]:
        """
        Clear the given properties (all inspection properties by default) on
        failed artifacts and identify them again. Returns the paths touched.
        """
        repo_keys = list(repo_keys if repo_keys is not None else self.config.repos)
        failed = [
            path for path in self.state.paths_with_status(repo_keys, InspectionStatus.FAILURE)
            if path not in repo_keys
        ]
        for path in failed:
            self.state.properties.delete_all(path, properties)
        for path in failed:
            if self.delta.should_inspect_artifact(path):
                self.delta.identify_and_mark(path)
        logger.info('Reinspected failed artifacts', count=len(failed))
        return failed

    @module_operation
    def delete_inspection_properties(
        self,
        properties: list[BlackDuckProperty] | None = None,
        repo_keys: list[str] | None = None,
    ) -> list[str]:
        """Remove inspection properties from the repositories and every artifact carrying them."""
        repo_keys = list(repo_keys if repo_keys is not None else self.config.repos)
        cleaned: list[str] = []
        for repo_key in repo_keys:
            paths = [repo_key]
            for key in (BlackDuckProperty.INSPECTION_STATUS, BlackDuckProperty.FORGE, BlackDuckProperty.POLICY_STATUS):
                paths.extend(self.state.properties.find_paths([repo_key], {key: None}))
            paths = list(dict.fromkeys(paths))
            for path in paths:
                self.state.properties.delete_all(path, properties)
            cleaned.extend(paths)
            logger.info('Deleted inspection properties', repo=repo_key, paths=len(paths))
        return cleaned
