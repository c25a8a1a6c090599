from fnmatch import fnmatchcase

import structlog

from bomguard.core.config import InspectionConfig
from bomguard.core.exceptions import BomGuardError
from bomguard.core.exceptions import ConfigurationError
from bomguard.core.exceptions import HostRepositoryError
from bomguard.core.stats import InspectionStats
from bomguard.models.blackduck import ProjectVersionView
from bomguard.models.coordinate import Coordinate
from bomguard.models.host import repo_key_of
from bomguard.models.metadata import PolicyVulnerabilityAggregate
from bomguard.models.status import InspectionStatus
from bomguard.services.artifactory_service import HostRepository
from bomguard.services.blackduck_service import BlackDuckService
from bomguard.services.identifier_service import IdentifierResolver
from bomguard.services.inspection_state import InspectionStateTracker

logger = structlog.get_logger('delta_service')


class DeltaInspector:
    """Finds artifacts of an initialized repository that still need inspection and registers them."""

    def __init__(
        self,
        host: HostRepository,
        blackduck: BlackDuckService,
        state: InspectionStateTracker,
        resolver: IdentifierResolver,
        config: InspectionConfig,
    ):
        self.host = host
        self.blackduck = blackduck
        self.state = state
        self.resolver = resolver
        self.config = config

    def get_patterns(self, repo_key: str) -> list[str]:
        """Name patterns for the repository's package type; ConfigurationError when there are none."""
        package_type = self.host.get_package_type(repo_key)
        if not package_type:
            raise ConfigurationError(
                repo_key, f"The repository '{repo_key}' has no package type. Inspection cannot be performed.",
            )
        patterns = self.config.get_patterns_for_package_type(package_type)
        if not patterns:
            raise ConfigurationError(
                repo_key,
                f"The repository '{repo_key}' has a package type of '{package_type}' "
                'which either is not supported or has no patterns configured for it.',
            )
        return patterns

    def get_repo_project_version(self, repo_key: str) -> ProjectVersionView:
        project_name, version_name = self.state.get_repo_project(repo_key)
        project_version = self.blackduck.get_project_version(project_name, version_name)
        if project_version is None:
            raise ConfigurationError(
                repo_key, f"Project '{project_name}' and version '{version_name}' could not be found.",
            )
        return project_version

    def inspect_repository(self, repo_key: str, stats: InspectionStats | None = None) -> InspectionStats:
        """
        Inspect the artifacts of `repo_key` that are pending or may be retried.

        Does nothing unless the repository itself was initialized
        successfully. Raises ConfigurationError before touching any property
        when the repository cannot be inspected as configured.
        """
        stats = stats or InspectionStats()
        if not self.state.assert_status(repo_key, InspectionStatus.SUCCESS):
            logger.info('Repository not initialized, skipping delta inspection', repo=repo_key)
            stats.inc_skipped()
            return stats

        patterns = self.get_patterns(repo_key)
        project_version = self.get_repo_project_version(repo_key)

        paths = self.host.search_by_patterns([repo_key], patterns)
        logger.info('Inspecting delta', repo=repo_key, artifacts=len(paths))
        for path in paths:
            self.inspect_candidate(path, project_version, stats)

        logger.info(
            'Delta inspection complete', repo=repo_key, inspected=stats.inspected,
            failed=stats.failed, unresolved=stats.unresolved,
        )
        return stats

    def inspect_candidate(
        self,
        path: str,
        project_version: ProjectVersionView,
        stats: InspectionStats,
    ) -> None:
        """Inspect one artifact if it is pending or retryable. Errors are recorded on the artifact only."""
        try:
            if not self.state.is_pending_or_retryable(path):
                return
        except BomGuardError as e:
            # Status unknown; the next pass picks the artifact up again
            logger.error('Could not read inspection status', path=path, error=str(e))
            stats.inc_failed()
            return

        stats.inc_total()
        try:
            coordinate = self.resolver.resolve(path)
        except BomGuardError as e:
            self._fail(path, f'Failed to resolve a component identifier: {e}', stats)
            return
        if coordinate is None:
            stats.inc_unresolved()
            self._fail(path, 'Could not resolve a component identifier for the artifact', stats)
            return
        stats.inc_identified()
        self.inspect_artifact(path, coordinate, project_version, stats)

    def inspect_artifact(
        self,
        path: str,
        coordinate: Coordinate,
        project_version: ProjectVersionView,
        stats: InspectionStats | None = None,
    ) -> bool:
        """Register one resolved artifact in the project version's BOM. Failures are recorded, not raised."""
        try:
            if not self.state.has_identifier_properties(path):
                self.state.record_identifier(path, coordinate)
            bom_component = self.blackduck.add_component_to_project_version(coordinate, project_version)
            metadata = PolicyVulnerabilityAggregate.from_bom_component(bom_component)
            self.state.mark_success(path, coordinate, metadata)
        except BomGuardError as e:
            self._fail(path, f'Failed to find component: {e}', stats)
            return False

        if stats is not None:
            stats.inc_inspected()
        logger.info('Artifact inspected', path=path, coordinate=str(coordinate))
        return True

    def _fail(self, path: str, reason: str, stats: InspectionStats | None) -> None:
        if stats is not None:
            stats.inc_failed()
        try:
            self.state.mark_failure(path, reason)
        except HostRepositoryError as e:
            logger.error('Could not record inspection failure', path=path, reason=reason, error=str(e))

    def should_inspect_artifact(self, path: str) -> bool:
        """True for files of a configured repository whose name matches its package type's patterns."""
        repo_key = repo_key_of(path)
        if repo_key not in self.config.repos:
            return False

        item = self.host.get_item_info(path)
        if item is None or item.is_folder:
            return False

        package_type = self.host.get_package_type(repo_key)
        patterns = self.config.get_patterns_for_package_type(package_type) if package_type else []
        return any(fnmatchcase(item.name, pattern) for pattern in patterns)

    def identify_and_mark(self, path: str) -> Coordinate | None:
        """Resolve and record an artifact's identifier. BOM registration waits for the next delta pass."""
        coordinate = self.resolver.resolve(path)
        if coordinate is None:
            self._fail(path, 'Could not resolve a component identifier for the artifact', None)
            return None
        self.state.record_identifier(path, coordinate)
        return coordinate
