import structlog

from bomguard.core.exceptions import ConfigurationError
from bomguard.core.exceptions import HostRepositoryError
from bomguard.core.exceptions import RemoteServiceError
from bomguard.models.status import InspectionStatus
from bomguard.services.artifactory_service import HostRepository
from bomguard.services.blackduck_service import BlackDuckService
from bomguard.services.delta_service import DeltaInspector
from bomguard.services.inspection_state import InspectionStateTracker

logger = structlog.get_logger('initialization_service')


class RepositoryInitializer:
    """Registers a configured repository with its BOM project version so delta passes can run."""

    def __init__(
        self,
        host: HostRepository,
        blackduck: BlackDuckService,
        state: InspectionStateTracker,
        delta: DeltaInspector,
    ):
        self.host = host
        self.blackduck = blackduck
        self.state = state
        self.delta = delta

    def initialize_repository(self, repo_key: str) -> bool:
        """Returns True when the repository is initialized after the call."""
        if not self.host.is_valid_repository(repo_key):
            logger.warning('Skipping initialization of a missing repository', repo=repo_key)
            return False

        status = self.state.get_status(repo_key)
        if status == InspectionStatus.SUCCESS:
            logger.debug('Repository already initialized', repo=repo_key)
            return True
        if status == InspectionStatus.FAILURE and not self.state.should_retry(repo_key):
            logger.debug(
                'Repository initialization failed too often, not retrying',
                repo=repo_key, retry_count=self.state.get_retry_count(repo_key),
            )
            return False

        try:
            self.delta.get_patterns(repo_key)
        except ConfigurationError as e:
            logger.error('Repository cannot be inspected as configured', repo=repo_key, error=e.message)
            self.state.mark_failure(repo_key, e.message, retryable=False)
            return False

        project_name, version_name = self.state.get_repo_project(repo_key)
        try:
            project_version = self.blackduck.get_or_create_project_version(project_name, version_name)
        except RemoteServiceError as e:
            logger.error(
                'Failed to get or create project version', repo=repo_key,
                project=project_name, version=version_name, error=str(e),
            )
            self.state.mark_failure(repo_key, f'Failed to get or create project version: {e}')
            return False

        try:
            self.state.set_repo_project(repo_key, project_name, version_name)
            if project_version.href:
                self.state.set_project_version_url(repo_key, project_version.href)
            self.state.mark_success(repo_key)
        except HostRepositoryError as e:
            logger.error('Failed to record repository initialization', repo=repo_key, error=str(e))
            return False

        logger.info('Repository initialized', repo=repo_key, project=project_name, version=version_name)
        return True
