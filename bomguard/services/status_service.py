from datetime import datetime

import structlog
from pydantic import BaseModel
from pydantic import Field

from bomguard.core.config import BomGuardConfig
from bomguard.core.exceptions import HostRepositoryError
from bomguard.models.properties import BlackDuckProperty
from bomguard.models.status import InspectionStatus
from bomguard.models.status import UpdateStatus
from bomguard.services.artifactory_service import HostRepository
from bomguard.services.inspection_state import InspectionStateTracker

logger = structlog.get_logger('status_service')


class ModuleStatus(BaseModel):
    name: str
    enabled: bool
    errors: list[str] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class RepositoryStatus(BaseModel):
    repo_key: str
    exists: bool
    package_type: str | None = None
    inspection_status: InspectionStatus | None = None
    update_status: UpdateStatus | None = None
    last_update: datetime | None = None
    message: str | None = None


class StatusReport(BaseModel):
    """What an operator needs to see to know whether BOMGuard is working."""
    modules: list[ModuleStatus]
    repositories: list[RepositoryStatus] = Field(default_factory=list)
    artifact_count: int | None = None

    @property
    def package_types(self) -> list[str]:
        return sorted({r.package_type for r in self.repositories if r.package_type})


class StatusService:
    def __init__(self, config: BomGuardConfig, host: HostRepository, state: InspectionStateTracker):
        self.config = config
        self.host = host
        self.state = state

    def get_module_statuses(self) -> list[ModuleStatus]:
        errors = self.config.validate()
        general = errors.get('general', [])
        return [
            ModuleStatus(
                name='inspection', enabled=self.config.inspection.enabled,
                errors=general + errors.get('inspection', []),
            ),
            ModuleStatus(
                name='policy', enabled=self.config.policy.enabled,
                errors=general + errors.get('policy', []),
            ),
        ]

    def get_repository_status(self, repo_key: str) -> RepositoryStatus:
        if not self.host.is_valid_repository(repo_key):
            return RepositoryStatus(repo_key=repo_key, exists=False)
        status = self.state.get_status(repo_key)
        return RepositoryStatus(
            repo_key=repo_key,
            exists=True,
            package_type=self.host.get_package_type(repo_key),
            inspection_status=status,
            update_status=self.state.get_update_status(repo_key),
            last_update=self.state.get_last_update(repo_key),
            message=self.state.properties.get(repo_key, BlackDuckProperty.INSPECTION_STATUS_MESSAGE)
            if status == InspectionStatus.FAILURE else None,
        )

    def build_report(self) -> StatusReport:
        report = StatusReport(modules=self.get_module_statuses())
        repo_keys = self.config.inspection.repos
        try:
            report.repositories = [self.get_repository_status(repo_key) for repo_key in repo_keys]
            report.artifact_count = self.host.get_artifact_count(repo_keys)
        except HostRepositoryError as e:
            logger.error('Could not reach the host repository', error=str(e))
        return report
