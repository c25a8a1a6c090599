from datetime import datetime
from datetime import timezone

import structlog

from bomguard.models.coordinate import Coordinate
from bomguard.models.metadata import PolicyVulnerabilityAggregate
from bomguard.models.package_type import Forge
from bomguard.models.properties import BlackDuckProperty
from bomguard.models.status import InspectionStatus
from bomguard.models.status import UpdateStatus
from bomguard.services.property_service import PropertyStore

logger = structlog.get_logger('inspection_state')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InspectionStateTracker:
    """
    Inspection state machine for artifacts and repository roots.

    PENDING is never stored; a path without a status property is pending.
    FAILURE carries a reason and a retry counter that only grows until a
    success clears it. A failed path is eligible again while its counter is
    below `max_retries`.
    """

    def __init__(self, properties: PropertyStore, max_retries: int, project_version_name: str = ''):
        self.properties = properties
        self.max_retries = max_retries
        self.project_version_name = project_version_name

    def get_status(self, path: str) -> InspectionStatus:
        status = self.properties.get_enum(path, BlackDuckProperty.INSPECTION_STATUS, InspectionStatus)
        return status or InspectionStatus.PENDING

    def assert_status(self, path: str, expected: InspectionStatus) -> bool:
        return self.get_status(path) == expected

    def get_retry_count(self, path: str) -> int:
        return self.properties.get_int(path, BlackDuckProperty.INSPECTION_RETRY_COUNT) or 0

    def should_retry(self, path: str) -> bool:
        if not self.assert_status(path, InspectionStatus.FAILURE):
            return False
        return self.get_retry_count(path) < self.max_retries

    def is_pending_or_retryable(self, path: str) -> bool:
        return self.assert_status(path, InspectionStatus.PENDING) or self.should_retry(path)

    def mark_failure(self, path: str, reason: str, retryable: bool = True) -> None:
        """Record a failed inspection. A non-retryable failure jumps the counter to the ceiling."""
        with self.properties.lock(path):
            if retryable:
                count = self.properties.increment(path, BlackDuckProperty.INSPECTION_RETRY_COUNT)
            else:
                count = max(self.get_retry_count(path), self.max_retries)
                self.properties.set(path, BlackDuckProperty.INSPECTION_RETRY_COUNT, count)
            self.properties.set(path, BlackDuckProperty.INSPECTION_STATUS_MESSAGE, reason)
            self.properties.set(path, BlackDuckProperty.INSPECTION_STATUS, InspectionStatus.FAILURE)
        logger.warning('Inspection failed', path=path, reason=reason, retry_count=count)

    def mark_success(
        self,
        path: str,
        coordinate: Coordinate | None = None,
        metadata: PolicyVulnerabilityAggregate | None = None,
    ) -> None:
        with self.properties.lock(path):
            self.properties.delete(path, BlackDuckProperty.INSPECTION_STATUS_MESSAGE)
            self.properties.delete(path, BlackDuckProperty.INSPECTION_RETRY_COUNT)
            if coordinate is not None:
                self.record_identifier(path, coordinate)
            if metadata is not None:
                self.record_bom_metadata(path, metadata)
            self.properties.set(path, BlackDuckProperty.INSPECTION_STATUS, InspectionStatus.SUCCESS)
            self.properties.set(path, BlackDuckProperty.LAST_INSPECTION, utcnow())
        logger.debug('Inspection succeeded', path=path, coordinate=str(coordinate) if coordinate else None)

    def has_identifier_properties(self, path: str) -> bool:
        return (
            self.properties.has(path, BlackDuckProperty.FORGE)
            and self.properties.has(path, BlackDuckProperty.ORIGIN_ID)
        )

    def get_identifier(self, path: str) -> Coordinate | None:
        forge = Forge.from_name(self.properties.get(path, BlackDuckProperty.FORGE))
        if forge is None:
            return None
        return Coordinate.from_origin_id(forge, self.properties.get(path, BlackDuckProperty.ORIGIN_ID))

    def record_identifier(self, path: str, coordinate: Coordinate) -> None:
        self.properties.set_many(path, {
            BlackDuckProperty.FORGE: coordinate.forge,
            BlackDuckProperty.ORIGIN_ID: coordinate.origin_id,
        })

    def record_bom_metadata(self, path: str, metadata: PolicyVulnerabilityAggregate) -> None:
        """Write the fields the aggregate has; absent fields keep their stored value."""
        values = metadata.to_properties()
        if values:
            self.properties.set_many(path, dict(values))

    # Repository roots

    def get_repo_project(self, repo_key: str) -> tuple[str, str]:
        """Project and version names a repository registers under (repo key and configured version by default)."""
        project_name = self.properties.get(repo_key, BlackDuckProperty.PROJECT_NAME) or repo_key
        version_name = (
            self.properties.get(repo_key, BlackDuckProperty.PROJECT_VERSION_NAME)
            or self.project_version_name
        )
        return project_name, version_name

    def set_repo_project(self, repo_key: str, project_name: str, version_name: str) -> None:
        self.properties.set_many(repo_key, {
            BlackDuckProperty.PROJECT_NAME: project_name,
            BlackDuckProperty.PROJECT_VERSION_NAME: version_name,
        })

    def set_project_version_url(self, repo_key: str, url: str) -> None:
        self.properties.set(repo_key, BlackDuckProperty.PROJECT_VERSION_URL, url)

    def get_last_inspection(self, path: str) -> datetime | None:
        return self.properties.get_datetime(path, BlackDuckProperty.LAST_INSPECTION)

    def get_last_update(self, path: str) -> datetime | None:
        return self.properties.get_datetime(path, BlackDuckProperty.LAST_UPDATE)

    def set_last_update(self, path: str, value: datetime) -> None:
        self.properties.set(path, BlackDuckProperty.LAST_UPDATE, value)

    def set_update_status(self, path: str, status: UpdateStatus) -> None:
        self.properties.set(path, BlackDuckProperty.UPDATE_STATUS, status)

    def get_update_status(self, path: str) -> UpdateStatus | None:
        return self.properties.get_enum(path, BlackDuckProperty.UPDATE_STATUS, UpdateStatus)

    def paths_with_status(self, repo_keys: list[str], status: InspectionStatus) -> list[str]:
        if status == InspectionStatus.PENDING:
            raise ValueError('PENDING is not stored and cannot be searched for')
        return self.properties.find_paths(repo_keys, {BlackDuckProperty.INSPECTION_STATUS: status})
