from collections import defaultdict
from datetime import datetime

import structlog

from bomguard.core.exceptions import RemoteServiceError
from bomguard.core.stats import UpdateStats
from bomguard.models.blackduck import NotificationUserView
from bomguard.models.metadata import PolicyVulnerabilityAggregate
from bomguard.models.metadata import VulnerabilityAggregate
from bomguard.models.notification import AffectedProjectVersion
from bomguard.models.notification import Notification
from bomguard.models.notification import PolicyOverrideNotification
from bomguard.models.notification import PolicyStatusNotification
from bomguard.models.notification import project_version_key
from bomguard.models.notification import VulnerabilityNotification
from bomguard.models.properties import BlackDuckProperty
from bomguard.services.blackduck_service import BlackDuckService
from bomguard.services.inspection_state import InspectionStateTracker

logger = structlog.get_logger('notification_service')


def _is_gone(error: RemoteServiceError) -> bool:
    return error.status_code == 404


class NotificationRetriever:
    """Turns raw notifications into typed ones, fetching the resources they point to."""

    def __init__(self, blackduck: BlackDuckService):
        self.blackduck = blackduck

    def convert_all(self, raw_notifications: list[NotificationUserView], stats: UpdateStats | None = None) -> list[Notification]:
        notifications: list[Notification] = []
        for raw in raw_notifications:
            try:
                converted = self.convert(raw)
            except RemoteServiceError as e:
                if not _is_gone(e):
                    raise
                logger.warning('Skipping notification for a missing resource', type=raw.type, error=str(e))
                converted = []
            if not converted and stats is not None:
                stats.inc_ignored()
            notifications.extend(converted)
        return notifications

    def convert(self, raw: NotificationUserView) -> list[Notification]:
        content = raw.content
        match raw.type:
            case 'RULE_VIOLATION' | 'RULE_VIOLATION_CLEARED':
                affected = [self._affected(content)]
                return [
                    self._policy_notification(PolicyStatusNotification, affected, status, raw.created_at)
                    for status in content.get('componentVersionStatuses', [])
                    if status.get('componentVersion') and status.get('bomComponentVersionPolicyStatus')
                ]
            case 'POLICY_OVERRIDE':
                if not content.get('componentVersion') or not content.get('bomComponentVersionPolicyStatus'):
                    return []
                return [
                    self._policy_notification(
                        PolicyOverrideNotification, [self._affected(content)], content, raw.created_at,
                    ),
                ]
            case 'VULNERABILITY':
                if not content.get('componentVersion'):
                    return []
                return [self._vulnerability_notification(content, raw.created_at)]
            case _:
                logger.debug('Ignoring notification type', type=raw.type)
                return []

    @staticmethod
    def _affected(content: dict) -> AffectedProjectVersion:
        return AffectedProjectVersion(
            project_name=content.get('projectName', ''),
            project_version_name=content.get('projectVersionName', ''),
        )

    def _policy_notification(self, notification_type, affected, status: dict, created_at: datetime):
        component_version = self.blackduck.get_component_version(status['componentVersion'])
        policy_status = self.blackduck.get_policy_status(status['bomComponentVersionPolicyStatus'])
        return notification_type(
            affected_project_versions=affected,
            component_version=component_version,
            created_at=created_at,
            approval_status=policy_status.approval_status,
        )

    def _vulnerability_notification(self, content: dict, created_at: datetime) -> VulnerabilityNotification:
        component_version = self.blackduck.get_component_version(content['componentVersion'])
        vulnerabilities = self.blackduck.get_vulnerabilities(component_version)
        return VulnerabilityNotification(
            affected_project_versions=[
                self._affected(apv) for apv in content.get('affectedProjectVersions', [])
            ],
            component_version=component_version,
            created_at=created_at,
            vulnerabilities=VulnerabilityAggregate.from_vulnerabilities(vulnerabilities),
        )


def apply_notification(aggregate: PolicyVulnerabilityAggregate, notification: Notification) -> None:
    """Merge a notification's payload into an artifact's running aggregate."""
    match notification:
        case PolicyStatusNotification() | PolicyOverrideNotification():
            aggregate.merge_policy_status(notification.approval_status, notification.created_at)
        case VulnerabilityNotification():
            aggregate.merge_vulnerabilities(notification.vulnerabilities, notification.created_at)
    aggregate.merge_component_version_url(notification.component_version_url, notification.created_at)


class NotificationReconciler:
    """Applies the notifications of a time window to the artifacts they concern."""

    def __init__(
        self,
        blackduck: BlackDuckService,
        retriever: NotificationRetriever,
        state: InspectionStateTracker,
    ):
        self.blackduck = blackduck
        self.retriever = retriever
        self.state = state

    def build_repo_index(self, repo_keys: list[str]) -> dict[str, list[str]]:
        """Map 'project:version' to the repositories registered under it."""
        index: dict[str, list[str]] = defaultdict(list)
        for repo_key in repo_keys:
            index[project_version_key(*self.state.get_repo_project(repo_key))].append(repo_key)
        return dict(index)

    def find_affected_artifacts(self, notification: Notification, index: dict[str, list[str]]) -> list[str]:
        repo_keys = list(dict.fromkeys(
            repo_key
            for affected in notification.affected_project_versions
            for repo_key in index.get(affected.key, [])
        ))
        if not repo_keys:
            return []

        try:
            origins = self.blackduck.get_origins(notification.component_version)
        except RemoteServiceError as e:
            if not _is_gone(e):
                raise
            logger.warning('Component version no longer exists', url=notification.component_version_url)
            return []

        paths: list[str] = []
        for origin in origins:
            paths.extend(self.state.properties.find_paths(repo_keys, {
                BlackDuckProperty.FORGE: origin.origin_name,
                BlackDuckProperty.ORIGIN_ID: origin.origin_id,
            }))
        return list(dict.fromkeys(paths))

    def reconcile(
        self,
        repo_keys: list[str],
        start: datetime,
        end: datetime,
        stats: UpdateStats | None = None,
    ) -> datetime | None:
        """
        Update artifacts of `repo_keys` from notifications created in (start, end].

        Each affected artifact gets one write of its merged aggregate. Returns
        the latest notification timestamp seen, or None for an empty window.
        Raises on any remote or host error so the caller keeps its checkpoint.
        """
        stats = stats or UpdateStats()
        user = self.blackduck.get_current_user()
        raw_notifications = self.blackduck.get_notifications_for_user(user, start, end)
        stats.inc_notifications(len(raw_notifications))
        if not raw_notifications:
            return None

        notifications = self.retriever.convert_all(raw_notifications, stats)
        index = self.build_repo_index(repo_keys)

        aggregates: dict[str, PolicyVulnerabilityAggregate] = defaultdict(PolicyVulnerabilityAggregate)
        for notification in notifications:
            for path in self.find_affected_artifacts(notification, index):
                apply_notification(aggregates[path], notification)

        for path, aggregate in aggregates.items():
            self.state.record_bom_metadata(path, aggregate)
            stats.inc_artifacts_updated()
            logger.debug(
                'Updated artifact metadata', path=path,
                policy_status=aggregate.policy_status, vulnerabilities=aggregate.vulnerabilities,
            )

        latest = max(raw.created_at for raw in raw_notifications)
        logger.info(
            'Reconciled notifications', repos=repo_keys, notifications=len(raw_notifications),
            artifacts=len(aggregates), latest=latest.isoformat(),
        )
        return latest
