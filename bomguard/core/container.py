"""Dependency Injection Container."""
from typing import Optional

from bomguard.core.config import BomGuardConfig
from bomguard.core.config import get_config
from bomguard.services.artifactory_service import ArtifactoryService
from bomguard.services.artifactory_service import HostRepository
from bomguard.services.blackduck_service import BlackDuckService
from bomguard.services.delta_service import DeltaInspector
from bomguard.services.identifier_service import IdentifierResolver
from bomguard.services.initialization_service import RepositoryInitializer
from bomguard.services.inspection_service import InspectionModule
from bomguard.services.inspection_state import InspectionStateTracker
from bomguard.services.notification_service import NotificationReconciler
from bomguard.services.notification_service import NotificationRetriever
from bomguard.services.policy_service import PolicyModule
from bomguard.services.property_service import PropertyStore
from bomguard.services.status_service import StatusService
from bomguard.services.update_service import MetadataUpdater


class Container:
    """Simple DI Container to manage service lifecycles."""

    _instance: Optional['Container'] = None

    def __init__(self, config: BomGuardConfig | None = None, host: HostRepository | None = None) -> None:
        self.config: BomGuardConfig = config or get_config()
        self._host: HostRepository | None = host
        self._blackduck: BlackDuckService | None = None
        self._properties: PropertyStore | None = None
        self._state: InspectionStateTracker | None = None
        self._inspection_module: InspectionModule | None = None
        self._policy_module: PolicyModule | None = None

    @classmethod
    def get_instance(cls) -> 'Container':
        if cls._instance is None:
            cls._instance = Container()
        return cls._instance

    # -- Adapters --

    def get_host(self) -> HostRepository:
        if self._host is None:
            self._host = ArtifactoryService(self.config.artifactory)
        return self._host

    def get_blackduck_service(self) -> BlackDuckService:
        if not self._blackduck:
            if not self.config.blackduck.url:
                raise ValueError('BLACKDUCK_URL is required')
            self._blackduck = BlackDuckService(self.config.blackduck)
        return self._blackduck

    # -- Services (Singletons) --

    def get_property_store(self) -> PropertyStore:
        if not self._properties:
            self._properties = PropertyStore(self.get_host())
        return self._properties

    def get_state_tracker(self) -> InspectionStateTracker:
        if not self._state:
            self._state = InspectionStateTracker(
                self.get_property_store(),
                max_retries=self.config.inspection.max_retries,
                project_version_name=self.config.inspection.project_version_name,
            )
        return self._state

    def get_inspection_module(self) -> InspectionModule:
        if not self._inspection_module:
            host = self.get_host()
            blackduck = self.get_blackduck_service()
            state = self.get_state_tracker()
            delta = DeltaInspector(
                host, blackduck, state,
                IdentifierResolver(host, state),
                self.config.inspection,
            )
            reconciler = NotificationReconciler(blackduck, NotificationRetriever(blackduck), state)
            self._inspection_module = InspectionModule(
                self.config.inspection,
                state,
                delta,
                MetadataUpdater(state, reconciler, blackduck),
                RepositoryInitializer(host, blackduck, state, delta),
            )
        return self._inspection_module

    def get_policy_module(self) -> PolicyModule:
        if not self._policy_module:
            self._policy_module = PolicyModule(
                self.config.policy,
                self.get_property_store(),
                fail_closed=self.config.inspection.block_fail_closed,
            )
        return self._policy_module

    def create_status_service(self) -> StatusService:
        return StatusService(self.config, self.get_host(), self.get_state_tracker())

# Global Accessor


def get_container() -> Container:
    return Container.get_instance()
