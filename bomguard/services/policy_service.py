import structlog

from bomguard.core.config import PolicyConfig
from bomguard.core.decorators import module_operation
from bomguard.core.exceptions import DownloadBlockedError
from bomguard.core.exceptions import HostRepositoryError
from bomguard.models.properties import BlackDuckProperty
from bomguard.models.status import PolicyStatusType
from bomguard.services.property_service import PropertyStore

logger = structlog.get_logger('policy_service')


class PolicyModule:
    """Blocks downloads of artifacts that violate a policy."""

    name = 'policy'

    def __init__(self, config: PolicyConfig, properties: PropertyStore, fail_closed: bool = False):
        self.config = config
        self.properties = properties
        self.fail_closed = fail_closed

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def is_in_violation(self, path: str) -> bool:
        status = self.properties.get(path, BlackDuckProperty.POLICY_STATUS)
        return status is not None and status.upper() == PolicyStatusType.IN_VIOLATION.value

    @module_operation
    def handle_before_download(self, path: str) -> None:
        if not self.config.block:
            return None
        try:
            blocked = self.is_in_violation(path)
        except HostRepositoryError as e:
            logger.error('Could not read policy status before download', path=path, error=str(e))
            blocked = self.fail_closed
        logger.debug('Policy check', path=path, blocked=blocked)
        if blocked:
            raise DownloadBlockedError(
                path, f'The {self.name} module has prevented the download of {path} because it violates a policy.',
            )
        return None
