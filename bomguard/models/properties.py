from enum import Enum

PROPERTY_PREFIX = 'blackduck.'


class BlackDuckProperty(str, Enum):
    """Property keys written to artifacts and repository roots."""
    INSPECTION_STATUS = 'blackduck.inspectionStatus'
    INSPECTION_STATUS_MESSAGE = 'blackduck.inspectionStatusMessage'
    INSPECTION_RETRY_COUNT = 'blackduck.inspectionRetryCount'
    FORGE = 'blackduck.forge'
    ORIGIN_ID = 'blackduck.originId'
    PROJECT_NAME = 'blackduck.projectName'
    PROJECT_VERSION_NAME = 'blackduck.projectVersionName'
    PROJECT_VERSION_URL = 'blackduck.projectVersionUrl'
    LAST_INSPECTION = 'blackduck.lastInspection'
    LAST_UPDATE = 'blackduck.lastUpdate'
    UPDATE_STATUS = 'blackduck.updateStatus'
    POLICY_STATUS = 'blackduck.policyStatus'
    CRITICAL_VULNERABILITIES = 'blackduck.criticalVulnerabilities'
    HIGH_VULNERABILITIES = 'blackduck.highVulnerabilities'
    MEDIUM_VULNERABILITIES = 'blackduck.mediumVulnerabilities'
    LOW_VULNERABILITIES = 'blackduck.lowVulnerabilities'
    COMPONENT_VERSION_URL = 'blackduck.componentVersionUrl'

    def __str__(self) -> str:
        return self.value


INSPECTION_PROPERTIES = list(BlackDuckProperty)


def parse_properties(names: list[str] | None) -> list[BlackDuckProperty] | None:
    """Map names with or without the `blackduck.` prefix to keys; None or empty means all."""
    if not names:
        return None
    by_value = {p.value: p for p in BlackDuckProperty}
    parsed = []
    for name in names:
        key = name if name.startswith(PROPERTY_PREFIX) else PROPERTY_PREFIX + name
        if key not in by_value:
            raise ValueError(f'Unknown property: {name}')
        parsed.append(by_value[key])
    return parsed
