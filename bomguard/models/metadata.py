from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict

from bomguard.models.blackduck import BomComponentView
from bomguard.models.blackduck import VulnerabilityView
from bomguard.models.properties import BlackDuckProperty

SEVERITIES = ('CRITICAL', 'HIGH', 'MEDIUM', 'LOW')


class VulnerabilityAggregate(BaseModel):
    """Vulnerability counts by severity for one component version."""
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_vulnerabilities(cls, vulnerabilities: list[VulnerabilityView]) -> 'VulnerabilityAggregate':
        counts = dict.fromkeys(SEVERITIES, 0)
        for vulnerability in vulnerabilities:
            if vulnerability.severity in counts:
                counts[vulnerability.severity] += 1
        return cls(**{k.lower(): v for k, v in counts.items()})

    @classmethod
    def from_bom_component(cls, bom_component: BomComponentView) -> 'VulnerabilityAggregate':
        profile = bom_component.security_risk_profile
        return cls(**{s.lower(): profile.count_for(s) for s in SEVERITIES})

    def to_properties(self) -> dict[BlackDuckProperty, str]:
        return {
            BlackDuckProperty.CRITICAL_VULNERABILITIES: str(self.critical),
            BlackDuckProperty.HIGH_VULNERABILITIES: str(self.high),
            BlackDuckProperty.MEDIUM_VULNERABILITIES: str(self.medium),
            BlackDuckProperty.LOW_VULNERABILITIES: str(self.low),
        }


@dataclass
class PolicyVulnerabilityAggregate:
    """
    Running policy/vulnerability metadata for one artifact.

    Each field is merged on its own: a value replaces the current one only
    when it comes from a later notification. Ties on the timestamp are broken
    by comparing the values, so the result does not depend on the order in
    which notifications are applied and replaying one changes nothing.
    Fields never set are not written.
    """
    policy_status: str | None = None
    vulnerabilities: VulnerabilityAggregate | None = None
    component_version_url: str | None = None
    _ranks: dict[str, tuple[datetime, str]] = field(
        default_factory=dict, repr=False, compare=False,
    )

    def _accept(self, field_name: str, value: Any, created_at: datetime) -> bool:
        rank = (created_at, repr(value))
        current = self._ranks.get(field_name)
        if current is not None and rank <= current:
            return False
        self._ranks[field_name] = rank
        return True

    def merge_policy_status(self, status: str, created_at: datetime) -> None:
        if self._accept('policy_status', status, created_at):
            self.policy_status = status

    def merge_vulnerabilities(self, aggregate: VulnerabilityAggregate, created_at: datetime) -> None:
        if self._accept('vulnerabilities', aggregate, created_at):
            self.vulnerabilities = aggregate

    def merge_component_version_url(self, url: str | None, created_at: datetime) -> None:
        if url and self._accept('component_version_url', url, created_at):
            self.component_version_url = url

    @classmethod
    def from_bom_component(cls, bom_component: BomComponentView) -> 'PolicyVulnerabilityAggregate':
        return cls(
            policy_status=bom_component.policy_status,
            vulnerabilities=VulnerabilityAggregate.from_bom_component(bom_component),
            component_version_url=bom_component.component_version,
        )

    def to_properties(self) -> dict[BlackDuckProperty, str]:
        properties: dict[BlackDuckProperty, str] = {}
        if self.policy_status is not None:
            properties[BlackDuckProperty.POLICY_STATUS] = self.policy_status
        if self.vulnerabilities is not None:
            properties.update(self.vulnerabilities.to_properties())
        if self.component_version_url is not None:
            properties[BlackDuckProperty.COMPONENT_VERSION_URL] = self.component_version_url
        return properties
