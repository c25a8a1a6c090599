"""Views of the BOM service's REST resources, limited to the fields BOMGuard reads."""
from datetime import datetime
from datetime import timezone
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


def parse_timestamp(v: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not v:
        return None
    if isinstance(v, datetime):
        parsed = v
    else:
        try:
            parsed = datetime.fromisoformat(str(v).replace('Z', '+00:00'))
        except (ValueError, TypeError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Millisecond-precision UTC timestamp, as the BOM service expects it."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'


class ResourceLink(BaseModel):
    rel: str
    href: str


class ResourceMetadata(BaseModel):
    href: str | None = None
    links: list[ResourceLink] = Field(default_factory=list)

    model_config = ConfigDict(extra='ignore')


class BlackDuckView(BaseModel):
    """Base for resources carrying a `_meta` block with self and related links."""
    meta: ResourceMetadata = Field(alias='_meta', default_factory=ResourceMetadata)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @property
    def href(self) -> str | None:
        return self.meta.href

    def get_link(self, rel: str) -> str | None:
        for link in self.meta.links:
            if link.rel == rel:
                return link.href
        return None


class UserView(BlackDuckView):
    user_name: str = Field(alias='userName', default='')


class ComponentVersionView(BlackDuckView):
    component_name: str | None = Field(alias='componentName', default=None)
    version_name: str | None = Field(alias='versionName', default=None)


class OriginView(BlackDuckView):
    origin_name: str = Field(alias='originName')
    origin_id: str = Field(alias='originId')


class VulnerabilityView(BlackDuckView):
    name: str = ''
    severity: str = 'UNKNOWN'

    @field_validator('severity', mode='before')
    @classmethod
    def upper_severity(cls, v: Any) -> str:
        return str(v or 'UNKNOWN').upper()


class PolicyStatusView(BlackDuckView):
    approval_status: str = Field(alias='approvalStatus')


class ProjectView(BlackDuckView):
    name: str


class ProjectVersionView(BlackDuckView):
    version_name: str = Field(alias='versionName')


class RiskCount(BaseModel):
    count_type: str = Field(alias='countType')
    count: int = 0


class RiskProfile(BaseModel):
    counts: list[RiskCount] = Field(default_factory=list)

    model_config = ConfigDict(extra='ignore')

    def count_for(self, severity: str) -> int:
        for risk in self.counts:
            if risk.count_type.upper() == severity:
                return risk.count
        return 0


class BomComponentView(BlackDuckView):
    """A component version registered in a project version's BOM."""
    component_name: str | None = Field(alias='componentName', default=None)
    component_version: str | None = Field(alias='componentVersion', default=None)
    policy_status: str | None = Field(alias='policyStatus', default=None)
    security_risk_profile: RiskProfile = Field(
        alias='securityRiskProfile', default_factory=RiskProfile,
    )


class NotificationUserView(BlackDuckView):
    """A raw notification. `content` is interpreted according to `type`."""
    type: str
    created_at: datetime = Field(alias='createdAt')
    content: dict[str, Any] = Field(default_factory=dict)

    @field_validator('created_at', mode='before')
    @classmethod
    def parse_created_at(cls, v: Any) -> datetime:
        parsed = parse_timestamp(v)
        if parsed is None:
            raise ValueError(f'invalid createdAt: {v!r}')
        return parsed
