from datetime import datetime
from typing import Annotated
from typing import Literal
from typing import Union

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from bomguard.models.blackduck import ComponentVersionView
from bomguard.models.metadata import VulnerabilityAggregate


def project_version_key(project_name: str | None, project_version_name: str | None) -> str:
    """Join key between notifications and repositories."""
    return f'{project_name}:{project_version_name}'


class AffectedProjectVersion(BaseModel):
    project_name: str
    project_version_name: str

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        return project_version_key(self.project_name, self.project_version_name)


class BaseNotification(BaseModel):
    affected_project_versions: list[AffectedProjectVersion]
    component_version: ComponentVersionView
    created_at: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def component_version_url(self) -> str | None:
        return self.component_version.href


class PolicyStatusNotification(BaseNotification):
    """A rule violation was raised or cleared for a component version."""
    kind: Literal['policy_status'] = 'policy_status'
    approval_status: str


class PolicyOverrideNotification(BaseNotification):
    """A policy violation was overridden for a component version."""
    kind: Literal['policy_override'] = 'policy_override'
    approval_status: str


class VulnerabilityNotification(BaseNotification):
    """The vulnerabilities known for a component version changed."""
    kind: Literal['vulnerability'] = 'vulnerability'
    vulnerabilities: VulnerabilityAggregate


Notification = Annotated[
    Union[PolicyStatusNotification, PolicyOverrideNotification, VulnerabilityNotification],
    Field(discriminator='kind'),
]
