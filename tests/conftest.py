from datetime import datetime
from datetime import timezone
from fnmatch import fnmatchcase
from unittest.mock import MagicMock

import pytest

from bomguard.core.config import InspectionConfig
from bomguard.core.exceptions import HostRepositoryError
from bomguard.models.blackduck import ComponentVersionView
from bomguard.models.blackduck import NotificationUserView
from bomguard.models.host import ItemInfo
from bomguard.models.host import LayoutInfo
from bomguard.models.host import repo_key_of
from bomguard.services.blackduck_service import BlackDuckService
from bomguard.services.inspection_state import InspectionStateTracker
from bomguard.services.property_service import PropertyStore

BD = 'https://bd.example.com'


class InMemoryHost:
    """HostRepository fake keeping artifacts and properties in dicts."""

    def __init__(self):
        self.package_types: dict[str, str | None] = {}
        self.artifacts: dict[str, bytes] = {}
        self.layouts: dict[str, LayoutInfo] = {}
        self.props: dict[str, dict[str, str]] = {}
        self.writes: list[tuple[str, str, str]] = []
        self.fail_writes_for: set[str] = set()

    def add_repo(self, repo_key: str, package_type: str | None) -> None:
        self.package_types[repo_key] = package_type

    def add_artifact(self, path: str, content: bytes = b'', layout: LayoutInfo | None = None, properties: dict | None = None) -> None:
        self.artifacts[path] = content
        if layout is not None:
            self.layouts[path] = layout
        if properties:
            self.props.setdefault(path, {}).update(properties)

    def get_item_info(self, path: str) -> ItemInfo | None:
        if path in self.artifacts:
            return ItemInfo(path=path, name=path.rsplit('/', 1)[-1])
        if path in self.package_types:
            return ItemInfo(path=path, name=path, is_folder=True)
        return None

    def get_layout_info(self, path: str) -> LayoutInfo:
        return self.layouts.get(path, LayoutInfo())

    def get_properties(self, path: str) -> dict[str, str]:
        return dict(self.props.get(path, {}))

    def get_content(self, path: str) -> bytes:
        if path not in self.artifacts:
            raise HostRepositoryError(f'{path} not found')
        return self.artifacts[path]

    def search_by_patterns(self, repo_keys: list[str], patterns: list[str]) -> list[str]:
        return [
            path for path in self.artifacts
            if repo_key_of(path) in repo_keys
            and any(fnmatchcase(path.rsplit('/', 1)[-1], p) for p in patterns)
        ]

    def search_by_properties(self, repo_keys: list[str], properties: dict[str, str | None]) -> list[str]:
        found = []
        for path in self.artifacts:
            if repo_key_of(path) not in repo_keys:
                continue
            stored = self.props.get(path, {})
            if all(k in stored and (v is None or stored[k] == v) for k, v in properties.items()):
                found.append(path)
        return found

    def get_package_type(self, repo_key: str) -> str | None:
        return self.package_types.get(repo_key)

    def is_valid_repository(self, repo_key: str) -> bool:
        return repo_key in self.package_types

    def get_artifact_count(self, repo_keys: list[str]) -> int:
        return sum(1 for path in self.artifacts if repo_key_of(path) in repo_keys)

    def set_property(self, path: str, key: str, value: str) -> None:
        if path in self.fail_writes_for:
            raise HostRepositoryError(f'write to {path} failed')
        self.props.setdefault(path, {})[key] = value
        self.writes.append((path, key, value))

    def delete_property(self, path: str, key: str) -> None:
        self.props.get(path, {}).pop(key, None)

    def delete_all_properties(self, path: str, key_prefix: str) -> None:
        stored = self.props.get(path, {})
        for key in [k for k in stored if k.startswith(key_prefix)]:
            del stored[key]


def ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def component_version(name: str, version: str = '1.0') -> ComponentVersionView:
    href = f'{BD}/api/components/{name}/versions/{version}'
    return ComponentVersionView.model_validate({
        'componentName': name,
        'versionName': version,
        '_meta': {
            'href': href,
            'links': [
                {'rel': 'origins', 'href': f'{href}/origins'},
                {'rel': 'vulnerabilities', 'href': f'{href}/vulnerabilities'},
            ],
        },
    })


def raw_notification(type_: str, created_at: str, content: dict) -> NotificationUserView:
    return NotificationUserView.model_validate({
        'type': type_, 'createdAt': created_at, 'content': content,
    })


@pytest.fixture
def host():
    return InMemoryHost()


@pytest.fixture
def properties(host):
    return PropertyStore(host)


@pytest.fixture
def state(properties):
    return InspectionStateTracker(properties, max_retries=3, project_version_name='ci-host')


@pytest.fixture
def blackduck():
    return MagicMock(spec=BlackDuckService)


@pytest.fixture
def inspection_config():
    return InspectionConfig(
        enabled=True,
        repos=['maven-local', 'npm-remote'],
        patterns={'maven': ['*.jar'], 'npm': ['*.tgz'], 'composer': ['*.zip'], 'nuget': []},
        max_retries=3,
        metadata_block=False,
        block_fail_closed=False,
        project_version_name='ci-host',
        workers=2,
    )
