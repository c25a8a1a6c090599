import json
from typing import Any
from typing import Protocol

import requests
import structlog

from bomguard.core.client import get_http_client
from bomguard.core.config import ArtifactoryConfig
from bomguard.core.exceptions import HostRepositoryError
from bomguard.models.host import ItemInfo
from bomguard.models.host import LayoutInfo
from bomguard.models.host import relative_path_of
from bomguard.models.host import repo_key_of

logger = structlog.get_logger('artifactory_service')


class HostRepository(Protocol):
    """Capabilities BOMGuard needs from the host repository manager."""

    def get_item_info(self, path: str) -> ItemInfo | None: ...

    def get_layout_info(self, path: str) -> LayoutInfo: ...

    def get_properties(self, path: str) -> dict[str, str]: ...

    def get_content(self, path: str) -> bytes: ...

    def search_by_patterns(self, repo_keys: list[str], patterns: list[str]) -> list[str]: ...

    def search_by_properties(self, repo_keys: list[str], properties: dict[str, str | None]) -> list[str]: ...

    def get_package_type(self, repo_key: str) -> str | None: ...

    def is_valid_repository(self, repo_key: str) -> bool: ...

    def get_artifact_count(self, repo_keys: list[str]) -> int: ...

    def set_property(self, path: str, key: str, value: str) -> None: ...

    def delete_property(self, path: str, key: str) -> None: ...

    def delete_all_properties(self, path: str, key_prefix: str) -> None: ...


def _escape_property_value(value: str) -> str:
    # Matrix-parameter syntax reserves these characters
    for char in ('\\', ',', '|', '=', ';'):
        value = value.replace(char, '\\' + char)
    return value


def parse_layout(package_type: str | None, path: str) -> LayoutInfo:
    """Derive layout coordinates from the default layouts of Maven-style and npm repositories."""
    relative = relative_path_of(path)
    parts = [p for p in relative.split('/') if p]

    if package_type in ('maven', 'gradle', 'ivy', 'sbt'):
        if len(parts) < 4:
            return LayoutInfo()
        return LayoutInfo(
            organization='.'.join(parts[:-3]),
            module=parts[-3],
            base_revision=parts[-2].removesuffix('-SNAPSHOT'),
        )

    if package_type == 'npm' and '/-/' in relative:
        module, file_name = relative.split('/-/', 1)
        base_name = module.rsplit('/', 1)[-1]
        prefix = f'{base_name}-'
        if file_name.startswith(prefix) and file_name.endswith('.tgz'):
            return LayoutInfo(
                organization=module.split('/')[0] if module.startswith('@') else None,
                module=module,
                base_revision=file_name[len(prefix):-len('.tgz')],
            )

    return LayoutInfo()


class ArtifactoryService:
    """HostRepository implementation over the Artifactory REST API."""

    def __init__(self, config: ArtifactoryConfig, session: requests.Session | None = None):
        self.base_url = config.url.rstrip('/')
        self.timeout = config.timeout
        self.session = session or get_http_client(cache_name=None)
        if config.api_key:
            self.session.headers.update({'X-JFrog-Art-Api': config.api_key})
        self.session.headers.update({'User-Agent': 'BOMGuard'})
        self._package_types: dict[str, str | None] = {}

    def _request(self, method: str, endpoint: str, allow_404: bool = False, **kwargs) -> requests.Response | None:
        url = f'{self.base_url}/{endpoint.lstrip("/")}'
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            if allow_404 and response.status_code == 404:
                return None
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            logger.error('Artifactory request failed', method=method, url=url, error=str(e))
            raise HostRepositoryError(f'{method} {url} failed: {e}') from e

    def _aql(self, criteria: list[dict[str, Any]], repo_keys: list[str]) -> list[str]:
        repo_clause = {'$or': [{'repo': key} for key in repo_keys]}
        query = {'$and': [repo_clause, {'type': 'file'}, *criteria]}
        body = f'items.find({json.dumps(query)}).include("repo","path","name")'
        response = self._request(
            'POST', 'api/search/aql', data=body,
            headers={'Content-Type': 'text/plain'},
        )
        paths = []
        for item in response.json().get('results', []):
            folder = item.get('path', '.')
            if folder in ('.', ''):
                paths.append(f"{item['repo']}/{item['name']}")
            else:
                paths.append(f"{item['repo']}/{folder}/{item['name']}")
        return paths

    def get_item_info(self, path: str) -> ItemInfo | None:
        response = self._request('GET', f'api/storage/{path}', allow_404=True)
        if response is None:
            return None
        data = response.json()
        name = path.rstrip('/').rsplit('/', 1)[-1]
        return ItemInfo(path=path, name=name, is_folder='children' in data)

    def get_layout_info(self, path: str) -> LayoutInfo:
        return parse_layout(self.get_package_type(repo_key_of(path)), path)

    def get_properties(self, path: str) -> dict[str, str]:
        response = self._request('GET', f'api/storage/{path}?properties', allow_404=True)
        if response is None:
            return {}
        properties = response.json().get('properties', {})
        return {key: values[0] for key, values in properties.items() if values}

    def get_content(self, path: str) -> bytes:
        return self._request('GET', path).content

    def search_by_patterns(self, repo_keys: list[str], patterns: list[str]) -> list[str]:
        paths: list[str] = []
        for pattern in patterns:
            found = self._aql([{'name': {'$match': pattern}}], repo_keys)
            logger.debug('Pattern search', pattern=pattern, repos=repo_keys, found=len(found))
            paths.extend(found)
        return list(dict.fromkeys(paths))

    def search_by_properties(self, repo_keys: list[str], properties: dict[str, str | None]) -> list[str]:
        criteria = [
            {f'@{key}': value if value is not None else {'$match': '*'}}
            for key, value in properties.items()
        ]
        return self._aql(criteria, repo_keys)

    def get_package_type(self, repo_key: str) -> str | None:
        if repo_key not in self._package_types:
            response = self._request('GET', f'api/repositories/{repo_key}', allow_404=True)
            package_type = response.json().get('packageType') if response is not None else None
            self._package_types[repo_key] = package_type.lower() if package_type else None
        return self._package_types[repo_key]

    def is_valid_repository(self, repo_key: str) -> bool:
        if not repo_key or not repo_key.strip():
            logger.warning('A blank repo key is invalid')
            return False
        response = self._request('GET', f'api/repositories/{repo_key}', allow_404=True)
        if response is None:
            logger.warning('Repository not found', repo=repo_key)
            return False
        return True

    def get_artifact_count(self, repo_keys: list[str]) -> int:
        response = self._request('GET', 'api/storageinfo')
        summaries = response.json().get('repositoriesSummaryList', [])
        return sum(
            int(summary.get('filesCount', 0))
            for summary in summaries if summary.get('repoKey') in repo_keys
        )

    def set_property(self, path: str, key: str, value: str) -> None:
        self._request(
            'PUT', f'api/storage/{path}',
            params={'properties': f'{key}={_escape_property_value(value)}', 'recursive': '0'},
        )

    def delete_property(self, path: str, key: str) -> None:
        self._request(
            'DELETE', f'api/storage/{path}',
            params={'properties': key, 'recursive': '0'},
        )

    def delete_all_properties(self, path: str, key_prefix: str) -> None:
        keys = [key for key in self.get_properties(path) if key.startswith(key_prefix)]
        if keys:
            self._request(
                'DELETE', f'api/storage/{path}',
                params={'properties': ','.join(keys), 'recursive': '0'},
            )
