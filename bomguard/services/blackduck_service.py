from datetime import datetime
from typing import Any
from typing import TypeVar

import requests
import structlog
from pydantic import ValidationError

from bomguard.core.client import get_http_client
from bomguard.core.config import BlackDuckConfig
from bomguard.core.exceptions import RemoteServiceError
from bomguard.models.blackduck import BlackDuckView
from bomguard.models.blackduck import BomComponentView
from bomguard.models.blackduck import ComponentVersionView
from bomguard.models.blackduck import format_timestamp
from bomguard.models.blackduck import NotificationUserView
from bomguard.models.blackduck import OriginView
from bomguard.models.blackduck import PolicyStatusView
from bomguard.models.blackduck import ProjectVersionView
from bomguard.models.blackduck import ProjectView
from bomguard.models.blackduck import UserView
from bomguard.models.blackduck import VulnerabilityView
from bomguard.models.coordinate import Coordinate

logger = structlog.get_logger('blackduck_service')

PAGE_SIZE = 100

ViewT = TypeVar('ViewT', bound=BlackDuckView)


class BlackDuckService:
    """Client for the BOM service REST API, authenticated with an API token."""

    def __init__(self, config: BlackDuckConfig, session: requests.Session | None = None):
        self.base_url = config.url.rstrip('/')
        self.api_token = config.api_token
        self.timeout = config.timeout
        self.session = session or get_http_client(
            expire_after=config.cache_ttl,
            verify_ssl=config.verify_ssl,
        )
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': 'BOMGuard',
        })
        self._authenticated = False

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(('http://', 'https://')):
            return endpoint
        return f'{self.base_url}/{endpoint.lstrip("/")}'

    def _authenticate(self) -> None:
        if not self.api_token:
            raise RemoteServiceError('No API token configured for the BOM service')
        url = self._url('api/tokens/authenticate')
        try:
            response = self.session.post(
                url,
                headers={'Authorization': f'token {self.api_token}'},
                timeout=self.timeout,
            )
            response.raise_for_status()
            bearer_token = response.json()['bearerToken']
        except (requests.RequestException, KeyError, ValueError) as e:
            status = getattr(getattr(e, 'response', None), 'status_code', None)
            raise RemoteServiceError(f'Authentication failed: {e}', status_code=status) from e
        self.session.headers.update({'Authorization': f'Bearer {bearer_token}'})
        self._authenticated = True
        logger.debug('Authenticated against the BOM service', url=self.base_url)

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Sends an authenticated request.

        An expired bearer token (401) triggers one re-authentication. Any
        transport or HTTP error is raised as RemoteServiceError.
        """
        if not self._authenticated:
            self._authenticate()
        url = self._url(endpoint)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            if response.status_code == 401:
                self._authenticate()
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response
        except requests.HTTPError as e:
            raise RemoteServiceError(
                f'{method} {url} failed: {e}', status_code=e.response.status_code,
            ) from e
        except requests.RequestException as e:
            raise RemoteServiceError(f'{method} {url} failed: {e}') from e

    def _get_json(self, url: str, **kwargs) -> Any:
        response = self._request('GET', url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(f'GET {url} returned a body that is not JSON: {e}') from e

    @staticmethod
    def _validate(view: type[ViewT], data: Any, url: str) -> ViewT:
        try:
            return view.model_validate(data)
        except ValidationError as e:
            raise RemoteServiceError(f'GET {url} returned a malformed {view.__name__}: {e}') from e

    def _get(self, url: str, view: type[ViewT], **kwargs) -> ViewT:
        return self._validate(view, self._get_json(url, **kwargs), url)

    def _get_all(self, url: str, view: type[ViewT], params: dict[str, Any] | None = None) -> list[ViewT]:
        """Collects every page of a list endpoint."""
        items: list[ViewT] = []
        offset = 0
        while True:
            page_params = {**(params or {}), 'offset': offset, 'limit': PAGE_SIZE}
            data = self._get_json(url, params=page_params)
            page = data.get('items', [])
            items.extend(self._validate(view, item, url) for item in page)
            offset += len(page)
            if not page or offset >= data.get('totalCount', 0):
                break
        return items

    def get_current_user(self) -> UserView:
        return self._get('api/current-user', UserView)

    def get_notifications_for_user(
        self, user: UserView, start: datetime, end: datetime,
    ) -> list[NotificationUserView]:
        """Notifications delivered to `user` created in the window (start, end]."""
        url = user.get_link('notifications') or f'{user.href}/notifications'
        notifications = self._get_all(
            url, NotificationUserView,
            params={'startDate': format_timestamp(start), 'endDate': format_timestamp(end)},
        )
        logger.debug(
            'Fetched notifications', count=len(notifications),
            start=format_timestamp(start), end=format_timestamp(end),
        )
        return [n for n in notifications if start < n.created_at <= end]

    def get_component_version(self, url: str) -> ComponentVersionView:
        return self._get(url, ComponentVersionView)

    def get_origins(self, component_version: ComponentVersionView) -> list[OriginView]:
        url = component_version.get_link('origins')
        if not url:
            return []
        return self._get_all(url, OriginView)

    def get_vulnerabilities(self, component_version: ComponentVersionView) -> list[VulnerabilityView]:
        url = component_version.get_link('vulnerabilities')
        if not url:
            raise RemoteServiceError(
                f'No vulnerabilities link for component version {component_version.href}',
                status_code=404,
            )
        return self._get_all(url, VulnerabilityView)

    def get_policy_status(self, url: str) -> PolicyStatusView:
        return self._get(url, PolicyStatusView)

    def _find_project(self, project_name: str) -> ProjectView | None:
        projects = self._get_all('api/projects', ProjectView, params={'q': f'name:{project_name}'})
        return next((p for p in projects if p.name == project_name), None)

    def _find_version(self, project: ProjectView, version_name: str) -> ProjectVersionView | None:
        url = project.get_link('versions') or f'{project.href}/versions'
        versions = self._get_all(url, ProjectVersionView, params={'q': f'versionName:{version_name}'})
        return next((v for v in versions if v.version_name == version_name), None)

    def get_project_version(self, project_name: str, version_name: str) -> ProjectVersionView | None:
        """Exact-match lookup; None when the project or the version is missing."""
        project = self._find_project(project_name)
        if project is None:
            return None
        return self._find_version(project, version_name)

    def get_or_create_project_version(self, project_name: str, version_name: str) -> ProjectVersionView:
        project = self._find_project(project_name)
        if project is None:
            logger.info('Creating project', project=project_name, version=version_name)
            self._request('POST', 'api/projects', json={
                'name': project_name,
                'versionRequest': {'versionName': version_name, 'phase': 'DEVELOPMENT', 'distribution': 'INTERNAL'},
            })
            project = self._find_project(project_name)
            if project is None:
                raise RemoteServiceError(f"Project '{project_name}' was not found after creation")

        version = self._find_version(project, version_name)
        if version is None:
            logger.info('Creating project version', project=project_name, version=version_name)
            url = project.get_link('versions') or f'{project.href}/versions'
            self._request('POST', url, json={
                'versionName': version_name, 'phase': 'DEVELOPMENT', 'distribution': 'INTERNAL',
            })
            version = self._find_version(project, version_name)
            if version is None:
                raise RemoteServiceError(
                    f"Version '{version_name}' of project '{project_name}' was not found after creation",
                )
        return version

    def find_component_version_url(self, coordinate: Coordinate) -> str | None:
        """Look the coordinate up in the component catalog."""
        data = self._get_json('api/components', params={'q': coordinate.external_id, 'limit': 1})
        for item in data.get('items', []):
            if item.get('version'):
                return item['version']
        return None

    def add_component_to_project_version(
        self, coordinate: Coordinate, project_version: ProjectVersionView,
    ) -> BomComponentView:
        """Register the coordinate in the project version's BOM and return the BOM entry."""
        component_version_url = self.find_component_version_url(coordinate)
        if component_version_url is None:
            raise RemoteServiceError(f'Component {coordinate} was not found', status_code=404)

        components_url = project_version.get_link('components') or f'{project_version.href}/components'
        self._request('POST', components_url, json={'component': component_version_url})

        # The BOM entry lives under the project version at the component version's relative path
        relative = component_version_url.split('/api/', 1)[-1]
        bom_component_url = f'{project_version.href}/{relative}'
        bom_component = self._get(bom_component_url, BomComponentView)
        logger.debug('Added component to project version', component=str(coordinate), url=bom_component_url)
        return bom_component
