import io
import json
import zipfile
from collections.abc import Callable

import structlog

from bomguard.core.exceptions import HostRepositoryError
from bomguard.models.coordinate import Coordinate
from bomguard.models.host import repo_key_of
from bomguard.models.package_type import Forge
from bomguard.models.package_type import get_supported_package_type
from bomguard.models.package_type import PackageType
from bomguard.services.artifactory_service import HostRepository
from bomguard.services.inspection_state import InspectionStateTracker

logger = structlog.get_logger('identifier_service')

COMPOSER_MANIFEST = 'composer.json'


class IdentifierResolver:
    """
    Resolves a stored artifact to its component coordinate.

    Strategies run in a fixed order and the first one that yields a complete
    coordinate wins:

    1. identifier properties recorded by an earlier inspection
    2. the package type's name/version properties set by the host
    3. the manifest inside the payload, for types whose host metadata is unreliable
    4. the repository layout (Maven-style types need group, name and version)
    """

    def __init__(self, host: HostRepository, state: InspectionStateTracker):
        self.host = host
        self.state = state

    def resolve(self, path: str) -> Coordinate | None:
        package_type_name = self.host.get_package_type(repo_key_of(path))
        package_type = get_supported_package_type(package_type_name)
        if package_type is None:
            logger.warning('Package type not supported', path=path, package_type=package_type_name)
            return None

        strategies: list[tuple[str, Callable[[str, PackageType], Coordinate | None]]] = [
            ('persisted', self._from_persisted_properties),
            ('properties', self._from_package_properties),
            ('payload', self._from_payload),
            ('layout', self._from_layout),
        ]
        for strategy, resolver in strategies:
            coordinate = resolver(path, package_type)
            if coordinate is not None:
                logger.debug('Resolved identifier', path=path, strategy=strategy, coordinate=str(coordinate))
                return coordinate

        logger.info('Could not resolve identifier', path=path, package_type=package_type.name)
        return None

    def _from_persisted_properties(self, path: str, package_type: PackageType) -> Coordinate | None:
        return self.state.get_identifier(path)

    def _from_package_properties(self, path: str, package_type: PackageType) -> Coordinate | None:
        if not package_type.has_name_version_properties:
            return None
        properties = self.host.get_properties(path)
        return Coordinate.create(
            package_type.forge,
            properties.get(package_type.name_property),
            properties.get(package_type.version_property),
        )

    def _from_payload(self, path: str, package_type: PackageType) -> Coordinate | None:
        if not package_type.inspect_payload:
            return None
        try:
            content = self.host.get_content(path)
            manifest = read_composer_manifest(content)
        except (HostRepositoryError, zipfile.BadZipFile, KeyError, ValueError) as e:
            logger.debug('No usable manifest in payload', path=path, error=str(e))
            return None
        if not isinstance(manifest, dict):
            return None
        name = manifest.get('name')
        version = manifest.get('version')
        if not isinstance(name, str) or not isinstance(version, str):
            return None
        return Coordinate.create(package_type.forge, name, version)

    def _from_layout(self, path: str, package_type: PackageType) -> Coordinate | None:
        layout = self.host.get_layout_info(path)
        if package_type.forge == Forge.MAVEN:
            return Coordinate.create(
                Forge.MAVEN, layout.module, layout.base_revision,
                group=layout.organization, require_group=True,
            )
        return Coordinate.create(package_type.forge, layout.module, layout.base_revision)


def read_composer_manifest(content: bytes) -> dict:
    """Parse the shallowest composer.json in a zip archive."""
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        candidates = [
            name for name in archive.namelist()
            if name.rsplit('/', 1)[-1] == COMPOSER_MANIFEST
        ]
        if not candidates:
            raise KeyError(COMPOSER_MANIFEST)
        manifest_name = min(candidates, key=lambda name: name.count('/'))
        return json.loads(archive.read(manifest_name).decode('utf-8'))
