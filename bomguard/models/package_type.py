from dataclasses import dataclass
from enum import Enum


class Forge(str, Enum):
    """Component namespaces, named as the BOM service names origins."""
    ANACONDA = 'anaconda'
    BOWER = 'bower'
    COCOAPODS = 'cocoapods'
    CRAN = 'cran'
    GOLANG = 'golang'
    MAVEN = 'maven'
    NPMJS = 'npmjs'
    NUGET = 'nuget'
    PACKAGIST = 'packagist'
    PYPI = 'pypi'
    RUBYGEMS = 'rubygems'

    def __str__(self) -> str:
        return self.value

    @property
    def separator(self) -> str:
        """Separator between the parts of an origin id."""
        return ':' if self in _COLON_SEPARATED else '/'

    @classmethod
    def from_name(cls, name: str | None) -> 'Forge | None':
        if not name:
            return None
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None


# Packagist and Go module names contain '/', so their origin ids cannot use it.
_COLON_SEPARATED = frozenset({Forge.MAVEN, Forge.PACKAGIST, Forge.GOLANG, Forge.COCOAPODS})


@dataclass(frozen=True)
class PackageType:
    """A host package type the resolver knows how to identify."""
    name: str
    forge: Forge
    name_property: str | None = None
    version_property: str | None = None
    # Host metadata for the type is unreliable; read the manifest in the payload.
    inspect_payload: bool = False

    @property
    def has_name_version_properties(self) -> bool:
        return bool(self.name_property and self.version_property)


SUPPORTED_PACKAGE_TYPES: dict[str, PackageType] = {
    pt.name: pt for pt in (
        PackageType('bower', Forge.BOWER, 'bower.name', 'bower.version'),
        PackageType('cocoapods', Forge.COCOAPODS, 'pods.name', 'pods.version'),
        PackageType('composer', Forge.PACKAGIST, inspect_payload=True),
        PackageType('conda', Forge.ANACONDA, 'conda.name', 'conda.version'),
        PackageType('cran', Forge.CRAN, 'cran.name', 'cran.version'),
        PackageType('gems', Forge.RUBYGEMS, 'gem.name', 'gem.version'),
        PackageType('go', Forge.GOLANG, 'go.name', 'go.version'),
        PackageType('gradle', Forge.MAVEN),
        PackageType('maven', Forge.MAVEN),
        PackageType('npm', Forge.NPMJS, 'npm.name', 'npm.version'),
        PackageType('nuget', Forge.NUGET, 'nuget.id', 'nuget.version'),
        PackageType('pypi', Forge.PYPI, 'pypi.name', 'pypi.version'),
    )
}


def get_supported_package_type(name: str | None) -> PackageType | None:
    if not name:
        return None
    return SUPPORTED_PACKAGE_TYPES.get(name.strip().lower())
