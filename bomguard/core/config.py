"""Configuration management for BOMGuard."""
import os
import socket
from dataclasses import dataclass
from dataclasses import field
from dataclasses import fields
from dataclasses import replace
from pathlib import Path

import structlog
import yaml

logger = structlog.get_logger('config')

# Name patterns searched per package type. An empty list disables the type
# for inspection; a repository whose type has no patterns is never scanned.
DEFAULT_PATTERNS: dict[str, list[str]] = {
    'bower': ['*.tar.gz'],
    'cocoapods': ['*.tar.gz'],
    'composer': ['*.zip'],
    'conda': ['*.tar.bz2', '*.conda'],
    'cran': ['*.tar.gz'],
    'gems': ['*.gem'],
    'go': ['*.zip'],
    'gradle': ['*.jar'],
    'maven': ['*.jar'],
    'npm': ['*.tgz'],
    'nuget': ['*.nupkg'],
    'pypi': ['*.whl', '*.tar.gz', '*.zip', '*.egg'],
}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name: str) -> list[str]:
    value = os.getenv(name, '')
    return [item.strip() for item in value.split(',') if item.strip()]


@dataclass
class BlackDuckConfig:
    """Connection settings for the BOM scanning service."""
    url: str = field(default_factory=lambda: os.getenv('BLACKDUCK_URL', ''))
    api_token: str | None = field(
        default_factory=lambda: os.getenv('BLACKDUCK_API_TOKEN'),
    )
    timeout: int = field(
        default_factory=lambda: int(os.getenv('BLACKDUCK_TIMEOUT', '120')),
    )
    verify_ssl: bool = field(
        default_factory=lambda: _env_bool('BLACKDUCK_VERIFY_SSL', True),
    )
    cache_ttl: int = 60 * 60 * 24  # 1 day in seconds

    def __repr__(self) -> str:
        return (
            f"BlackDuckConfig(url={self.url!r}, api_token='*****', "
            f"timeout={self.timeout!r}, verify_ssl={self.verify_ssl!r}, "
            f"cache_ttl={self.cache_ttl!r})"
        )


@dataclass
class ArtifactoryConfig:
    """Connection settings for the host repository manager."""
    url: str = field(
        default_factory=lambda: os.getenv('ARTIFACTORY_URL', ''),
    )
    api_key: str | None = field(
        default_factory=lambda: os.getenv('ARTIFACTORY_API_KEY'),
    )
    timeout: int = field(
        default_factory=lambda: int(os.getenv('ARTIFACTORY_TIMEOUT', '60')),
    )

    def __repr__(self) -> str:
        return (
            f"ArtifactoryConfig(url={self.url!r}, api_key='*****', "
            f"timeout={self.timeout!r})"
        )


@dataclass
class InspectionConfig:
    enabled: bool = field(
        default_factory=lambda: _env_bool('BOMGUARD_INSPECTION_ENABLED', True),
    )
    repos: list[str] = field(
        default_factory=lambda: _env_list('BOMGUARD_INSPECTION_REPOS'),
    )
    patterns: dict[str, list[str]] = field(
        default_factory=lambda: {
            key: list(value) for key, value in DEFAULT_PATTERNS.items()
        },
    )
    max_retries: int = field(
        default_factory=lambda: int(os.getenv('BOMGUARD_MAX_RETRIES', '5')),
    )
    metadata_block: bool = field(
        default_factory=lambda: _env_bool('BOMGUARD_METADATA_BLOCK'),
    )
    block_fail_closed: bool = field(
        default_factory=lambda: _env_bool('BOMGUARD_BLOCK_FAIL_CLOSED'),
    )
    project_version_name: str = field(
        default_factory=lambda: os.getenv(
            'BOMGUARD_PROJECT_VERSION_NAME', socket.gethostname(),
        ),
    )
    workers: int = field(
        default_factory=lambda: int(os.getenv('BOMGUARD_WORKERS', '4')),
    )

    def get_patterns_for_package_type(self, package_type: str) -> list[str]:
        return list(self.patterns.get(package_type.lower(), []))


@dataclass
class PolicyConfig:
    enabled: bool = field(
        default_factory=lambda: _env_bool('BOMGUARD_POLICY_ENABLED', True),
    )
    block: bool = field(
        default_factory=lambda: _env_bool('BOMGUARD_POLICY_BLOCK'),
    )


@dataclass
class BomGuardConfig:
    blackduck: BlackDuckConfig = field(default_factory=BlackDuckConfig)
    artifactory: ArtifactoryConfig = field(default_factory=ArtifactoryConfig)
    inspection: InspectionConfig = field(default_factory=InspectionConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> 'BomGuardConfig':
        """Build config from the environment, then apply an optional YAML file."""
        config = cls()
        config_path = path or os.getenv('BOMGUARD_CONFIG')
        if not config_path:
            return config

        with open(config_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")

        for section_name, values in data.items():
            section = getattr(config, section_name, None)
            if section is None or not isinstance(values, dict):
                logger.warning('Ignoring unknown config section', section=section_name)
                continue
            known = {f.name for f in fields(section)}
            unknown = set(values) - known
            if unknown:
                logger.warning(
                    'Ignoring unknown config keys',
                    section=section_name, keys=sorted(unknown),
                )
            setattr(
                config, section_name, replace(
                    section, **{k: v for k, v in values.items() if k in known},
                ),
            )
        logger.debug('Loaded config file', path=str(config_path))
        return config

    def validate(self) -> dict[str, list[str]]:
        """Return validation errors keyed by module name (empty lists when valid)."""
        general: list[str] = []
        if not self.blackduck.url:
            general.append('blackduck.url is not set')
        if not self.blackduck.api_token:
            general.append('blackduck.api_token is not set')
        if self.blackduck.timeout <= 0:
            general.append('blackduck.timeout must be positive')
        if not self.artifactory.url:
            general.append('artifactory.url is not set')

        inspection: list[str] = []
        if not self.inspection.repos:
            inspection.append('inspection.repos is empty')
        if self.inspection.max_retries < 0:
            inspection.append('inspection.max_retries must not be negative')
        if self.inspection.workers < 1:
            inspection.append('inspection.workers must be at least 1')
        if not self.inspection.project_version_name:
            inspection.append('inspection.project_version_name is blank')

        return {'general': general, 'inspection': inspection, 'policy': []}


_config: BomGuardConfig | None = None


def get_config() -> BomGuardConfig:
    global _config
    if _config is None:
        _config = BomGuardConfig.load()
    return _config


def set_config(config: BomGuardConfig | None) -> None:
    """Replace the process-wide config (None resets to lazy loading)."""
    global _config
    _config = config
