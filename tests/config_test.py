import pytest

from bomguard.core.config import BomGuardConfig
from bomguard.core.config import DEFAULT_PATTERNS
from bomguard.core.config import get_config
from bomguard.core.config import set_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        'BLACKDUCK_URL', 'BLACKDUCK_API_TOKEN', 'ARTIFACTORY_URL', 'BOMGUARD_CONFIG',
        'BOMGUARD_INSPECTION_REPOS', 'BOMGUARD_METADATA_BLOCK', 'BOMGUARD_PROJECT_VERSION_NAME',
    ):
        monkeypatch.delenv(name, raising=False)
    set_config(None)
    yield
    set_config(None)


def test_config_from_environment(monkeypatch):
    monkeypatch.setenv('BLACKDUCK_URL', 'https://bd.example.com')
    monkeypatch.setenv('BLACKDUCK_API_TOKEN', 'token')
    monkeypatch.setenv('ARTIFACTORY_URL', 'https://art.example.com/artifactory')
    monkeypatch.setenv('BOMGUARD_INSPECTION_REPOS', 'libs-release, npm-remote,,')
    monkeypatch.setenv('BOMGUARD_METADATA_BLOCK', 'yes')
    monkeypatch.setenv('BOMGUARD_PROJECT_VERSION_NAME', 'ci-host')

    config = BomGuardConfig.load()

    assert config.inspection.repos == ['libs-release', 'npm-remote']
    assert config.inspection.metadata_block is True
    assert config.inspection.project_version_name == 'ci-host'
    assert config.validate() == {'general': [], 'inspection': [], 'policy': []}


def test_yaml_overrides_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('BOMGUARD_INSPECTION_REPOS', 'from-env')
    config_file = tmp_path / 'bomguard.yaml'
    config_file.write_text(
        'inspection:\n'
        '  repos: [libs-release]\n'
        '  max_retries: 2\n'
        '  patterns:\n'
        '    maven: ["*.jar", "*.war"]\n'
        'policy:\n'
        '  block: true\n'
        'unknown_section:\n'
        '  x: 1\n',
    )

    config = BomGuardConfig.load(config_file)

    assert config.inspection.repos == ['libs-release']
    assert config.inspection.max_retries == 2
    assert config.inspection.get_patterns_for_package_type('Maven') == ['*.jar', '*.war']
    assert config.policy.block is True


def test_yaml_path_from_environment(monkeypatch, tmp_path):
    config_file = tmp_path / 'bomguard.yaml'
    config_file.write_text('inspection:\n  workers: 8\n')
    monkeypatch.setenv('BOMGUARD_CONFIG', str(config_file))

    assert get_config().inspection.workers == 8


def test_yaml_must_be_a_mapping(tmp_path):
    config_file = tmp_path / 'bomguard.yaml'
    config_file.write_text('- a\n- b\n')

    with pytest.raises(ValueError):
        BomGuardConfig.load(config_file)


def test_validate_reports_errors_per_module():
    config = BomGuardConfig()
    config.inspection.repos = []
    config.inspection.workers = 0

    errors = config.validate()

    assert 'blackduck.url is not set' in errors['general']
    assert 'artifactory.url is not set' in errors['general']
    assert 'inspection.repos is empty' in errors['inspection']
    assert 'inspection.workers must be at least 1' in errors['inspection']


def test_default_patterns_are_copied():
    config = BomGuardConfig()
    config.inspection.patterns['maven'].append('*.war')

    assert DEFAULT_PATTERNS['maven'] == ['*.jar']
    assert config.inspection.get_patterns_for_package_type('unknown') == []


def test_secrets_are_masked():
    config = BomGuardConfig()
    config.blackduck.api_token = 'super-secret'
    config.artifactory.api_key = 'also-secret'

    assert 'super-secret' not in repr(config.blackduck)
    assert 'also-secret' not in repr(config.artifactory)
