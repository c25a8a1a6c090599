from unittest.mock import MagicMock

import pytest

from bomguard.core.config import PolicyConfig
from bomguard.core.exceptions import DownloadBlockedError
from bomguard.core.exceptions import HostRepositoryError
from bomguard.services.delta_service import DeltaInspector
from bomguard.services.identifier_service import IdentifierResolver
from bomguard.services.inspection_service import InspectionModule
from bomguard.services.policy_service import PolicyModule

JAR = 'maven-local/com/example/lib/1.0/lib-1.0.jar'
POM = 'maven-local/com/example/lib/1.0/lib-1.0.pom'


@pytest.fixture
def repo(host):
    host.add_repo('maven-local', 'maven')
    host.add_artifact(JAR)
    host.add_artifact(POM)
    return 'maven-local'


@pytest.fixture
def inspection(host, blackduck, state, inspection_config):
    inspection_config.metadata_block = True
    delta = DeltaInspector(host, blackduck, state, IdentifierResolver(host, state), inspection_config)
    return InspectionModule(inspection_config, state, delta, MagicMock(), MagicMock())


def test_pending_artifact_is_blocked(inspection, repo):
    with pytest.raises(DownloadBlockedError) as exc_info:
        inspection.handle_before_download(JAR)

    assert exc_info.value.status_code == 403
    assert exc_info.value.path == JAR
    assert 'not been inspected' in exc_info.value.reason


@pytest.mark.parametrize('status', ['SUCCESS', 'FAILURE'])
def test_inspected_artifact_is_allowed(inspection, host, repo, status):
    host.props[JAR] = {'blackduck.inspectionStatus': status}

    assert inspection.handle_before_download(JAR) is None


def test_artifact_outside_patterns_is_allowed(inspection, repo):
    assert inspection.handle_before_download(POM) is None


def test_metadata_block_off_allows_everything(inspection, repo):
    inspection.config.metadata_block = False

    assert inspection.handle_before_download(JAR) is None


def test_disabled_inspection_module_allows_download(inspection, repo):
    inspection.config.enabled = False

    assert inspection.handle_before_download(JAR) is None


@pytest.mark.parametrize('fail_closed', [False, True])
def test_unreadable_status_follows_fail_closed(inspection, host, repo, fail_closed):
    inspection.config.block_fail_closed = fail_closed
    host.get_properties = MagicMock(side_effect=HostRepositoryError('host down'))

    if fail_closed:
        with pytest.raises(DownloadBlockedError):
            inspection.handle_before_download(JAR)
    else:
        assert inspection.handle_before_download(JAR) is None


@pytest.fixture
def policy(properties):
    return PolicyModule(PolicyConfig(enabled=True, block=True), properties)


def test_violating_artifact_is_blocked(policy, host, repo):
    host.props[JAR] = {'blackduck.policyStatus': 'IN_VIOLATION'}

    with pytest.raises(DownloadBlockedError, match='violates a policy'):
        policy.handle_before_download(JAR)


@pytest.mark.parametrize('status', ['NOT_IN_VIOLATION', 'IN_VIOLATION_OVERRIDDEN', None])
def test_non_violating_artifact_is_allowed(policy, host, repo, status):
    if status:
        host.props[JAR] = {'blackduck.policyStatus': status}

    assert policy.handle_before_download(JAR) is None


def test_policy_block_off_allows_violations(policy, host, repo):
    policy.config.block = False
    host.props[JAR] = {'blackduck.policyStatus': 'IN_VIOLATION'}

    assert policy.handle_before_download(JAR) is None


def test_disabled_policy_module_allows_violations(policy, host, repo):
    policy.config.enabled = False
    host.props[JAR] = {'blackduck.policyStatus': 'IN_VIOLATION'}

    assert policy.handle_before_download(JAR) is None


def test_policy_fail_closed_blocks_on_host_error(properties, host, repo):
    policy = PolicyModule(PolicyConfig(enabled=True, block=True), properties, fail_closed=True)
    host.get_properties = MagicMock(side_effect=HostRepositoryError('host down'))

    with pytest.raises(DownloadBlockedError):
        policy.handle_before_download(JAR)
