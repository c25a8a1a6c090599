import pytest

from bomguard.models.coordinate import Coordinate
from bomguard.models.metadata import PolicyVulnerabilityAggregate
from bomguard.models.package_type import Forge
from bomguard.models.properties import BlackDuckProperty
from bomguard.models.status import InspectionStatus

PATH = 'maven-local/com/example/lib/1.0/lib-1.0.jar'


@pytest.fixture
def artifact(host):
    host.add_repo('maven-local', 'maven')
    host.add_artifact(PATH)
    return PATH


def test_missing_status_is_pending(state, artifact):
    assert state.get_status(artifact) == InspectionStatus.PENDING
    assert state.assert_status(artifact, InspectionStatus.PENDING)
    assert not state.should_retry(artifact)


def test_unknown_status_value_is_pending(state, host, artifact):
    host.props[artifact] = {'blackduck.inspectionStatus': 'BOGUS'}
    assert state.get_status(artifact) == InspectionStatus.PENDING


def test_retry_ceiling_boundary(state, artifact):
    # max_retries is 3
    for attempt in range(1, 3):
        state.mark_failure(artifact, f'attempt {attempt}')
        assert state.should_retry(artifact)
    state.mark_failure(artifact, 'attempt 3')
    assert state.get_retry_count(artifact) == 3
    assert not state.should_retry(artifact)


def test_mark_failure_records_reason(state, host, artifact):
    state.mark_failure(artifact, 'Component not found')
    stored = host.props[artifact]
    assert stored['blackduck.inspectionStatus'] == 'FAILURE'
    assert stored['blackduck.inspectionStatusMessage'] == 'Component not found'
    assert stored['blackduck.inspectionRetryCount'] == '1'
    assert 'blackduck.lastInspection' not in stored


def test_non_retryable_failure_jumps_to_ceiling(state, artifact):
    state.mark_failure(artifact, 'No patterns configured', retryable=False)
    assert state.get_retry_count(artifact) == 3
    assert not state.should_retry(artifact)


def test_mark_success_clears_failure(state, host, artifact):
    state.mark_failure(artifact, 'boom')
    coordinate = Coordinate.create(Forge.MAVEN, 'lib', '1.0', group='com.example')
    metadata = PolicyVulnerabilityAggregate(policy_status='NOT_IN_VIOLATION')

    state.mark_success(artifact, coordinate, metadata)

    stored = host.props[artifact]
    assert stored['blackduck.inspectionStatus'] == 'SUCCESS'
    assert 'blackduck.inspectionStatusMessage' not in stored
    assert 'blackduck.inspectionRetryCount' not in stored
    assert stored['blackduck.forge'] == 'maven'
    assert stored['blackduck.originId'] == 'com.example:lib:1.0'
    assert stored['blackduck.policyStatus'] == 'NOT_IN_VIOLATION'
    assert state.get_last_inspection(artifact) is not None


def test_identifier_properties(state, artifact):
    assert not state.has_identifier_properties(artifact)
    coordinate = Coordinate.create(Forge.MAVEN, 'lib', '1.0', group='com.example')
    state.record_identifier(artifact, coordinate)
    assert state.has_identifier_properties(artifact)
    assert state.get_identifier(artifact) == coordinate


def test_recording_identifier_keeps_retry_counter(state, artifact):
    state.mark_failure(artifact, 'boom')
    state.record_identifier(artifact, Coordinate.create(Forge.MAVEN, 'lib', '1.0', group='g'))
    assert state.get_retry_count(artifact) == 1


def test_repo_project_defaults(state, host):
    host.add_repo('npm-remote', 'npm')
    assert state.get_repo_project('npm-remote') == ('npm-remote', 'ci-host')
    state.set_repo_project('npm-remote', 'frontend', '2024')
    assert state.get_repo_project('npm-remote') == ('frontend', '2024')


def test_paths_with_status(state, artifact):
    state.mark_failure(artifact, 'boom')
    assert state.paths_with_status(['maven-local'], InspectionStatus.FAILURE) == [artifact]
    assert state.paths_with_status(['maven-local'], InspectionStatus.SUCCESS) == []
    with pytest.raises(ValueError):
        state.paths_with_status(['maven-local'], InspectionStatus.PENDING)


def test_retry_count_survives_garbage(state, host, artifact):
    host.props[artifact] = {
        'blackduck.inspectionStatus': 'FAILURE',
        BlackDuckProperty.INSPECTION_RETRY_COUNT.value: 'many',
    }
    assert state.get_retry_count(artifact) == 0
    assert state.should_retry(artifact)
