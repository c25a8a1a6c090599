from concurrent.futures import ThreadPoolExecutor

import pytest

from bomguard.models.properties import BlackDuckProperty
from bomguard.models.properties import parse_properties
from bomguard.models.status import InspectionStatus
from conftest import ts

JAR = 'libs/a/b/1.0/b-1.0.jar'


def test_values_are_written_as_strings(properties, host):
    properties.set(JAR, BlackDuckProperty.LAST_UPDATE, ts('2024-01-02T03:04:05.678901'))
    properties.set(JAR, BlackDuckProperty.INSPECTION_STATUS, InspectionStatus.SUCCESS)
    properties.set(JAR, BlackDuckProperty.INSPECTION_RETRY_COUNT, 2)

    assert host.props[JAR] == {
        'blackduck.lastUpdate': '2024-01-02T03:04:05.678Z',
        'blackduck.inspectionStatus': 'SUCCESS',
        'blackduck.inspectionRetryCount': '2',
    }
    assert properties.get_datetime(JAR, BlackDuckProperty.LAST_UPDATE) == ts('2024-01-02T03:04:05.678')


def test_blank_values_read_as_missing(properties, host):
    host.props[JAR] = {'blackduck.policyStatus': ''}

    assert properties.get(JAR, BlackDuckProperty.POLICY_STATUS) is None
    assert not properties.has(JAR, BlackDuckProperty.POLICY_STATUS)


def test_concurrent_increments_are_not_lost(properties, host):
    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(lambda _: properties.increment(JAR, BlackDuckProperty.INSPECTION_RETRY_COUNT), range(50)))

    assert host.props[JAR]['blackduck.inspectionRetryCount'] == '50'


def test_delete_all_listed_keys(properties, host):
    host.props[JAR] = {'blackduck.forge': 'maven', 'blackduck.originId': 'a:b:1.0', 'owner': 'me'}

    properties.delete_all(JAR, [BlackDuckProperty.FORGE])

    assert host.props[JAR] == {'blackduck.originId': 'a:b:1.0', 'owner': 'me'}


def test_find_paths_without_repositories(properties):
    assert properties.find_paths([], {BlackDuckProperty.FORGE: None}) == []


def test_parse_properties():
    assert parse_properties(None) is None
    assert parse_properties(['inspectionStatus', 'blackduck.forge']) == [
        BlackDuckProperty.INSPECTION_STATUS, BlackDuckProperty.FORGE,
    ]
    with pytest.raises(ValueError):
        parse_properties(['nope'])
