import pytest
from pydantic import ValidationError

from bomguard.models.coordinate import Coordinate
from bomguard.models.package_type import Forge


@pytest.mark.parametrize('name,version', [
    (None, '1.0'),
    ('lib', None),
    ('', '1.0'),
    ('lib', '   '),
])
def test_create_returns_none_for_blank_parts(name, version):
    assert Coordinate.create(Forge.NPMJS, name, version) is None


def test_create_requires_group_when_asked():
    assert Coordinate.create(Forge.MAVEN, 'lib', '1.0', group=None, require_group=True) is None
    assert Coordinate.create(Forge.MAVEN, 'lib', '1.0', group=' ', require_group=True) is None


def test_direct_construction_rejects_blank_name():
    with pytest.raises(ValidationError):
        Coordinate(forge=Forge.PYPI, name=' ', version='1.0')


def test_maven_origin_id_includes_group():
    coordinate = Coordinate.create(Forge.MAVEN, 'lib', '1.2.3', group='com.example', require_group=True)
    assert coordinate.origin_id == 'com.example:lib:1.2.3'
    assert coordinate.external_id == 'maven:com.example:lib:1.2.3'
    assert str(coordinate) == coordinate.external_id


def test_origin_id_separator_per_forge():
    assert Coordinate.create(Forge.NPMJS, 'left-pad', '1.3.0').origin_id == 'left-pad/1.3.0'
    assert Coordinate.create(Forge.PACKAGIST, 'monolog/monolog', '2.0.0').origin_id == 'monolog/monolog:2.0.0'


def test_from_origin_id_round_trips_maven():
    coordinate = Coordinate.from_origin_id(Forge.MAVEN, 'com.example:lib:1.2.3')
    assert coordinate.group == 'com.example'
    assert coordinate.name == 'lib'
    assert coordinate.version == '1.2.3'


def test_from_origin_id_rejects_malformed():
    assert Coordinate.from_origin_id(Forge.NPMJS, 'just-a-name') is None
    assert Coordinate.from_origin_id(Forge.NPMJS, 'left-pad/') is None
    assert Coordinate.from_origin_id(Forge.MAVEN, ':lib:1.0') is None
    assert Coordinate.from_origin_id(Forge.MAVEN, None) is None


def test_from_origin_id_requires_maven_group():
    assert Coordinate.from_origin_id(Forge.MAVEN, 'lib:1.0') is None
    assert Coordinate.from_origin_id(Forge.MAVEN, 'com.example:lib:1.0:jar') is None


def test_from_origin_id_keeps_scoped_npm_name():
    coordinate = Coordinate.create(Forge.NPMJS, '@scope/pkg', '1.0.0')
    assert coordinate.origin_id == '@scope/pkg/1.0.0'
    assert Coordinate.from_origin_id(Forge.NPMJS, coordinate.origin_id) == coordinate


def test_from_origin_id_splits_packagist_on_last_separator():
    coordinate = Coordinate.from_origin_id(Forge.PACKAGIST, 'monolog/monolog:2.0.0')
    assert (coordinate.name, coordinate.version) == ('monolog/monolog', '2.0.0')


def test_coordinates_are_immutable():
    coordinate = Coordinate.create(Forge.PYPI, 'requests', '2.31.0')
    with pytest.raises(ValidationError):
        coordinate.version = '2.32.0'
