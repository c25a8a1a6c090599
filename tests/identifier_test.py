import io
import json
import zipfile

from bomguard.models.host import LayoutInfo
from bomguard.models.package_type import Forge
from bomguard.services.identifier_service import IdentifierResolver
from bomguard.services.identifier_service import read_composer_manifest


def _composer_zip(manifest: dict | None, prefix: str = 'vendor-pkg-abc123/') -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        archive.writestr(f'{prefix}src/Thing.php', '<?php')
        if manifest is not None:
            archive.writestr(f'{prefix}composer.json', json.dumps(manifest))
            archive.writestr(f'{prefix}vendor/other/composer.json', json.dumps({'name': 'other/pkg', 'version': '9'}))
    return buffer.getvalue()


def test_maven_layout(host, state):
    host.add_repo('maven-local', 'maven')
    path = 'maven-local/com/example/lib/1.0/lib-1.0.jar'
    host.add_artifact(path, layout=LayoutInfo(organization='com.example', module='lib', base_revision='1.0'))

    coordinate = IdentifierResolver(host, state).resolve(path)

    assert coordinate.forge == Forge.MAVEN
    assert coordinate.origin_id == 'com.example:lib:1.0'


def test_maven_layout_without_group_is_unresolved(host, state):
    host.add_repo('maven-local', 'maven')
    path = 'maven-local/lib-1.0.jar'
    host.add_artifact(path, layout=LayoutInfo(module='lib', base_revision='1.0'))

    assert IdentifierResolver(host, state).resolve(path) is None


def test_persisted_properties_beat_layout(host, state):
    host.add_repo('maven-local', 'maven')
    path = 'maven-local/com/example/lib/1.0/lib-1.0.jar'
    host.add_artifact(
        path,
        layout=LayoutInfo(organization='com.example', module='lib', base_revision='1.0'),
        properties={'blackduck.forge': 'maven', 'blackduck.originId': 'org.other:renamed:2.0'},
    )

    coordinate = IdentifierResolver(host, state).resolve(path)

    assert coordinate.origin_id == 'org.other:renamed:2.0'


def test_package_properties_beat_layout(host, state):
    host.add_repo('npm-remote', 'npm')
    path = 'npm-remote/left-pad/-/left-pad-1.3.0.tgz'
    host.add_artifact(
        path,
        layout=LayoutInfo(module='wrong', base_revision='0.0.1'),
        properties={'npm.name': 'left-pad', 'npm.version': '1.3.0'},
    )

    coordinate = IdentifierResolver(host, state).resolve(path)

    assert coordinate.forge == Forge.NPMJS
    assert coordinate.origin_id == 'left-pad/1.3.0'


def test_partial_package_properties_fall_through(host, state):
    host.add_repo('npm-remote', 'npm')
    path = 'npm-remote/left-pad/-/left-pad-1.3.0.tgz'
    host.add_artifact(
        path,
        layout=LayoutInfo(module='left-pad', base_revision='1.3.0'),
        properties={'npm.name': 'left-pad'},
    )

    coordinate = IdentifierResolver(host, state).resolve(path)

    assert coordinate.origin_id == 'left-pad/1.3.0'


def test_nothing_resolves(host, state):
    host.add_repo('npm-remote', 'npm')
    path = 'npm-remote/mystery.tgz'
    host.add_artifact(path, layout=LayoutInfo(module='mystery'))

    assert IdentifierResolver(host, state).resolve(path) is None


def test_composer_reads_manifest_from_payload(host, state):
    host.add_repo('php', 'composer')
    path = 'php/monolog/monolog-2.0.0.zip'
    host.add_artifact(path, content=_composer_zip({'name': 'monolog/monolog', 'version': '2.0.0'}))

    coordinate = IdentifierResolver(host, state).resolve(path)

    assert coordinate.forge == Forge.PACKAGIST
    assert coordinate.origin_id == 'monolog/monolog:2.0.0'


def test_composer_without_version_is_unresolved(host, state):
    host.add_repo('php', 'composer')
    path = 'php/monolog/monolog-2.0.0.zip'
    host.add_artifact(path, content=_composer_zip({'name': 'monolog/monolog'}))

    assert IdentifierResolver(host, state).resolve(path) is None


def test_composer_with_broken_archive_falls_back_to_layout(host, state):
    host.add_repo('php', 'composer')
    path = 'php/monolog/monolog-2.0.0.zip'
    host.add_artifact(
        path, content=b'not a zip',
        layout=LayoutInfo(module='monolog/monolog', base_revision='2.0.0'),
    )

    coordinate = IdentifierResolver(host, state).resolve(path)

    assert coordinate.origin_id == 'monolog/monolog:2.0.0'


def test_unsupported_package_type(host, state):
    host.add_repo('docker-local', 'docker')
    path = 'docker-local/app/latest/manifest.json'
    host.add_artifact(path, layout=LayoutInfo(module='app', base_revision='latest'))

    assert IdentifierResolver(host, state).resolve(path) is None


def test_read_composer_manifest_prefers_shallowest():
    manifest = read_composer_manifest(_composer_zip({'name': 'a/b', 'version': '1'}))
    assert manifest['name'] == 'a/b'
