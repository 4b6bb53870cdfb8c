"""Tests for the autoload HTTP endpoints."""

import os

import pytest
from fastapi.testclient import TestClient

from plugin_autoloader.core.config import settings
from plugin_autoloader.main import app, preload_tags
from tests.plugin_files import FIRST_TIME, TAG, set_mtime, write_plugin

PREFIX = f"{settings.api_v1_prefix}/autoload"


@pytest.fixture
def client(process_autoloader):
    return TestClient(app)


class TestAutoloadApi:
    """Test /autoload routes against an injected autoloader."""

    def test_root(self, client):
        r = client.get('/')
        assert r.status_code == 200
        assert r.json()['status'] == 'ok'

    def test_directories(self, client, dirs):
        r = client.get(f"{PREFIX}/directories")
        assert r.status_code == 200
        assert r.json() == {
            'module_directories': [],
            'search_directories': [str(dirs[0]), str(dirs[1])],
        }

    def test_load_and_status(self, client, dirs, executor):
        path = write_plugin(dirs[1], 'tmp/myfile.py')

        r = client.post(f"{PREFIX}/load", json={'tag': TAG, 'name': 'myfile'})

        assert r.status_code == 200, r.text
        body = r.json()
        assert body['relative_path'] == 'tmp/myfile.py'
        assert body['loaded'] is True
        assert body['entry'] == {
            'relative_path': 'tmp/myfile.py',
            'absolute_path': path,
            'modified_at': FIRST_TIME,
        }
        assert executor.calls == [path]

        r = client.get(f"{PREFIX}/status", params={'tag': TAG, 'name': './myfile.py'})
        assert r.json()['loaded'] is True

    def test_load_missing_file(self, client):
        r = client.post(f"{PREFIX}/load", json={'tag': TAG, 'name': 'nothing'})
        assert r.status_code == 200
        assert r.json() == {'relative_path': 'tmp/nothing.py', 'loaded': False, 'entry': None}

    def test_load_failure_is_422(self, client, dirs, executor):
        path = write_plugin(dirs[0], 'tmp/broken.py')
        executor.fail(path, SyntaxError('invalid syntax'))

        r = client.post(f"{PREFIX}/load", json={'tag': TAG, 'name': 'broken'})

        assert r.status_code == 422
        detail = r.json()['detail']
        assert detail['code'] == 'LOAD_FAILED'
        assert detail['path'] == path
        assert detail['relative_path'] == 'tmp/broken.py'
        assert 'invalid syntax' in detail['message']

    def test_load_validates_payload(self, client):
        r = client.post(f"{PREFIX}/load", json={'tag': '', 'name': 'x'})
        assert r.status_code == 422

    def test_load_all_and_files(self, client, dirs):
        one = write_plugin(dirs[0], 'tmp/one.py')
        two = write_plugin(dirs[1], 'tmp/two.py')
        write_plugin(dirs[1], 'tmpother/three.py')

        r = client.get(f"{PREFIX}/files", params={'tag': TAG})
        assert r.json() == {'tag': TAG, 'files': [one, two]}

        r = client.post(f"{PREFIX}/load-all", json={'tag': TAG})
        assert r.status_code == 200
        assert [e['absolute_path'] for e in r.json()['entries']] == [one, two]

        r = client.get(f"{PREFIX}/entries")
        assert [e['relative_path'] for e in r.json()] == ['tmp/one.py', 'tmp/two.py']

    def test_reload(self, client, dirs, executor, process_autoloader):
        path = write_plugin(dirs[0], 'tmp/file.py')
        process_autoloader.load(TAG, 'file')
        set_mtime(path, FIRST_TIME + 60)

        r = client.post(f"{PREFIX}/reload")

        assert r.status_code == 200
        body = r.json()
        assert [e['modified_at'] for e in body['reloaded']] == [FIRST_TIME + 60]
        assert body['entries'][0]['modified_at'] == FIRST_TIME + 60
        assert executor.calls == [path, path]

    def test_reload_failure_is_422(self, client, dirs, executor, process_autoloader):
        path = write_plugin(dirs[0], 'tmp/file.py')
        process_autoloader.load(TAG, 'file')
        os.remove(path)
        replacement = write_plugin(dirs[1], 'tmp/file.py')
        executor.fail(replacement, RuntimeError('boom'))

        r = client.post(f"{PREFIX}/reload")

        assert r.status_code == 422
        assert r.json()['detail']['path'] == replacement


class TestPreload:
    """Test startup preloading."""

    def test_failed_tags_are_reported_not_raised(self, process_autoloader, dirs, executor):
        good = write_plugin(dirs[0], 'good/one.py')
        bad = write_plugin(dirs[0], 'bad/one.py')
        executor.fail(bad, RuntimeError('boom'))

        assert preload_tags(['good', 'bad']) == ['bad']
        assert executor.calls == [good, bad]
        assert process_autoloader.is_loaded('good', 'one')
