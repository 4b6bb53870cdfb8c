"""Tests for the load cache and path normalization."""

import pytest
from hypothesis import given, strategies as st

from plugin_autoloader.plugin_runtime.cache import LoadCache, LoadedEntry, normalize
from tests.plugin_files import FIRST_TIME, write_plugin

EQUIVALENT_SPELLINGS = [
    'tmp/myfile',
    'tmp/myfile.py',
    'tmp/./myfile.py',
    './tmp/myfile.py',
    'tmp/../tmp/myfile.py',
]

segment = st.from_regex(r'[a-z][a-z0-9_]{0,8}', fullmatch=True)


class TestNormalize:
    """Test normalize."""

    @pytest.mark.parametrize('spelling', EQUIVALENT_SPELLINGS)
    def test_equivalent_spellings(self, spelling):
        assert normalize(None, spelling) == 'tmp/myfile.py'

    def test_tag_and_name_are_joined(self):
        assert normalize('tmp', 'myfile') == 'tmp/myfile.py'
        assert normalize('tmp', './myfile.py') == 'tmp/myfile.py'
        assert normalize('tmp', 'sub/../myfile') == 'tmp/myfile.py'

    def test_backslashes_are_treated_as_separators(self):
        assert normalize('tmp', 'sub\\myfile') == 'tmp/sub/myfile.py'

    def test_custom_extension(self):
        assert normalize('tmp', 'myfile', '.rb') == 'tmp/myfile.rb'
        assert normalize('tmp', 'myfile.rb', '.rb') == 'tmp/myfile.rb'

    @given(tag=segment, name=segment)
    def test_idempotent(self, tag, name):
        once = normalize(tag, name)
        assert normalize(None, once) == once
        assert normalize(tag, name + '.py') == once

    @given(tag=segment, name=segment, detour=segment)
    def test_traversal_segments_resolve_away(self, tag, name, detour):
        expected = f"{tag}/{name}.py"
        assert normalize(None, f"./{tag}/./{name}") == expected
        assert normalize(None, f"{tag}/{detour}/../{name}.py") == expected
        assert normalize(None, f"{detour}/../{tag}/{name}") == expected


class TestLoadCache:
    """Test LoadCache."""

    def test_mark_loaded_records_mtime(self, tmp_path):
        path = write_plugin(tmp_path, 'tmp/myfile.py', mtime=FIRST_TIME)
        cache = LoadCache()

        entry = cache.mark_loaded('tmp', 'myfile', path)

        assert entry == LoadedEntry('tmp/myfile.py', path, FIRST_TIME)
        assert cache.get('tmp', 'myfile') == entry

    @pytest.mark.parametrize('spelling', EQUIVALENT_SPELLINGS)
    def test_is_loaded_for_equivalent_paths(self, tmp_path, spelling):
        path = write_plugin(tmp_path, 'tmp/myfile.py')
        cache = LoadCache()
        cache.mark_loaded('tmp', 'myfile', path)

        assert cache.is_loaded(None, spelling)
        assert spelling in cache

    def test_is_loaded_false_for_unknown(self):
        cache = LoadCache()
        assert not cache.is_loaded('tmp', 'myfile')
        assert 42 not in cache

    def test_one_entry_per_relative_path(self, tmp_path):
        first = write_plugin(tmp_path / 'a', 'tmp/myfile.py', mtime=FIRST_TIME)
        second = write_plugin(tmp_path / 'b', 'tmp/myfile.py', mtime=FIRST_TIME + 60)
        cache = LoadCache()

        cache.mark_loaded('tmp', 'myfile', first)
        cache.mark_loaded(None, './tmp/myfile.py', second)

        assert len(cache) == 1
        assert cache.get('tmp', 'myfile') == LoadedEntry('tmp/myfile.py', second, FIRST_TIME + 60)

    def test_mark_loaded_missing_file_raises(self, tmp_path):
        cache = LoadCache()
        with pytest.raises(FileNotFoundError):
            cache.mark_loaded('tmp', 'myfile', str(tmp_path / 'missing.py'))
        assert len(cache) == 0

    def test_entries_is_a_snapshot(self, tmp_path):
        one = write_plugin(tmp_path, 'tmp/one.py')
        two = write_plugin(tmp_path, 'tmp/two.py')
        cache = LoadCache()
        cache.mark_loaded('tmp', 'one', one)

        snapshot = cache.entries()
        cache.mark_loaded('tmp', 'two', two)

        assert [key for key, _ in snapshot] == ['tmp/one.py']
        assert [key for key, _ in cache.entries()] == ['tmp/one.py', 'tmp/two.py']

    def test_discard(self, tmp_path):
        path = write_plugin(tmp_path, 'tmp/one.py')
        cache = LoadCache()
        cache.mark_loaded('tmp', 'one', path)

        removed = cache.discard('./tmp/one')

        assert removed is not None and removed.absolute_path == path
        assert not cache.is_loaded('tmp', 'one')
        assert cache.discard('tmp/one.py') is None

    def test_lock_is_reentrant(self, tmp_path):
        path = write_plugin(tmp_path, 'tmp/one.py')
        cache = LoadCache()
        with cache.lock:
            with cache.lock:
                cache.mark_loaded('tmp', 'one', path)
        assert cache.is_loaded('tmp', 'one')

    def test_entry_is_immutable(self, tmp_path):
        entry = LoadedEntry('tmp/one.py', '/a/tmp/one.py', FIRST_TIME)
        with pytest.raises(AttributeError):
            entry.modified_at = 0.0
