"""
Unit tests for the file-backed cursor store
"""
import os
import pytest
from unittest.mock import patch

from log_poller.services.cursor_store import CursorStore
from log_poller.errors import CorruptCursorError, PersistenceError


class TestCursorPaths:
    """Test the per-stream cursor file layout."""

    def test_plain_stream_name_appends_to_state_file(self, state_file):
        store = CursorStore(state_file)
        assert str(store.path_for('app-stream')) == f"{state_file}_app-stream"

    def test_slashes_are_encoded(self, state_file):
        """Lambda-style stream names stay in the state directory."""
        store = CursorStore(state_file)
        path = store.path_for('2024/01/01/[$LATEST]abc123')

        assert os.path.dirname(str(path)) == os.path.dirname(state_file)
        assert '/' not in path.name

    def test_distinct_streams_never_collide(self, state_file):
        store = CursorStore(state_file)
        names = ['a/b', 'a_b', 'a%2Fb', 'a b', 'a-b']
        paths = {store.path_for(name) for name in names}
        assert len(paths) == len(names)

    def test_long_stream_name_fits_in_one_file_name(self, state_file):
        store = CursorStore(state_file)
        name = 'x' * 512

        path = store.path_for(name)
        store.save(name, 'f/long')

        assert len(path.name.encode('utf-8')) <= 255
        assert os.path.dirname(str(path)) == os.path.dirname(state_file)
        assert path.name.startswith('cursor_xxx')
        assert store.load(name) == 'f/long'

    def test_heavily_encoded_stream_name_round_trips(self, state_file):
        """Every '/', '[' and '$' triples in length once percent-encoded."""
        store = CursorStore(state_file)
        name = 'kube.var.log.containers/' + '/'.join(['[$LATEST]'] * 30) + 'a' * 60

        store.save(name, 'f/encoded')

        assert len(store.path_for(name).name.encode('utf-8')) <= 255
        assert store.load(name) == 'f/encoded'

    def test_long_names_with_shared_prefix_never_collide(self, state_file):
        store = CursorStore(state_file)
        first = 'p' * 400 + 'one'
        second = 'p' * 400 + 'two'

        store.save(first, 'f/1')
        store.save(second, 'f/2')

        assert store.path_for(first) != store.path_for(second)
        assert store.load(first) == 'f/1'
        assert store.load(second) == 'f/2'

    def test_short_names_keep_readable_layout(self, state_file):
        store = CursorStore(state_file)
        name = 'y' * 200

        assert store.path_for(name).name == 'cursor_' + name


class TestCursorLoad:
    """Test reading cursors."""

    def test_missing_file_is_absent(self, state_file):
        assert CursorStore(state_file).load('never-fetched') is None

    def test_reads_operator_seeded_token(self, state_file):
        store = CursorStore(state_file)
        store.path_for('seeded').parent.mkdir(parents=True, exist_ok=True)
        store.path_for('seeded').write_text('f/12345678901234567890\n')

        assert store.load('seeded') == 'f/12345678901234567890'

    def test_empty_file_is_absent(self, state_file):
        store = CursorStore(state_file)
        store.path_for('empty').parent.mkdir(parents=True, exist_ok=True)
        store.path_for('empty').write_text('  \n')

        assert store.load('empty') is None

    def test_multi_line_file_is_corrupt(self, state_file):
        store = CursorStore(state_file)
        store.path_for('torn').parent.mkdir(parents=True, exist_ok=True)
        store.path_for('torn').write_text('f/123\nf/456\n')

        with pytest.raises(CorruptCursorError):
            store.load('torn')

    def test_binary_garbage_is_corrupt(self, state_file):
        store = CursorStore(state_file)
        store.path_for('garbage').parent.mkdir(parents=True, exist_ok=True)
        store.path_for('garbage').write_bytes(b'\xff\xfe\x00\x81')

        with pytest.raises(CorruptCursorError) as exc_info:
            store.load('garbage')

        assert isinstance(exc_info.value, PersistenceError)

    def test_unreadable_path_raises_persistence_error(self, state_file):
        store = CursorStore(state_file)
        # A directory where the cursor file should be
        store.path_for('dir').mkdir(parents=True)

        with pytest.raises(PersistenceError):
            store.load('dir')


class TestCursorSave:
    """Test writing cursors."""

    def test_save_then_load(self, state_file):
        store = CursorStore(state_file)
        store.save('app-stream', 'f/000111')

        assert store.load('app-stream') == 'f/000111'

    def test_file_holds_literal_token(self, state_file):
        store = CursorStore(state_file)
        store.save('app-stream', 'f/000111')

        assert store.path_for('app-stream').read_text() == 'f/000111'

    def test_save_overwrites(self, state_file):
        store = CursorStore(state_file)
        store.save('app-stream', 'f/1')
        store.save('app-stream', 'f/2')

        assert store.load('app-stream') == 'f/2'

    def test_save_creates_parent_directories(self, tmp_path):
        store = CursorStore(str(tmp_path / 'nested' / 'deeper' / 'state'))
        store.save('s', 'f/1')

        assert (tmp_path / 'nested' / 'deeper' / 'state_s').exists()

    def test_no_temporary_files_left_behind(self, state_file):
        store = CursorStore(state_file)
        store.save('app-stream', 'f/1')
        store.save('app-stream', 'f/2')

        directory = store.path_for('app-stream').parent
        assert sorted(p.name for p in directory.iterdir()) == ['cursor_app-stream']

    def test_failed_replace_keeps_previous_cursor(self, state_file):
        store = CursorStore(state_file)
        store.save('app-stream', 'f/good')

        with patch('log_poller.services.cursor_store.os.replace', side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError) as exc_info:
                store.save('app-stream', 'f/new')

        assert "disk full" in str(exc_info.value)
        assert store.load('app-stream') == 'f/good'
        directory = store.path_for('app-stream').parent
        assert [p.name for p in directory.iterdir()] == ['cursor_app-stream']

    def test_unwritable_directory_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')
        store = CursorStore(str(blocker / 'state'))

        with pytest.raises(PersistenceError):
            store.save('app-stream', 'f/1')
