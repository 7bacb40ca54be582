"""
File-backed cursor storage, one file per log stream

Each file holds the literal nextForwardToken returned by CloudWatch Logs for
that stream, with no wrapping, so operators can inspect or seed it by hand.
"""

import hashlib
import logging
import os
import tempfile
import urllib.parse
from pathlib import Path
from typing import Optional

from log_poller.errors import CorruptCursorError, PersistenceError

logger = logging.getLogger(__name__)

# NAME_MAX on common Linux filesystems
MAX_FILENAME_BYTES = 255

# Quoted names only contain "%" followed by two hex digits, so this marker never
# appears in a readable cursor file name
HASHED_NAME_MARKER = "%sha256-"


class CursorStore:
    """
    Durable stream name -> continuation token mapping.

    The file for a stream lives at ``<state_file>_<stream>``, where the stream
    name is percent-encoded so that names containing ``/`` (for example Lambda
    streams like ``2024/01/01/[$LATEST]abc``) stay flat and never collide.
    Names whose encoded form would not fit in one file name keep a readable
    prefix and end with a SHA-256 digest of the full stream name.
    """

    def __init__(self, state_file: str):
        """
        Initialize the cursor store

        Args:
            state_file: Base path; per-stream files are created next to it
        """
        self.state_file = state_file

    def path_for(self, log_stream_name: str) -> Path:
        """Deterministic cursor file path for a stream"""
        quoted = urllib.parse.quote(log_stream_name, safe='')
        base_name = os.path.basename(self.state_file)
        file_name = f"{base_name}_{quoted}"
        if len(file_name.encode('utf-8')) > MAX_FILENAME_BYTES:
            digest = hashlib.sha256(log_stream_name.encode('utf-8')).hexdigest()
            room = MAX_FILENAME_BYTES - len(base_name.encode('utf-8')) - 1 - len(HASHED_NAME_MARKER) - len(digest)
            file_name = f"{base_name}_{quoted[:max(room, 0)]}{HASHED_NAME_MARKER}{digest}"
        return Path(os.path.dirname(self.state_file) or '.') / file_name

    def load(self, log_stream_name: str) -> Optional[str]:
        """
        Read the persisted cursor for a stream

        Returns:
            The token, or None when no cursor has been stored yet (missing or empty file)

        Raises:
            CorruptCursorError: If the file is not a single UTF-8 token
            PersistenceError: For other filesystem faults
        """
        path = self.path_for(log_stream_name)
        logger.debug(f"Loading cursor for stream '{log_stream_name}' from {path}")

        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read cursor file {path}: {str(e)}") from e

        try:
            token = raw.decode('utf-8').strip()
        except UnicodeDecodeError as e:
            raise CorruptCursorError(f"Cursor file {path} is not valid UTF-8") from e

        if not token:
            return None

        if '\n' in token or '\r' in token:
            raise CorruptCursorError(f"Cursor file {path} contains more than one line")

        logger.debug(f"Loaded cursor for stream '{log_stream_name}': {token}")
        return token

    def save(self, log_stream_name: str, token: str) -> None:
        """
        Atomically replace the persisted cursor for a stream

        The token is written to a temporary file in the same directory and
        renamed over the target, so readers see either the old or the new token.

        Raises:
            PersistenceError: If the cursor could not be written
        """
        path = self.path_for(log_stream_name)
        logger.debug(f"Storing cursor for stream '{log_stream_name}' in {path}: {token}")

        tmp_path = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix='.cursor-', suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(token)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise PersistenceError(f"Failed to write cursor file {path}: {str(e)}") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning(f"Could not remove temporary cursor file {tmp_path}")
