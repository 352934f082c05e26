"""
File store module.

Flat directory holding uploaded files. Uploads are first written to a staged
file named ``.upload.<random>.part`` in the same directory and renamed to
their final name on commit, so listings never see a partially written file.

None of these methods lock anything; mutations go through the store
coordinator.
"""

import os
import tempfile
from pathlib import Path
from typing import List

from common.constants import ALLOWED_EXTENSION, STAGING_PREFIX, STAGING_SUFFIX
from common.protocol_definitions import StoredFile, is_plain_filename


class FileStore:
    """Directory of uploaded files."""

    def __init__(self, root: str, extension: str = ALLOWED_EXTENSION):
        self.root = Path(root)
        self.extension = extension

    def ensure(self):
        """Create the store directory if needed."""
        self.root.mkdir(parents=True, exist_ok=True)

    def is_allowed_name(self, name: str) -> bool:
        """Check the filename carries the required extension."""
        return name.endswith(self.extension)

    def path_for(self, name: str) -> Path:
        if not is_plain_filename(name):
            raise ValueError(f"Invalid filename: {name!r}")
        return self.root / name

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def size(self, name: str) -> int:
        return self.path_for(name).stat().st_size

    def list_files(self) -> List[str]:
        """Names of committed files with the allowed extension, sorted."""
        names = []
        for entry in self.root.iterdir():
            if entry.name.endswith(self.extension) and entry.is_file():
                names.append(entry.name)
        return sorted(names)

    def create_staging(self, name: str) -> Path:
        """Create an empty staged file for an upload of ``name``.

        The staged name does not embed ``name``, so any name that fits the
        filesystem limit can be staged.
        """
        fd, staged = tempfile.mkstemp(prefix=STAGING_PREFIX, suffix=STAGING_SUFFIX, dir=self.root)
        os.close(fd)
        return Path(staged)

    def commit(self, staged: Path, name: str) -> StoredFile:
        """Move a staged upload to its final name.

        The caller has already checked that ``name`` does not exist.
        """
        target = self.path_for(name)
        size = staged.stat().st_size
        os.replace(staged, target)
        return StoredFile(name, size)

    def discard(self, staged: Path):
        """Delete a staged or partially written file, if it is still there."""
        try:
            staged.unlink()
        except FileNotFoundError:
            pass

    def purge_staging(self) -> int:
        """Remove staged uploads left behind by a previous run."""
        removed = 0
        for entry in self.root.glob(f'.*{STAGING_SUFFIX}'):
            if entry.is_file():
                self.discard(entry)
                removed += 1
        return removed
