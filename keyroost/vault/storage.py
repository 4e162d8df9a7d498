"""
Vault Storage — Reading and atomically replacing vault files.

A save writes a temporary file next to the target, fsyncs it and renames
it over the target, so the previous vault survives any failed write.
"""
import os
import logging
import tempfile
from pathlib import Path
from typing import Union

from ..exceptions import IoFailure

logger = logging.getLogger("keyroost.vault")

PathLike = Union[str, os.PathLike]


def read_file(path: PathLike) -> bytes:
    """Read a whole vault file.

    Raises:
        IoFailure: If the file is missing or unreadable.
    """
    path = Path(path)
    try:
        return path.read_bytes()
    except FileNotFoundError as err:
        raise IoFailure(f"Vault file {path} does not exist") from err
    except OSError as err:
        raise IoFailure(f"Cannot read vault file {path}: {err}") from err


def _sync_directory(directory: Path) -> None:
    """Flush a directory entry so a completed rename survives a crash.

    Platforms that cannot open directories (Windows) only get a warning;
    the file itself is already durable at this point.
    """
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError as err:
        logger.warning("Cannot open %s to sync it: %s", directory, err)
        return
    try:
        os.fsync(fd)
    except OSError as err:
        logger.warning("Cannot sync directory %s: %s", directory, err)
    finally:
        os.close(fd)


def write_atomic(path: PathLike, data: bytes) -> None:
    """Replace path with data, never leaving a partial file behind.

    The temporary file is created with mode 0600 in the target directory
    so the final rename stays on one filesystem. The directory is synced
    after the rename.

    Raises:
        IoFailure: If any step fails; the previous file is untouched.
    """
    path = Path(path)
    directory = path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=directory,
        )
    except OSError as err:
        raise IoFailure(
            f"Cannot create temporary file in {directory}: {err}"
        ) from err
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except OSError as err:
        try:
            os.unlink(tmp_name)
        except OSError:
            logger.warning("Could not remove temporary file %s", tmp_name)
        raise IoFailure(f"Cannot write vault file {path}: {err}") from err
    _sync_directory(directory)
    logger.debug("Wrote %d bytes to %s", len(data), path)
