"""
Remote storage — Opaque blob stores holding a copy of the vault.

The core only ever fetches or uploads whole envelope bytes; transport
security is the backend's concern.
"""
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..exceptions import IoFailure, NotFound
from ..vault.config import VAULT_FILE_DEFAULT
from ..vault.storage import PathLike, write_atomic

logger = logging.getLogger("keyroost.sync")


@runtime_checkable
class RemoteStorage(Protocol):
    """Capability interface every sync backend implements."""

    def fetch(self) -> bytes:
        """Return the remote vault bytes.

        Raises:
            NotFound: If the remote holds no vault yet.
            IoFailure: If the remote cannot be read.
        """
        ...

    def upload(self, data: bytes) -> None:
        """Replace the remote vault with data.

        Raises:
            IoFailure: If the upload fails.
        """
        ...


class FolderRemote:
    """A vault copy inside a cloud-synced folder (Dropbox style).

    The sync client of the folder provider moves the file; this backend
    only reads and atomically replaces it.
    """

    def __init__(self, folder: PathLike, filename: str = VAULT_FILE_DEFAULT):
        self._path = Path(folder).expanduser() / filename

    def __repr__(self) -> str:
        return f"<FolderRemote path={self._path}>"

    @property
    def path(self) -> Path:
        return self._path

    def fetch(self) -> bytes:
        try:
            data = self._path.read_bytes()
        except FileNotFoundError:
            raise NotFound(
                str(self._path), f"No remote vault at {self._path}"
            ) from None
        except OSError as err:
            raise IoFailure(
                f"Cannot read remote vault {self._path}: {err}"
            ) from err
        logger.debug("Fetched %d bytes from %s", len(data), self._path)
        return data

    def upload(self, data: bytes) -> None:
        write_atomic(self._path, data)
        logger.debug("Uploaded %d bytes to %s", len(data), self._path)
