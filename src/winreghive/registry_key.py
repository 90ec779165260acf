from contextlib import nullcontext
from typing import Any, Optional, Type, TYPE_CHECKING
import logging

from .path_codec import EncodedPath, encode_path
from .privileges import enable_privilege, SE_BACKUP_NAME
from .registry_errors import RegistryKeyClosedError, _handle_winreg_error

if TYPE_CHECKING:
    from .hive import Hive
    from .native_backend import RegistryBackend

logger = logging.getLogger(__name__)


class RegistryKey:
    """An open registry key, exclusively owning its native handle.

    Instances are returned by `Hive.open` and `Hive.create`; they are not meant
    to be constructed directly. The handle is released by `close()` or on exit
    from a `with` block. Closing more than once is a no-op.

    Attributes:
        _hive (Hive): The hive the key was opened under.
        _path (EncodedPath): The path used to reach the key, relative to the hive.
        _backend (RegistryBackend): The backend that produced the handle.
        _handle (Optional[Any]): The native handle, None once closed.
    """
    def __init__(self, hive: "Hive", handle: Any, path: EncodedPath, backend: "RegistryBackend"):
        self._hive = hive
        self._path = path
        self._backend = backend
        self._handle: Optional[Any] = handle

    @property
    def hive(self) -> "Hive":
        return self._hive

    @property
    def path(self) -> EncodedPath:
        """The path of the key relative to its hive."""
        return self._path

    @property
    def full_path(self) -> str:
        """The path including the hive name, e.g. 'HKEY_CURRENT_USER\\Software\\MyApp'."""
        return f"{self._hive}\\{self._path}" if self._path else str(self._hive)

    @property
    def closed(self) -> bool:
        return self._handle is None

    @property
    def handle(self) -> Any:
        """The native handle.

        Raises:
            RegistryKeyClosedError: If the key has been closed.
        """
        if self._handle is None:
            raise RegistryKeyClosedError(f"Registry key '{self.full_path}' is closed.")
        return self._handle

    def close(self) -> None:
        """Release the native handle. Calling this on a closed key does nothing."""
        handle, self._handle = self._handle, None  # Ensure it's not closed again
        if handle is None:
            return
        try:
            self._backend.close_key(handle)
        except OSError as e:
            # DEBUG: report any problem closing the handle
            logger.debug(
                "Failed to close registry key handle for '%s': WinError %s: %s",
                self.full_path,
                getattr(e, "winerror", None),
                e.strerror or e,
            )

    def save(self, file_path, *, acquire_privileges: bool = False) -> None:
        """Save the subtree rooted at this key to a hive file.

        Args:
            file_path: Destination file; must not exist yet.
            acquire_privileges (bool): Enable SeBackupPrivilege for the call.

        Raises:
            RegistryEncodingError: If file_path cannot be encoded.
            RegistryKeyClosedError: If the key has been closed.
            RegistryKeyExistsError: If the destination file already exists.
            RegistryPermissionError: If SeBackupPrivilege is not enabled.
            RegistryError: For other registry errors.
        """
        encoded_file = encode_path(file_path)
        handle = self.handle
        logger.info(f"Saving registry key '{self.full_path}' to '{encoded_file}'.")
        try:
            with enable_privilege(SE_BACKUP_NAME) if acquire_privileges else nullcontext():
                self._backend.save_key(handle, encoded_file)
        except OSError as e:
            _handle_winreg_error(e, self.full_path, file_path=encoded_file)

    def __enter__(self) -> "RegistryKey":
        return self

    def __exit__(self,
                 exc_type: Optional[Type[BaseException]],
                 exc_val: Optional[BaseException],
                 exc_tb: Optional[Any]) -> None:
        """Close the registry key handle on context exit."""
        self.close()

    def __copy__(self):
        raise TypeError("RegistryKey owns its native handle and cannot be copied.")

    def __deepcopy__(self, memo):
        raise TypeError("RegistryKey owns its native handle and cannot be copied.")

    def __str__(self) -> str:
        return self.full_path

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<RegistryKey {self.full_path!r} ({state})>"
