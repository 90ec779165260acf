"""Provides the primary public interface: the registry hives.

`Hive` enumerates the seven predefined root keys of the Windows registry and is
the entry point for every key lifecycle operation: open, create, delete, load
and unload of external hive files, and saving a hive to disk.

Each operation first converts its path arguments with `encode_path`; an
encoding failure raises `RegistryEncodingError` before the native backend is
called. Backend failures are translated into the `RegistryError` hierarchy.
Nothing is retried.

Usage::

    with Hive.CURRENT_USER.create(r"Software\\ExampleApp", Security.READ | Security.WRITE) as key:
        ...
    Hive.CURRENT_USER.delete(r"Software\\ExampleApp")
""" # noqa: E501
import enum
import logging
from contextlib import nullcontext
from typing import Optional

from .native_backend import RegistryBackend, WinregBackend
from .path_codec import encode_path
from .privileges import enable_privilege, SE_BACKUP_NAME, SE_RESTORE_NAME
from .registry_errors import RegistryInvalidPathError, _handle_winreg_error
from .registry_key import RegistryKey
from .security import Security

logger = logging.getLogger(__name__)

__all__ = ["Hive", "normalize_hive", "get_backend", "set_backend"]

# Predefined root key handles (winreg.h). winreg does not export
# HKEY_CURRENT_USER_LOCAL_SETTINGS, and is unavailable off Windows.
HKEY_CLASSES_ROOT = 0x80000000
HKEY_CURRENT_USER = 0x80000001
HKEY_LOCAL_MACHINE = 0x80000002
HKEY_USERS = 0x80000003
HKEY_PERFORMANCE_DATA = 0x80000004
HKEY_CURRENT_CONFIG = 0x80000005
HKEY_CURRENT_USER_LOCAL_SETTINGS = 0x80000007

# Default backend. WinregBackend holds no state, so one instance serves every thread.
_DEFAULT_BACKEND = WinregBackend()
# Backend installed with set_backend; None selects the default
_backend: Optional[RegistryBackend] = None


def get_backend() -> RegistryBackend:
    """Return the backend used by all hive operations: the one installed with set_backend, or the winreg backend."""
    return _backend if _backend is not None else _DEFAULT_BACKEND


def set_backend(backend: Optional[RegistryBackend]) -> Optional[RegistryBackend]:
    """Install the backend used by subsequent hive operations.

    Keys that are already open keep the backend that created them.

    Args:
        backend (Optional[RegistryBackend]): The new backend; None restores the
            default winreg backend.

    Returns:
        Optional[RegistryBackend]: The previously installed backend.
    """
    global _backend
    previous, _backend = _backend, backend
    return previous


class Hive(enum.Enum):
    """The predefined root keys of the registry. Each member's value is its native handle."""
    CLASSES_ROOT = HKEY_CLASSES_ROOT
    CURRENT_CONFIG = HKEY_CURRENT_CONFIG
    CURRENT_USER = HKEY_CURRENT_USER
    CURRENT_USER_LOCAL_SETTINGS = HKEY_CURRENT_USER_LOCAL_SETTINGS
    LOCAL_MACHINE = HKEY_LOCAL_MACHINE
    PERFORMANCE_DATA = HKEY_PERFORMANCE_DATA
    USERS = HKEY_USERS

    @property
    def handle(self) -> int:
        """The native predefined root handle (e.g. 0x80000001 for HKEY_CURRENT_USER)."""
        return self.value

    def __str__(self) -> str:
        return f"HKEY_{self.name}"

    def _full_path(self, path: str) -> str:
        return f"{self}\\{path}" if path else str(self)

    def open(self, path, security: Security | int = Security.READ) -> RegistryKey:
        """Open an existing key under this hive.

        Args:
            path: Key path relative to the hive (str, bytes, os.PathLike, ...).
            security (Security | int): Requested access rights, passed to the
                backend unchanged. Defaults to Security.READ.

        Returns:
            RegistryKey: The open key; close it or use it as a context manager.

        Raises:
            RegistryEncodingError: If path cannot be encoded.
            RegistryKeyNotFoundError: If the key does not exist.
            RegistryPermissionError: If the requested access is denied.
            RegistryError: For other registry errors.
        """
        encoded = encode_path(path)
        backend = get_backend()
        logger.debug(f"Opening '{self._full_path(encoded)}' with access {int(security):#x}.")
        try:
            handle = backend.open_key(self.handle, encoded, int(security))
        except OSError as e:
            _handle_winreg_error(e, self._full_path(encoded))
        return RegistryKey(self, handle, encoded, backend)

    def create(self, path, security: Security | int = Security.READ | Security.WRITE) -> RegistryKey:
        """Open a key under this hive, creating it and any missing parents first.

        Calling this on an existing key succeeds and returns a handle to it.

        Args:
            path: Key path relative to the hive.
            security (Security | int): Requested access rights. Defaults to
                Security.READ | Security.WRITE.

        Returns:
            RegistryKey: The open key.

        Raises:
            RegistryEncodingError: If path cannot be encoded.
            RegistryPermissionError: If creation or the requested access is denied.
            RegistryError: For other registry errors.
        """
        encoded = encode_path(path)
        backend = get_backend()
        logger.debug(f"Creating '{self._full_path(encoded)}' with access {int(security):#x}.")
        try:
            handle = backend.create_key(self.handle, encoded, int(security))
        except OSError as e:
            _handle_winreg_error(e, self._full_path(encoded))
        return RegistryKey(self, handle, encoded, backend)

    def delete(self, path, is_recursive: bool = False) -> None:
        """Delete a key under this hive. The key does not have to be open.

        A recursive delete is irreversible and not atomic: if it fails, some
        descendants may already be gone. It is never retried here.

        Args:
            path: Key path relative to the hive; cannot be empty.
            is_recursive (bool): Delete the key together with its entire
                subtree. When False the key must have no subkeys.

        Raises:
            RegistryEncodingError: If path cannot be encoded.
            RegistryInvalidPathError: If path is empty (the hive root cannot be deleted).
            RegistryKeyNotFoundError: If the key does not exist.
            RegistryKeyNotEmptyError: If the key has subkeys and is_recursive is False.
            RegistryPermissionError: If delete access is denied.
            RegistryError: For other registry errors.
        """
        encoded = encode_path(path)
        if not encoded.strip("\\"):
            raise RegistryInvalidPathError(f"Cannot delete the root of {self}.")

        backend = get_backend()
        if is_recursive:
            logger.info(f"Recursively deleting '{self._full_path(encoded)}'.")
        else:
            logger.debug(f"Deleting '{self._full_path(encoded)}'.")
        try:
            backend.delete_key(self.handle, encoded, is_recursive)
        except OSError as e:
            _handle_winreg_error(e, self._full_path(encoded))

    def load(self, name, path, *, acquire_privileges: bool = False) -> None:
        """Mount a hive file from disk as key `name` under this hive.

        The mount is visible system-wide. Only HKEY_USERS and HKEY_LOCAL_MACHINE
        accept mounts; the native API rejects the others.

        Args:
            name: Name of the key to mount the hive as; must not exist yet.
            path: Path of the hive file.
            acquire_privileges (bool): Enable SeRestorePrivilege and
                SeBackupPrivilege for the call. When False the caller must
                have enabled them already.

        Raises:
            RegistryEncodingError: If name or path cannot be encoded.
            RegistryKeyNotFoundError: If the hive file does not exist.
            RegistryKeyExistsError: If `name` already exists.
            RegistryPermissionError: If the required privileges are not held.
            RegistryError: For other registry errors (e.g. not a valid hive file).
        """
        encoded_name = encode_path(name)
        encoded_path = encode_path(path)
        backend = get_backend()
        logger.info(f"Loading hive file '{encoded_path}' as '{self._full_path(encoded_name)}'.")
        try:
            with enable_privilege(SE_RESTORE_NAME, SE_BACKUP_NAME) if acquire_privileges else nullcontext():
                backend.load_key(self.handle, encoded_name, encoded_path)
        except OSError as e:
            _handle_winreg_error(e, self._full_path(encoded_name), file_path=encoded_path)

    def unload(self, path, *, acquire_privileges: bool = False) -> None:
        """Detach a hive previously mounted with `load`.

        Every RegistryKey under the mount, in any process, must be closed first.

        Args:
            path: Name of the mounted key.
            acquire_privileges (bool): Enable SeRestorePrivilege and
                SeBackupPrivilege for the call.

        Raises:
            RegistryEncodingError: If path cannot be encoded.
            RegistryKeyNotFoundError: If nothing is mounted at path.
            RegistryKeyInUseError: If keys under the mount are still open.
            RegistryPermissionError: If the required privileges are not held.
            RegistryError: For other registry errors.
        """
        encoded = encode_path(path)
        backend = get_backend()
        logger.info(f"Unloading hive mounted at '{self._full_path(encoded)}'.")
        try:
            with enable_privilege(SE_RESTORE_NAME, SE_BACKUP_NAME) if acquire_privileges else nullcontext():
                backend.unload_key(self.handle, encoded)
        except OSError as e:
            _handle_winreg_error(e, self._full_path(encoded))

    def write(self, file_path, *, acquire_privileges: bool = False) -> None:
        """Save this hive to a hive file on disk.

        Args:
            file_path: Destination file; must not exist yet.
            acquire_privileges (bool): Enable SeBackupPrivilege for the call.

        Raises:
            RegistryEncodingError: If file_path cannot be encoded.
            RegistryKeyExistsError: If the destination file already exists.
            RegistryPermissionError: If the required privilege is not held.
            RegistryError: For other registry errors.
        """
        encoded_file = encode_path(file_path)
        backend = get_backend()
        logger.info(f"Saving '{self}' to '{encoded_file}'.")
        try:
            with enable_privilege(SE_BACKUP_NAME) if acquire_privileges else nullcontext():
                backend.save_key(self.handle, encoded_file)
        except OSError as e:
            _handle_winreg_error(e, str(self), file_path=encoded_file)


# Names accepted by normalize_hive, in addition to the full HKEY_* names
_HIVE_ABBREVIATIONS = {
    "HKCR": Hive.CLASSES_ROOT,
    "HKCC": Hive.CURRENT_CONFIG,
    "HKCU": Hive.CURRENT_USER,
    "HKLM": Hive.LOCAL_MACHINE,
    "HKU": Hive.USERS,
}


def normalize_hive(identifier: Hive | int | str) -> Hive:
    """
    Resolve a hive from a Hive member, a native root handle, or a name.

    Names are case-insensitive and may be full ("HKEY_LOCAL_MACHINE") or
    abbreviated ("HKLM").
    """
    if isinstance(identifier, Hive):
        return identifier
    elif isinstance(identifier, int):
        try:
            return Hive(identifier)
        except ValueError:
            raise ValueError(f"Unknown root key handle: {identifier:#x}") from None
    elif isinstance(identifier, str):
        key_upper = identifier.upper()
        if key_upper in _HIVE_ABBREVIATIONS:
            return _HIVE_ABBREVIATIONS[key_upper]
        if key_upper.startswith("HKEY_") and key_upper[5:] in Hive.__members__:
            return Hive[key_upper[5:]]
        valid = [str(hive) for hive in Hive] + list(_HIVE_ABBREVIATIONS)
        raise ValueError(f"Unknown root key: {identifier}. Valid keys are: {', '.join(valid)}")
    else:
        raise TypeError("Root key must be a Hive, an integer or a string")
