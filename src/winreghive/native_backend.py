# -*- coding: utf-8 -*-
"""
The native registry backend: the calls that actually touch the registry.

`RegistryBackend` is the contract the hive layer depends on. `WinregBackend`
implements it with the standard `winreg` module, falling back to advapi32 via
ctypes for the two entry points `winreg` does not expose (RegDeleteTreeW and
RegUnLoadKeyW).

Every method reports failure by raising OSError with a `winerror` attribute;
translation into RegistryError subclasses happens in the caller.
"""

import ctypes
import sys
import logging
from ctypes import wintypes
from typing import Any, Optional, Protocol

from .registry_errors import ERROR_SUCCESS, ERROR_ACCESS_DENIED, ERROR_DIR_NOT_EMPTY, _winerror

# Configure logging for this module
logger = logging.getLogger(__name__)

__all__ = ["RegistryBackend", "WinregBackend"]

# --- Platform Check ---
# Allow import on non-Windows platforms for tooling and test doubles,
# but raise NotImplementedError only when trying to use the functionality.
if sys.platform == "win32":
    import winreg

    # advapi32.dll holds the registry functions winreg does not wrap
    try:
        advapi32 = ctypes.WinDLL("advapi32", use_last_error=True)
    except AttributeError:
        raise OSError("Failed to load advapi32.dll. Ensure you are on Windows.")

    # LSTATUS RegDeleteTreeW(HKEY hKey, LPCWSTR lpSubKey);
    advapi32.RegDeleteTreeW.argtypes = [wintypes.HKEY, wintypes.LPCWSTR]
    advapi32.RegDeleteTreeW.restype = wintypes.LONG

    # LSTATUS RegUnLoadKeyW(HKEY hKey, LPCWSTR lpSubKey);
    advapi32.RegUnLoadKeyW.argtypes = [wintypes.HKEY, wintypes.LPCWSTR]
    advapi32.RegUnLoadKeyW.restype = wintypes.LONG
else:
    winreg = None
    advapi32 = None

# Access used to count subkeys before a non-recursive delete
_KEY_QUERY_VALUE = 0x0001


class RegistryBackend(Protocol):
    """The native entry points the hive layer calls into.

    `root` is always a predefined root handle (an int); `handle` is whatever
    `open_key`/`create_key` returned, or a root handle. Failures raise OSError
    with a `winerror` attribute.
    """
    def open_key(self, root: int, path: str, access: int) -> Any: ...

    def create_key(self, root: int, path: str, access: int) -> Any: ...

    def close_key(self, handle: Any) -> None: ...

    def delete_key(self, root: int, path: str, recursive: bool) -> None: ...

    def load_key(self, root: int, name: str, file_path: str) -> None: ...

    def unload_key(self, root: int, path: str) -> None: ...

    def save_key(self, handle: Any, file_path: str) -> None: ...


def _require_windows() -> None:
    if sys.platform != "win32":
        raise NotImplementedError("The winreg backend requires Windows (win32).")


def _as_hkey(root: int) -> wintypes.HKEY:
    """Convert a predefined root handle to an HKEY for ctypes calls.

    Predefined handles are 32-bit values that winreg.h sign-extends to pointer size.
    """
    if root & 0x80000000:
        root -= 1 << 32
    return wintypes.HKEY(root)


def _check_status(status: int, function_name: str) -> None:
    """Raise an OSError for a non-zero LSTATUS returned by an advapi32 call."""
    if status != ERROR_SUCCESS:
        logger.debug(f"{function_name} returned status {status}.")
        raise _winerror(status, ctypes.FormatError(status).strip())


class WinregBackend:
    """RegistryBackend over the live Windows registry."""

    def open_key(self, root: int, path: str, access: int) -> "winreg.HKEYType":
        _require_windows()
        # The returned PyHKEY is owned by the caller and released through close_key.
        return winreg.OpenKeyEx(root, path, 0, access)

    def create_key(self, root: int, path: str, access: int) -> "winreg.HKEYType":
        _require_windows()
        # CreateKeyEx opens the key if it exists and creates missing intermediate keys.
        return winreg.CreateKeyEx(root, path, 0, access)

    def close_key(self, handle: Any) -> None:
        _require_windows()
        winreg.CloseKey(handle)

    def delete_key(self, root: int, path: str, recursive: bool) -> None:
        _require_windows()
        if recursive:
            # RegDeleteTreeW removes the key, its values and every descendant.
            # It is not atomic: on failure part of the subtree may already be gone.
            _check_status(advapi32.RegDeleteTreeW(_as_hkey(root), path), "RegDeleteTreeW")
            return

        # RegDeleteKey refuses keys with subkeys with ERROR_ACCESS_DENIED,
        # which is indistinguishable from a real permission problem. Count first.
        num_subkeys = self._count_subkeys(root, path)
        if num_subkeys:
            raise _winerror(
                ERROR_DIR_NOT_EMPTY,
                f"The key has {num_subkeys} subkeys and cannot be deleted non-recursively.",
            )

        try:
            winreg.DeleteKey(root, path)
        except OSError as e:
            if getattr(e, "winerror", None) != ERROR_ACCESS_DENIED:
                raise
            # A subkey created after the count is also reported as ERROR_ACCESS_DENIED
            num_subkeys = self._count_subkeys(root, path)
            if not num_subkeys:
                raise
            raise _winerror(
                ERROR_DIR_NOT_EMPTY,
                f"The key has {num_subkeys} subkeys and cannot be deleted non-recursively.",
            ) from e

    def _count_subkeys(self, root: int, path: str) -> Optional[int]:
        """Return the number of subkeys of a key, or None if it cannot be queried.

        RegDeleteKey needs only DELETE access on the key, so a key that denies
        KEY_QUERY_VALUE can still be deleted; the count is skipped in that case.
        """
        try:
            handle = winreg.OpenKeyEx(root, path, 0, _KEY_QUERY_VALUE)
        except OSError as e:
            if getattr(e, "winerror", None) == ERROR_ACCESS_DENIED:
                logger.debug(f"Cannot query subkeys of '{path}'; deleting without the count.")
                return None
            raise
        try:
            num_subkeys, _, _ = winreg.QueryInfoKey(handle)
        finally:
            winreg.CloseKey(handle)
        return num_subkeys

    def load_key(self, root: int, name: str, file_path: str) -> None:
        _require_windows()
        winreg.LoadKey(root, name, file_path)

    def unload_key(self, root: int, path: str) -> None:
        _require_windows()
        _check_status(advapi32.RegUnLoadKeyW(_as_hkey(root), path), "RegUnLoadKeyW")

    def save_key(self, handle: Any, file_path: str) -> None:
        _require_windows()
        winreg.SaveKey(handle, file_path)
