# -*- coding: utf-8 -*-
"""
This module enables token privileges for the current process on Microsoft
Windows. Loading, unloading and saving hives require SeRestorePrivilege and/or
SeBackupPrivilege; an administrator token holds them, but disabled.
It uses the ctypes module to interact directly with the Windows API.
"""

import ctypes
import sys
import logging
from contextlib import contextmanager
from ctypes import wintypes
from typing import Iterator, Optional, Type
from types import TracebackType

from .registry_errors import RegistryError, RegistryPermissionError, ERROR_NOT_ALL_ASSIGNED

# Configure logging for this module
logger = logging.getLogger(__name__)

__all__ = ["enable_privilege", "SE_BACKUP_NAME", "SE_RESTORE_NAME"]

# --- Define necessary Windows API constants and structures ---
# (winnt.h)

SE_BACKUP_NAME = "SeBackupPrivilege"
SE_RESTORE_NAME = "SeRestorePrivilege"

# Access rights for OpenProcessToken
TOKEN_QUERY = 0x0008
TOKEN_ADJUST_PRIVILEGES = 0x0020

# Privilege attributes
SE_PRIVILEGE_DISABLED = 0x00000000
SE_PRIVILEGE_ENABLED = 0x00000002


class LUID(ctypes.Structure):
    """Locally unique identifier of a privilege."""
    _fields_ = [
        ('LowPart', wintypes.DWORD),
        ('HighPart', wintypes.LONG),
    ]


class LUID_AND_ATTRIBUTES(ctypes.Structure):
    _fields_ = [
        ('Luid', LUID),
        ('Attributes', wintypes.DWORD),
    ]


class TOKEN_PRIVILEGES(ctypes.Structure):
    """Privilege set with room for a single entry, which is all we adjust at a time."""
    _fields_ = [
        ('PrivilegeCount', wintypes.DWORD),
        ('Privileges', LUID_AND_ATTRIBUTES * 1),
    ]


# --- Load necessary Windows API libraries and define function signatures ---
if sys.platform == "win32":
    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    advapi32 = ctypes.WinDLL("advapi32", use_last_error=True)

    # HANDLE GetCurrentProcess();
    kernel32.GetCurrentProcess.restype = wintypes.HANDLE

    # BOOL CloseHandle(HANDLE hObject);
    kernel32.CloseHandle.argtypes = [wintypes.HANDLE]
    kernel32.CloseHandle.restype = wintypes.BOOL

    # BOOL OpenProcessToken(HANDLE ProcessHandle, DWORD DesiredAccess, PHANDLE TokenHandle);
    advapi32.OpenProcessToken.argtypes = [
        wintypes.HANDLE, wintypes.DWORD, ctypes.POINTER(wintypes.HANDLE)
    ]
    advapi32.OpenProcessToken.restype = wintypes.BOOL

    # BOOL LookupPrivilegeValueW(LPCWSTR lpSystemName, LPCWSTR lpName, PLUID lpLuid);
    advapi32.LookupPrivilegeValueW.argtypes = [
        wintypes.LPCWSTR, wintypes.LPCWSTR, ctypes.POINTER(LUID)
    ]
    advapi32.LookupPrivilegeValueW.restype = wintypes.BOOL

    # BOOL AdjustTokenPrivileges(HANDLE TokenHandle, BOOL DisableAllPrivileges,
    #                            PTOKEN_PRIVILEGES NewState, DWORD BufferLength,
    #                            PTOKEN_PRIVILEGES PreviousState, PDWORD ReturnLength);
    advapi32.AdjustTokenPrivileges.argtypes = [
        wintypes.HANDLE, wintypes.BOOL, ctypes.POINTER(TOKEN_PRIVILEGES), wintypes.DWORD,
        ctypes.POINTER(TOKEN_PRIVILEGES), ctypes.POINTER(wintypes.DWORD)
    ]
    advapi32.AdjustTokenPrivileges.restype = wintypes.BOOL
else:
    kernel32 = None
    advapi32 = None


def _last_error() -> int:
    error_code = ctypes.get_last_error()
    ctypes.set_last_error(0)  # Clear the error after getting it
    return error_code


class ProcessToken:
    """
    Context manager that opens the current process's access token and closes
    it with CloseHandle on exit.

    Raises RegistryError if the token cannot be opened.
    """
    def __init__(self, access: int = TOKEN_ADJUST_PRIVILEGES | TOKEN_QUERY):
        process_handle = kernel32.GetCurrentProcess()  # Pseudo-handle, doesn't need closing
        self._handle = wintypes.HANDLE(0)

        if not advapi32.OpenProcessToken(process_handle, access, ctypes.byref(self._handle)):
            error_code = _last_error()
            logger.error(f"Failed to open process token. Error code: {error_code}")
            raise RegistryError("Failed to open process token", winerror=error_code)

    def __enter__(self) -> wintypes.HANDLE:
        return self._handle

    def __exit__(self,
                 exc_type: Optional[Type[BaseException]],
                 exc_val: Optional[BaseException],
                 exc_tb: Optional[TracebackType]) -> None:
        if self._handle.value:
            kernel32.CloseHandle(self._handle)
            self._handle = wintypes.HANDLE(0)


def _lookup_privilege(name: str) -> LUID:
    luid = LUID()
    if not advapi32.LookupPrivilegeValueW(None, name, ctypes.byref(luid)):
        error_code = _last_error()
        raise RegistryError(f"Unknown privilege '{name}'", winerror=error_code)
    return luid


def _set_privilege(token: wintypes.HANDLE, name: str, enable: bool) -> bool:
    """Enable or disable a single privilege on the token.

    Returns:
        bool: True if the privilege state actually changed.
    """
    new_state = TOKEN_PRIVILEGES()
    new_state.PrivilegeCount = 1
    new_state.Privileges[0].Luid = _lookup_privilege(name)
    new_state.Privileges[0].Attributes = SE_PRIVILEGE_ENABLED if enable else SE_PRIVILEGE_DISABLED

    previous_state = TOKEN_PRIVILEGES()
    return_length = wintypes.DWORD()

    success = advapi32.AdjustTokenPrivileges(
        token,
        False,
        ctypes.byref(new_state),
        ctypes.sizeof(previous_state),
        ctypes.byref(previous_state),
        ctypes.byref(return_length),
    )
    # AdjustTokenPrivileges reports success even when the token does not hold
    # the privilege; that case is only visible through the last error.
    error_code = _last_error()
    if not success:
        logger.error(f"AdjustTokenPrivileges failed for '{name}'. Error code: {error_code}")
        raise RegistryError(f"Failed to adjust privilege '{name}'", winerror=error_code)
    if error_code == ERROR_NOT_ALL_ASSIGNED:
        raise RegistryPermissionError(
            f"The process token does not hold privilege '{name}'; hive load, unload and save "
            f"operations require an elevated (administrator) process.",
            winerror=error_code,
        )

    # PreviousState lists only the privileges whose state was changed.
    changed = previous_state.PrivilegeCount > 0
    logger.debug(f"Privilege '{name}' {'enabled' if enable else 'disabled'} (changed: {changed}).")
    return changed


@contextmanager
def enable_privilege(*names: str) -> Iterator[None]:
    """
    Enable token privileges for the duration of a `with` block.

    Privileges that were disabled before are disabled again on exit; ones that
    were already enabled are left alone.

    Args:
        *names (str): Privilege names, e.g. SE_RESTORE_NAME, SE_BACKUP_NAME.

    Raises:
        NotImplementedError: If run on a non-Windows operating system.
        RegistryPermissionError: If the process token does not hold a privilege.
        RegistryError: If any underlying Windows API call fails.
    """
    if sys.platform != "win32":
        raise NotImplementedError("This function requires Windows (win32).")

    with ProcessToken() as token:
        changed = []
        try:
            for name in names:
                if _set_privilege(token, name, enable=True):
                    changed.append(name)
            yield
        finally:
            for name in reversed(changed):
                _set_privilege(token, name, enable=False)
