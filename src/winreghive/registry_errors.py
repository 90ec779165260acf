from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Win32 error codes (WinError.h) that the hive layer distinguishes.
ERROR_SUCCESS = 0
ERROR_FILE_NOT_FOUND = 2
ERROR_PATH_NOT_FOUND = 3
ERROR_ACCESS_DENIED = 5
ERROR_SHARING_VIOLATION = 32
ERROR_FILE_EXISTS = 80
ERROR_DIR_NOT_EMPTY = 145
ERROR_BUSY = 170
ERROR_ALREADY_EXISTS = 183
ERROR_FILENAME_EXCED_RANGE = 206
ERROR_BADDB = 1009
ERROR_BADKEY = 1010
ERROR_REGISTRY_CORRUPT = 1015
ERROR_KEY_DELETED = 1018
ERROR_NOT_ALL_ASSIGNED = 1300
ERROR_PRIVILEGE_NOT_HELD = 1314


# Define custom exceptions
class RegistryError(Exception):
    """Base exception for all registry errors in this package."""
    def __init__(self, message: str, winerror: Optional[int] = None, strerror: Optional[str] = None):
        super().__init__(message)
        self.winerror = winerror
        self.strerror = strerror

    def __str__(self) -> str:
        """Return the primary message associated with this error."""
        return self.args[0] if self.args else self.__class__.__name__


class RegistryEncodingError(RegistryError, ValueError):
    """Raised when a path or name cannot be converted to a registry path."""
    pass


class RegistryInvalidPathError(RegistryError, ValueError):
    """Raised when a path is well-formed but not valid for the operation, such as deleting a hive root."""
    pass


class RegistryKeyNotFoundError(RegistryError, LookupError):
    """Raised when a key, a mounted hive or a hive file does not exist."""
    pass


class RegistryPermissionError(RegistryError, PermissionError):
    """Raised when a registry operation is denied due to insufficient rights or privileges."""
    pass


class RegistryKeyExistsError(RegistryError):
    """Raised when the target of a load or save already exists."""
    pass


class RegistryKeyNotEmptyError(RegistryError):
    """Raised when a non-recursive delete targets a key that has subkeys."""
    pass


class RegistryKeyInUseError(RegistryError):
    """Raised when a key (or a mounted hive) is held open and cannot be released."""
    pass


class RegistryKeyClosedError(RegistryError, ValueError):
    """Raised when a closed RegistryKey is used."""
    pass


# Map WindowsError codes to custom exceptions.
# Codes missing here fall back to RegistryError with the code preserved.
_ERROR_MAP = {
    ERROR_FILE_NOT_FOUND: RegistryKeyNotFoundError,
    ERROR_PATH_NOT_FOUND: RegistryKeyNotFoundError,
    ERROR_KEY_DELETED: RegistryKeyNotFoundError,  # handle refers to a key marked for deletion
    ERROR_ACCESS_DENIED: RegistryPermissionError,
    ERROR_PRIVILEGE_NOT_HELD: RegistryPermissionError,
    ERROR_NOT_ALL_ASSIGNED: RegistryPermissionError,
    ERROR_FILE_EXISTS: RegistryKeyExistsError,
    ERROR_ALREADY_EXISTS: RegistryKeyExistsError,
    ERROR_DIR_NOT_EMPTY: RegistryKeyNotEmptyError,
    ERROR_SHARING_VIOLATION: RegistryKeyInUseError,
    ERROR_BUSY: RegistryKeyInUseError,
    ERROR_FILENAME_EXCED_RANGE: RegistryError,  # path too long
    ERROR_BADDB: RegistryError,  # not a valid hive image
    ERROR_BADKEY: RegistryError,
    ERROR_REGISTRY_CORRUPT: RegistryError,
}


def _winerror(code: int, strerror: Optional[str] = None) -> OSError:
    """Build an OSError carrying a Win32 error code, as winreg raises them.

    Used for failures reported as status codes (advapi32 calls) or detected
    before the native call is made.
    """
    error = OSError(code, strerror or f"Windows error {code}")
    error.winerror = code
    return error


def _handle_winreg_error(e: OSError, path: str, file_path: Optional[str] = None):
    """Translate a Windows OSError into a custom RegistryError.

    Args:
        e (OSError): The original exception raised by a backend call.
        path (str): The registry key path involved (including the hive name).
        file_path (Optional[str]): The hive file involved, for load and save.

    Raises:
        RegistryError or subclass: The mapped exception wrapping original winerror.
    """
    # If the caught exception is already a specific RegistryError subclass
    # (RegistryPermissionError is also an OSError), re-raise it unchanged.
    if isinstance(e, RegistryError):
        raise e

    err_code = getattr(e, 'winerror', None)
    custom_exception_type = _ERROR_MAP.get(err_code, RegistryError)

    message = f"Registry operation failed on key '{path}'"
    if file_path is not None:
        message += f", file '{file_path}'"
    # Include winerror and strerror in the message for quick debugging
    if err_code is not None:
        message += f" (WinError {err_code}: {e.strerror})"
    elif e.strerror:
        message += f" ({e.strerror})"

    if custom_exception_type is RegistryKeyNotEmptyError:
        message = f"Registry key '{path}' has subkeys. " + message

    logger.debug(
        "Mapping WinError %s (%r) for key '%s'%s → %s",
        err_code,
        e.strerror,
        path,
        (f", file '{file_path}'" if file_path else ""),
        custom_exception_type.__name__
    )
    raise custom_exception_type(message, winerror=err_code, strerror=e.strerror) from e
