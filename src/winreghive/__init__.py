# Import the public interface components
from .hive import Hive, normalize_hive, get_backend, set_backend
from .registry_key import RegistryKey
from .security import Security
from .path_codec import EncodedPath, SupportsRegistryPath, encode_path
from .native_backend import RegistryBackend, WinregBackend
from .privileges import enable_privilege, SE_BACKUP_NAME, SE_RESTORE_NAME
from .registry_errors import (
    RegistryError,
    RegistryEncodingError,
    RegistryInvalidPathError,
    RegistryKeyNotFoundError,
    RegistryPermissionError,
    RegistryKeyExistsError,
    RegistryKeyNotEmptyError,
    RegistryKeyInUseError,
    RegistryKeyClosedError,
)

__all__ = [
    "Hive",  # The main entry point
    "RegistryKey",
    "Security",
    "normalize_hive",
    # Backend selection
    "RegistryBackend",
    "WinregBackend",
    "get_backend",
    "set_backend",
    # Path conversion
    "EncodedPath",
    "SupportsRegistryPath",
    "encode_path",
    # Privileges needed by load/unload/write
    "enable_privilege",
    "SE_BACKUP_NAME",
    "SE_RESTORE_NAME",
    # Exception classes
    "RegistryError",
    "RegistryEncodingError",
    "RegistryInvalidPathError",
    "RegistryKeyNotFoundError",
    "RegistryPermissionError",
    "RegistryKeyExistsError",
    "RegistryKeyNotEmptyError",
    "RegistryKeyInUseError",
    "RegistryKeyClosedError",
]

# The package imports on any platform so that test doubles can stand in for the
# native backend; WinregBackend and enable_privilege raise NotImplementedError
# when used off Windows.

#Version Attribute
__version__ = "0.1.0"
