"""
Conversion of path-like inputs into registry key paths.

Every hive operation runs its path and name arguments through `encode_path`
before anything is handed to the native backend, so a bad input never reaches
the registry. The result, `EncodedPath`, is a plain `str` that is known to be
free of NUL characters and representable in the UTF-16 form the Windows
registry API expects.
"""

import os
import logging
from typing import Protocol, Union, runtime_checkable

from .registry_errors import RegistryEncodingError

logger = logging.getLogger(__name__)

__all__ = ["EncodedPath", "SupportsRegistryPath", "encode_path"]


class EncodedPath(str):
    """A registry path or hive file name that passed `encode_path` validation."""
    __slots__ = ()

    def __repr__(self) -> str:
        return f"EncodedPath({str.__repr__(self)})"


@runtime_checkable
class SupportsRegistryPath(Protocol):
    """Objects that know how to present themselves as a registry path.

    `__registry_path__` may return a str, bytes, os.PathLike or EncodedPath;
    the result is validated like any other input.
    """
    def __registry_path__(self) -> Union[str, bytes, "os.PathLike[str]", "os.PathLike[bytes]"]:
        ...


def _validate(text: str) -> EncodedPath:
    if "\0" in text:
        raise RegistryEncodingError(
            f"Registry path {text!r} contains an embedded NUL character at index {text.index(chr(0))}."
        )
    try:
        # The native API takes UTF-16; lone surrogates have no UTF-16 form.
        text.encode("utf-16-le")
    except UnicodeEncodeError as e:
        raise RegistryEncodingError(
            f"Registry path {text!r} cannot be represented as UTF-16: {e.reason}",
            strerror=e.reason,
        ) from e
    return EncodedPath(text)


def encode_path(value) -> EncodedPath:
    """Convert a path-like value into a validated registry path.

    Args:
        value: An EncodedPath, str, bytes (UTF-8), os.PathLike, or an object
            implementing `__registry_path__`.

    Returns:
        EncodedPath: The validated path text.

    Raises:
        RegistryEncodingError: If the value has an unsupported type, holds an
            embedded NUL, is undecodable bytes, or is not representable as UTF-16.
    """
    if isinstance(value, EncodedPath):
        return value

    if isinstance(value, SupportsRegistryPath):
        value = value.__registry_path__()
        if isinstance(value, SupportsRegistryPath):
            raise RegistryEncodingError(
                f"__registry_path__ returned another path provider ({type(value).__name__})."
            )
        return encode_path(value)

    if isinstance(value, os.PathLike):
        value = os.fspath(value)

    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RegistryEncodingError(
                f"Registry path {value!r} is not valid UTF-8: {e.reason}",
                strerror=e.reason,
            ) from e

    if not isinstance(value, str):
        raise RegistryEncodingError(
            f"Cannot use a value of type {type(value).__name__} as a registry path."
        )

    return _validate(value)
