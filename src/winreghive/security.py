"""
Registry access rights requested when a key is opened or created.

The hive layer does not interpret these bits; it hands `int(security)` to the
native backend unchanged. Values are the winnt.h constants, defined here so the
flags are usable on machines where `winreg` cannot be imported.
"""

import enum

__all__ = ["Security"]


class Security(enum.IntFlag):
    """Access mask for RegOpenKeyEx / RegCreateKeyEx (the `samDesired` argument)."""
    QUERY_VALUE = 0x0001
    SET_VALUE = 0x0002
    CREATE_SUB_KEY = 0x0004
    ENUMERATE_SUB_KEYS = 0x0008
    NOTIFY = 0x0010
    CREATE_LINK = 0x0020
    WOW64_64KEY = 0x0100  # Operate on the 64-bit registry view
    WOW64_32KEY = 0x0200  # Operate on the 32-bit registry view
    WOW64_RES = 0x0300

    # Standard rights
    DELETE = 0x00010000
    READ_CONTROL = 0x00020000
    WRITE_DAC = 0x00040000
    WRITE_OWNER = 0x00080000

    # Composites, as in winnt.h
    READ = READ_CONTROL | QUERY_VALUE | ENUMERATE_SUB_KEYS | NOTIFY  # KEY_READ, 0x20019
    WRITE = READ_CONTROL | SET_VALUE | CREATE_SUB_KEY  # KEY_WRITE, 0x20006
    EXECUTE = READ  # KEY_EXECUTE has the same value as KEY_READ
    ALL_ACCESS = (
        DELETE | READ_CONTROL | WRITE_DAC | WRITE_OWNER
        | QUERY_VALUE | SET_VALUE | CREATE_SUB_KEY | ENUMERATE_SUB_KEYS | NOTIFY | CREATE_LINK
    )  # KEY_ALL_ACCESS, 0xF003F
