import json
import os
from typing import Any, Dict, List, Optional, Tuple

import pytest

from winreghive.hive import Hive, set_backend
from winreghive.registry_errors import (
    ERROR_FILE_NOT_FOUND,
    ERROR_DIR_NOT_EMPTY,
    ERROR_BUSY,
    ERROR_ALREADY_EXISTS,
)

ERROR_INVALID_HANDLE = 6
ERROR_INVALID_PARAMETER = 87


def _os_error(code: int) -> OSError:
    # winreg raises OSError with the winerror attribute set
    error = OSError(code, f"Simulated Windows error {code}")
    error.winerror = code
    return error


class _Node:
    """One key of the in-memory registry. Child lookup is case-insensitive, like the registry."""
    def __init__(self, name: str):
        self.name = name
        self.values: Dict[str, Any] = {}
        self.children: Dict[str, "_Node"] = {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "values": dict(self.values),
            "children": {child.name: child.to_dict() for child in self.children.values()},
        }

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "_Node":
        node = cls(name)
        node.values = dict(data["values"])
        for child_name, child_data in data["children"].items():
            node.children[child_name.lower()] = cls.from_dict(child_name, child_data)
        return node


class FakeRegistryBackend:
    """In-memory RegistryBackend that records every call it receives.

    Hive files are written as JSON so that write/load round trips can be
    checked with tmp_path.
    """
    def __init__(self):
        self.roots: Dict[int, _Node] = {hive.handle: _Node(str(hive)) for hive in Hive}
        self.calls: List[Tuple] = []
        self.open_handles: Dict[int, Tuple[int, Tuple[str, ...]]] = {}
        self.mounts = set()
        self.close_error: Optional[OSError] = None
        self._next_handle = 1

    # --- helpers for tests ---

    @staticmethod
    def _split(path: str) -> List[str]:
        return [part for part in path.split("\\") if part]

    def _find(self, root: int, parts) -> _Node:
        node = self.roots[root]
        for part in parts:
            node = node.children.get(part.lower())
            if node is None:
                raise _os_error(ERROR_FILE_NOT_FOUND)
        return node

    def _new_handle(self, root: int, parts) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self.open_handles[handle] = (root, tuple(part.lower() for part in parts))
        return handle

    def exists(self, hive: Hive, path: str) -> bool:
        try:
            self._find(hive.handle, self._split(path))
        except OSError:
            return False
        return True

    def subtree(self, hive: Hive, path: str) -> Dict[str, Any]:
        return self._find(hive.handle, self._split(path)).to_dict()

    def set_value(self, hive: Hive, path: str, name: str, data: Any) -> None:
        self._find(hive.handle, self._split(path)).values[name] = data

    def path_of(self, handle: int) -> Tuple[int, Tuple[str, ...]]:
        return self.open_handles[handle]

    # --- RegistryBackend ---

    def open_key(self, root: int, path: str, access: int) -> int:
        self.calls.append(("open_key", root, path, access))
        parts = self._split(path)
        self._find(root, parts)
        return self._new_handle(root, parts)

    def create_key(self, root: int, path: str, access: int) -> int:
        self.calls.append(("create_key", root, path, access))
        parts = self._split(path)
        node = self.roots[root]
        for part in parts:
            node = node.children.setdefault(part.lower(), _Node(part))
        return self._new_handle(root, parts)

    def close_key(self, handle: int) -> None:
        self.calls.append(("close_key", handle))
        if self.close_error is not None:
            raise self.close_error
        if handle not in self.open_handles:
            raise _os_error(ERROR_INVALID_HANDLE)
        del self.open_handles[handle]

    def delete_key(self, root: int, path: str, recursive: bool) -> None:
        self.calls.append(("delete_key", root, path, recursive))
        parts = self._split(path)
        parent = self._find(root, parts[:-1])
        node = parent.children.get(parts[-1].lower())
        if node is None:
            raise _os_error(ERROR_FILE_NOT_FOUND)
        if node.children and not recursive:
            raise _os_error(ERROR_DIR_NOT_EMPTY)
        del parent.children[parts[-1].lower()]

    def load_key(self, root: int, name: str, file_path: str) -> None:
        self.calls.append(("load_key", root, name, file_path))
        if not os.path.exists(file_path):
            raise _os_error(ERROR_FILE_NOT_FOUND)
        node = self.roots[root]
        if name.lower() in node.children:
            raise _os_error(ERROR_ALREADY_EXISTS)
        with open(file_path, "r", encoding="utf-8") as f:
            node.children[name.lower()] = _Node.from_dict(name, json.load(f))
        self.mounts.add((root, name.lower()))

    def unload_key(self, root: int, path: str) -> None:
        self.calls.append(("unload_key", root, path))
        mount = (root, path.strip("\\").lower())
        if mount not in self.mounts:
            if self.exists(Hive(root), path):
                raise _os_error(ERROR_INVALID_PARAMETER)
            raise _os_error(ERROR_FILE_NOT_FOUND)
        for handle_root, parts in self.open_handles.values():
            if handle_root == root and parts[:1] == (mount[1],):
                raise _os_error(ERROR_BUSY)
        del self.roots[root].children[mount[1]]
        self.mounts.discard(mount)

    def save_key(self, handle: Any, file_path: str) -> None:
        self.calls.append(("save_key", handle, file_path))
        if handle in self.roots:
            node = self.roots[handle]
        elif handle in self.open_handles:
            root, parts = self.open_handles[handle]
            node = self._find(root, parts)
        else:
            raise _os_error(ERROR_INVALID_HANDLE)
        if os.path.exists(file_path):
            raise _os_error(ERROR_ALREADY_EXISTS)
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(node.to_dict(), f)

    def native_calls(self) -> List[Tuple]:
        """Calls other than close_key."""
        return [call for call in self.calls if call[0] != "close_key"]


@pytest.fixture
def fake_backend():
    """Install a FakeRegistryBackend for the duration of a test."""
    backend = FakeRegistryBackend()
    previous = set_backend(backend)
    yield backend
    set_backend(previous)
