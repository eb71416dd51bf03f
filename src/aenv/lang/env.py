"""Host environment builtins: system facts, filesystem and path helpers.

``env`` is special: it is both the map of process environment variables
(``env.HOME``) and a lookup function (``env("HOME")``).
"""

from __future__ import annotations

import os
import platform as _platform
import socket
from collections.abc import Mapping
from typing import Any, Callable

from aenv.lang.registry import Registry

try:
    import pwd
except ImportError:  # pragma: no cover - non-POSIX hosts
    pwd = None  # type: ignore[assignment]


class ProcessEnv(dict):
    """Process environment variables, also callable as ``env(key)``."""

    def __call__(self, key: str) -> str:
        return self.get(key, "")


# ---------------------------------------------------------------------------
# System information
# ---------------------------------------------------------------------------

_PLATFORM_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
}
_TARGET_ARCH = {"amd64": "x86_64", "386": "i386", "arm64": "aarch64", "mipsle": "mipsel"}


def get_platform() -> dict[str, str]:
    """Host OS and architecture in Go naming (``linux``/``amd64``)."""
    machine = _platform.machine().lower()
    return {"OS": _platform.system().lower(), "Arch": _PLATFORM_ARCH.get(machine, machine)}


def get_target() -> dict[str, str]:
    """Host OS and architecture in GNU naming (``linux``/``x86_64``)."""
    t = get_platform()
    if t["Arch"] == "arm64" and t["OS"] == "darwin":
        return t
    return {"OS": t["OS"], "Arch": _TARGET_ARCH.get(t["Arch"], t["Arch"])}


def get_hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return ""


def get_user() -> dict[str, str] | None:
    if pwd is None:
        return None
    try:
        entry = pwd.getpwuid(os.getuid())
    except KeyError:
        return None
    return {
        "Username": entry.pw_name,
        "Uid": str(entry.pw_uid),
        "Gid": str(entry.pw_gid),
        "Name": entry.pw_gecos.split(",")[0],
        "HomeDir": entry.pw_dir,
    }


def get_shell() -> str:
    shell = os.environ.get("SHELL")
    if shell is not None:
        return shell
    if pwd is None:
        return ""
    try:
        return pwd.getpwuid(os.getuid()).pw_shell
    except KeyError:
        return ""


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


def cwd() -> str:
    try:
        return os.getcwd()
    except OSError:
        return path_abs(".")


def file_exists(path: str) -> bool:
    return os.path.lexists(path)


def file_is_dir(path: str) -> bool:
    return os.path.isdir(path)


def file_is_regular(path: str) -> bool:
    return os.path.isfile(path)


def file_is_symlink(path: str) -> bool:
    return os.path.islink(path)


def path_abs(path: str) -> str:
    return os.path.abspath(path)


def path_cat(*elem: str) -> str:
    parts = [e for e in elem if e]
    return os.path.normpath(os.path.join(*parts)) if parts else ""


def path_rel(source: str, target: str) -> str:
    try:
        return os.path.relpath(path_abs(target), path_abs(source))
    except ValueError:
        return path_cat(source, target)


def _mung(key: str, prefix: tuple[str, ...], keep: Callable[[str], bool] | None) -> str:
    items: list[str] = []
    for item in prefix:
        if item and (keep is None or keep(item)) and item not in items:
            items.append(item)
    for item in key.split(os.pathsep):
        if item and item not in items:
            items.append(item)
    return os.pathsep.join(items)


def mung_prefix(key: str, *prefix: str) -> str:
    """Prepend *prefix* items to PATH-like *key*, dropping duplicates."""
    return _mung(key, prefix, None)


def mung_prefix_if(key: str, predicate: Callable[[str], bool], *prefix: str) -> str:
    """Like :func:`mung_prefix`, keeping only prefixes accepted by *predicate*."""
    return _mung(key, prefix, predicate)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def env_registry(process_env: Mapping[str, str] | None = None) -> Registry:
    """Build the host environment table.

    *process_env* defaults to ``os.environ``.
    """
    entries: dict[str, Any] = {
        "target": get_target(),
        "platform": get_platform(),
        "hostname": get_hostname(),
        "user": get_user(),
        "shell": get_shell(),
        "cwd": cwd,
        "file": {
            "exists": file_exists,
            "isDir": file_is_dir,
            "isRegular": file_is_regular,
            "isSymlink": file_is_symlink,
        },
        "path": {
            "abs": path_abs,
            "cat": path_cat,
            "rel": path_rel,
        },
        "mung": {
            "prefix": mung_prefix,
            "prefixif": mung_prefix_if,
        },
        "env": ProcessEnv(os.environ if process_env is None else process_env),
    }
    return Registry(entries)
