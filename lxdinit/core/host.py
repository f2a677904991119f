# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""Introspection of the host the LXD daemon runs on."""

import logging
import os
import shutil
import socket
import stat
from dataclasses import dataclass
from pathlib import Path

LOG = logging.getLogger(__name__)

SYS_CLASS_NET = Path("/sys/class/net")
PROC_MOUNTINFO = Path("/proc/self/mountinfo")
PROC_UID_MAP = Path("/proc/self/uid_map")
PROC_GID_MAP = Path("/proc/self/gid_map")
ETC_SUBUID = Path("/etc/subuid")
ETC_SUBGID = Path("/etc/subgid")

# A process outside any user namespace sees the whole 32-bit id range
FULL_ID_MAP = (0, 0, 4294967295)
# Enough ids for one unprivileged container
MIN_ID_RANGE = 65536
# Used to find the address of the default route, no packet is sent
ROUTE_PROBE_V4 = ("192.0.2.1", 9)
ROUTE_PROBE_V6 = ("2001:db8::1", 9)


@dataclass(frozen=True)
class IdmapEntry:
    """A contiguous range of host ids delegated to containers."""

    kind: str  # "uid" or "gid"
    host_id: int
    map_range: int

    @property
    def end(self) -> int:
        return self.host_id + self.map_range


def _unescape_mount_path(path: str) -> str:
    # mountinfo escapes whitespace and backslashes as octal sequences
    for escaped, char in (("\\040", " "), ("\\011", "\t"), ("\\012", "\n")):
        path = path.replace(escaped, char)
    return path.replace("\\134", "\\")


def detect_filesystem(path: Path, mountinfo: Path = PROC_MOUNTINFO) -> str:
    """Return the filesystem type backing path.

    The mount with the longest mount point containing path wins.

    :raises: OSError if mountinfo cannot be read, ValueError if no mount
             matches
    """
    target = os.path.realpath(path)
    best_mount = ""
    best_fstype = ""
    for line in mountinfo.read_text().splitlines():
        fields, sep, rest = line.partition(" - ")
        if not sep:
            continue
        parts = fields.split()
        if len(parts) < 5:
            continue
        mount_point = _unescape_mount_path(parts[4])
        prefix = mount_point.rstrip("/") + "/"
        if target != mount_point and not target.startswith(prefix):
            continue
        if len(mount_point) >= len(best_mount):
            best_mount = mount_point
            best_fstype = rest.split()[0]
    if not best_fstype:
        raise ValueError(f"No mount found for {path}")
    return best_fstype


def free_space(path: Path) -> int:
    """Return the free space in bytes of the filesystem holding path."""
    return shutil.disk_usage(path).free


def interface_exists(name: str) -> bool:
    if not name or "/" in name:
        return False
    return (SYS_CLASS_NET / name).exists()


def interface_is_bridge(name: str) -> bool:
    """Whether the interface exposes bridge state in sysfs."""
    return (SYS_CLASS_NET / name / "bridge").exists()


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def find_binary(name: str) -> str | None:
    """Look up an executable on PATH."""
    return shutil.which(name)


def _read_kernel_map(path: Path) -> list[tuple[int, int, int]]:
    entries = []
    for line in path.read_text().splitlines():
        parts = line.split()
        if len(parts) != 3:
            continue
        ns_id, host_id, map_range = (int(part) for part in parts)
        entries.append((ns_id, host_id, map_range))
    return entries


def running_in_userns(uid_map: Path = PROC_UID_MAP) -> bool:
    """Whether the current process runs inside a user namespace."""
    try:
        entries = _read_kernel_map(uid_map)
    except (OSError, ValueError):
        LOG.debug(f"Cannot read {uid_map}", exc_info=True)
        return False
    return entries != [FULL_ID_MAP]


def _read_subid_file(path: Path, kind: str, username: str) -> list[IdmapEntry]:
    entries = []
    try:
        content = path.read_text()
    except FileNotFoundError:
        return entries
    for line in content.splitlines():
        parts = line.strip().split(":")
        if len(parts) != 3 or parts[0] != username:
            continue
        try:
            entries.append(IdmapEntry(kind, int(parts[1]), int(parts[2])))
        except ValueError:
            LOG.debug(f"Ignoring malformed line in {path}: {line!r}")
    return entries


def default_idmap(
    username: str = "root",
    subuid: Path = ETC_SUBUID,
    subgid: Path = ETC_SUBGID,
) -> list[IdmapEntry]:
    """Return the uid and gid ranges delegated to username."""
    return _read_subid_file(subuid, "uid", username) + _read_subid_file(
        subgid, "gid", username
    )


def idmap_usable(
    entries: list[IdmapEntry],
    uid_map: Path = PROC_UID_MAP,
    gid_map: Path = PROC_GID_MAP,
) -> bool:
    """Whether the id map can be used by containers.

    Every range must be large enough and lie inside the ids the current
    process owns in its namespace. Both uid and gid ranges are required.
    """
    if not entries:
        return False
    kinds = {entry.kind for entry in entries}
    if kinds != {"uid", "gid"}:
        return False
    try:
        kernel_maps = {
            "uid": _read_kernel_map(uid_map),
            "gid": _read_kernel_map(gid_map),
        }
    except (OSError, ValueError):
        LOG.debug("Cannot read kernel id maps", exc_info=True)
        return False

    for entry in entries:
        if entry.map_range < MIN_ID_RANGE:
            return False
        # Ids in our namespace, as listed in the first column of the kernel map
        if not any(
            ns_id <= entry.host_id and entry.end <= ns_id + map_range
            for ns_id, _, map_range in kernel_maps[entry.kind]
        ):
            return False
    return True


def network_interface_address() -> str:
    """Return the address of the interface holding the default route.

    Returns an empty string when the host has no usable route.
    """
    for family, probe in (
        (socket.AF_INET, ROUTE_PROBE_V4),
        (socket.AF_INET6, ROUTE_PROBE_V6),
    ):
        try:
            with socket.socket(family, socket.SOCK_DGRAM) as sock:
                sock.connect(probe)
                address = sock.getsockname()[0]
        except OSError:
            continue
        if address and not address.startswith(("127.", "::1")):
            return address
    return ""
