# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
import typing
from typing import Dict

from rich.console import Console
from rich.table import Table

from lxdinit.storage import drivers
from lxdinit.storage.base import PoolRole, StorageDriver

LOG = logging.getLogger(__name__)
console = Console()

FALLBACK_DRIVER = "dir"
# Drivers worth reusing when LXD already sits on them
BACKING_FS_DRIVERS = ("btrfs", "zfs")
PREFERRED_DRIVERS = ("zfs", "btrfs")

# Global registry for storage drivers
_STORAGE_DRIVERS: Dict[str, StorageDriver] = {}


class StorageDriverManager:
    """Registry for managing storage drivers."""

    _drivers: dict[str, StorageDriver] = _STORAGE_DRIVERS
    _loaded: bool = False

    def __init__(self) -> None:
        if not self._drivers:
            self._load_drivers()

    def _load_drivers(self) -> None:
        """Register every concrete driver defined in lxdinit.storage.drivers."""
        if self._loaded:
            return

        LOG.debug("Loading storage drivers")
        for attr_name in dir(drivers):
            attr = getattr(drivers, attr_name)
            if (
                isinstance(attr, type)
                and issubclass(attr, StorageDriver)
                and attr.name != StorageDriver.name
                and "name" in vars(attr)
            ):
                driver = attr()
                self._drivers[driver.name] = driver
                LOG.debug(f"Registered storage driver: {driver.name}")

        self._loaded = True

    def get_driver(self, name: str) -> StorageDriver:
        """Get a storage driver by name."""
        self._load_drivers()
        if name not in self._drivers:
            raise ValueError(f"Storage driver {name!r} not found")
        return self._drivers[name]

    def drivers(self) -> typing.Mapping[str, StorageDriver]:
        """Get all known storage drivers, sorted by name."""
        return {name: self._drivers[name] for name in sorted(self._drivers)}

    def remote_drivers(self) -> set[str]:
        """Names of the drivers whose pools have no per-node identity."""
        return {name for name, driver in self._drivers.items() if driver.remote}

    def available_drivers(
        self, role: PoolRole, backing_fs: str, in_userns: bool = False
    ) -> list[str]:
        """Drivers a pool of the given role can be created with on this host.

        The directory driver comes first, the others follow by name. Inside a
        user namespace only btrfs on top of btrfs can be used besides it.
        """
        candidates = []
        fallback = self.get_driver(FALLBACK_DRIVER)
        if fallback.supports_role(role):
            candidates.append(FALLBACK_DRIVER)

        for name, driver in self.drivers().items():
            if name == FALLBACK_DRIVER or not driver.supports_role(role):
                continue
            if in_userns and not (name == "btrfs" and backing_fs == "btrfs"):
                continue
            if driver.is_available():
                candidates.append(name)

        LOG.debug(f"Storage drivers available for {role.value} pools: {candidates}")
        return candidates

    def display_drivers_table(self, backing_fs: str, in_userns: bool = False) -> None:
        """Display drivers and the pool roles they can serve on this host."""
        table = Table(title="Storage Drivers")
        table.add_column("Name", style="cyan")
        table.add_column("Description", style="magenta")
        table.add_column("Tools", style="blue")
        for role in PoolRole:
            table.add_column(role.value.capitalize(), justify="center")

        usable = {
            role: self.available_drivers(role, backing_fs, in_userns)
            for role in PoolRole
        }
        for name, driver in self.drivers().items():
            cells = []
            for role in PoolRole:
                if name in usable[role]:
                    cells.append("[green]yes[/green]")
                else:
                    cells.append("[red]no[/red]")
            table.add_row(name, driver.display_name, ", ".join(driver.tools), *cells)

        console.print(table)


def default_storage_driver(candidates: list[str], backing_fs: str) -> str:
    """Pick the driver proposed to the operator.

    A driver matching the filesystem LXD sits on wins, then zfs, then btrfs,
    then the directory driver.
    """
    if backing_fs in BACKING_FS_DRIVERS and backing_fs in candidates:
        return backing_fs
    for name in PREFERRED_DRIVERS:
        if name in candidates:
            return name
    if FALLBACK_DRIVER in candidates or not candidates:
        return FALLBACK_DRIVER
    return candidates[0]
