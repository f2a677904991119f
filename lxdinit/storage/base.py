# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""Storage driver base class."""

import enum
import logging
from dataclasses import dataclass

from rich.console import Console

from lxdinit.core import host
from lxdinit.core.settings import Settings

LOG = logging.getLogger(__name__)


class PoolRole(str, enum.Enum):
    """The role a new storage pool plays on this node."""

    LOCAL = "local"
    REMOTE = "remote"
    STANDALONE = "standalone"

    @property
    def fixed_name(self) -> str | None:
        """Name pools of this role must have, None when the operator picks it."""
        if self is PoolRole.STANDALONE:
            return None
        return self.value


@dataclass
class PoolContext:
    """What a driver needs to know to plan one pool."""

    name: str
    settings: Settings
    backing_fs: str


class StorageDriver:
    """Base class for the storage drivers LXD can create pools with.

    Subclasses declare the tools they need on the host, whether they provide
    storage shared by every cluster member, the configuration keys they accept
    and ask the operator for their driver specific configuration.
    """

    name: str = "base"
    display_name: str = "Base storage driver"
    # Executables that must be on PATH for the driver to be offered
    tools: tuple[str, ...] = ()
    # Shared by the whole cluster, no per-node identity
    remote: bool = False
    config_keys: frozenset[str] = frozenset({"source"})

    def is_available(self) -> bool:
        """Whether the tools the driver needs are installed."""
        for tool in self.tools:
            if host.find_binary(tool) is None:
                LOG.debug(f"{self.name} unavailable, {tool!r} not found")
                return False
        return True

    def supports_role(self, role: PoolRole) -> bool:
        if role is PoolRole.REMOTE:
            return self.remote
        if role is PoolRole.LOCAL:
            return not self.remote
        return True

    def prompt_config(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        """Ask the operator for the driver specific pool configuration."""
        return {}

    def validate_config(self, config: dict[str, str]) -> None:
        """Check config only holds keys the driver knows about.

        :raises: ValueError on unknown keys
        """
        unknown = sorted(set(config) - self.config_keys)
        if unknown:
            raise ValueError(
                f"Unsupported {self.name} configuration: {', '.join(unknown)}"
            )
