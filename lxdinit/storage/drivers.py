# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

from rich.console import Console

from lxdinit.core import host
from lxdinit.core.questions import ConfirmQuestion, IntPromptQuestion, PromptQuestion
from lxdinit.errors import ThinProvisioningToolsMissingException
from lxdinit.storage.base import PoolContext, StorageDriver

LOG = logging.getLogger(__name__)

GIB = 1024**3
MIN_LOOP_SIZE = 15
MAX_LOOP_SIZE = 100

THIN_PROVISIONING_WARNING = """
The LVM thin provisioning tools couldn't be found. LVM can still be used
without thin provisioning but this will disable over-provisioning,
increase the space requirements and creation time of images, containers
and snapshots.

If you wish to use thin provisioning, abort now, install the tools from
your Linux distribution and run "lxd init" again afterwards.
"""


def default_loop_size(free_bytes: int) -> int:
    """Size in GB proposed for a new loop device.

    20% of the free space, never less than 15GB nor more than 100GB.
    """
    size = free_bytes // GIB // 5
    return max(MIN_LOOP_SIZE, min(MAX_LOOP_SIZE, size))


def validate_block_device(path: str) -> None:
    if not host.is_block_device(path):
        raise ValueError(f"{path!r} is not a block device")


class DirDriver(StorageDriver):
    name = "dir"
    display_name = "Directory"


class BlockStorageDriver(StorageDriver):
    """A driver backed by a disk, a partition or a loop file."""

    config_keys = frozenset({"source", "size"})

    def prompt_config(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        """Ask whether to create a new pool or reuse an existing one."""
        create = ConfirmQuestion(
            f"Create a new {self.name.upper()} pool?",
            default_value=True,
            console=console,
            show_hint=show_hint,
        ).ask()
        if create:
            config = self.prompt_new_pool(context, console, show_hint)
        else:
            config = self.prompt_existing_pool(context, console, show_hint)
        config.update(self.prompt_extra_config(context, console, show_hint))
        return config

    def prompt_new_pool(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        use_device = ConfirmQuestion(
            "Would you like to use an existing block device?",
            default_value=False,
            console=console,
            show_hint=show_hint,
        ).ask()
        if use_device:
            source = PromptQuestion(
                "Path to the existing block device",
                validation_function=validate_block_device,
                console=console,
                show_hint=show_hint,
            ).ask()
            return {"source": source}

        default_size = default_loop_size(host.free_space(context.settings.var_path))
        size = IntPromptQuestion(
            "Size in GB of the new loop device (1GB minimum)",
            default_value=default_size,
            min_value=1,
            description="Defaults to 20% of the free space, between 15GB and 100GB.",
            console=console,
            show_hint=show_hint,
        ).ask()
        return {"size": f"{size}GB"}

    def prompt_existing_pool(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        source = PromptQuestion(
            f"Name of the existing {self.name.upper()} pool or dataset",
            console=console,
            show_hint=show_hint,
        ).ask()
        return {"source": source}

    def prompt_extra_config(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        return {}


class BtrfsDriver(BlockStorageDriver):
    name = "btrfs"
    display_name = "Btrfs"
    tools = ("btrfs",)

    def prompt_config(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        """Offer a subvolume when LXD already runs on btrfs."""
        if context.backing_fs == self.name:
            subvolume = ConfirmQuestion(
                "Would you like to create a new btrfs subvolume under"
                f" {context.settings.var_path}?",
                default_value=True,
                console=console,
                show_hint=show_hint,
            ).ask()
            if subvolume:
                return {"source": str(context.settings.storage_pool_path(context.name))}
        return super().prompt_config(context, console, show_hint)


class LvmDriver(BlockStorageDriver):
    name = "lvm"
    display_name = "LVM"
    tools = ("lvm",)
    config_keys = frozenset({"source", "size", "lvm.use_thinpool"})
    thin_provisioning_tool = "thin_check"

    def prompt_extra_config(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        """Fall back to thick provisioning when the thin tools are missing."""
        if host.find_binary(self.thin_provisioning_tool) is not None:
            return {}

        (console or Console()).print(THIN_PROVISIONING_WARNING)
        without_thin = ConfirmQuestion(
            "Do you want to continue without thin provisioning?",
            default_value=True,
            console=console,
            show_hint=show_hint,
        ).ask()
        if not without_thin:
            raise ThinProvisioningToolsMissingException(
                "The LVM thin provisioning tools couldn't be found on the system"
            )
        return {"lvm.use_thinpool": "false"}


class ZfsDriver(BlockStorageDriver):
    name = "zfs"
    display_name = "ZFS"
    tools = ("zfs",)


class CephDriver(BlockStorageDriver):
    """Pools of OSDs in an existing Ceph cluster."""

    name = "ceph"
    display_name = "Ceph RBD"
    tools = ("ceph",)
    remote = True
    config_keys = frozenset(
        {"source", "ceph.cluster_name", "ceph.osd.pool_name", "ceph.osd.pg_num"}
    )

    def _ask_cluster_name(self, console: Console | None, show_hint: bool) -> str:
        return PromptQuestion(
            "Name of the existing CEPH cluster",
            default_value="ceph",
            console=console,
            show_hint=show_hint,
        ).ask()

    def prompt_new_pool(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        cluster_name = self._ask_cluster_name(console, show_hint)
        pool_name = PromptQuestion(
            "Name of the OSD storage pool",
            default_value="lxd",
            console=console,
            show_hint=show_hint,
        ).ask()
        pg_num = IntPromptQuestion(
            "Number of placement groups",
            default_value=32,
            min_value=1,
            console=console,
            show_hint=show_hint,
        ).ask()
        return {
            "ceph.cluster_name": cluster_name,
            "ceph.osd.pool_name": pool_name,
            "ceph.osd.pg_num": str(pg_num),
        }

    def prompt_existing_pool(
        self,
        context: PoolContext,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> dict[str, str]:
        cluster_name = self._ask_cluster_name(console, show_hint)
        source = PromptQuestion(
            "Name of the existing OSD storage pool",
            default_value="lxd",
            console=console,
            show_hint=show_hint,
        ).ask()
        return {
            "ceph.cluster_name": cluster_name,
            "source": source,
            "ceph.osd.pool_name": source,
        }
