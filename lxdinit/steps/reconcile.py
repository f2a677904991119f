# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Iterable

from rich.console import Console
from rich.status import Status

from lxdinit.core.common import BaseStep, Result, ResultType
from lxdinit.core.preseed import InitConfig, JoinIntent, NetworkSpec, StoragePoolSpec
from lxdinit.core.questions import PromptQuestion
from lxdinit.errors import LxdInitException
from lxdinit.remote.client import Client
from lxdinit.remote.models import Network, StoragePool
from lxdinit.storage.manager import StorageDriverManager

LOG = logging.getLogger(__name__)


def filter_storage_pools(
    pools: Iterable[StoragePool], remote_drivers: Iterable[str]
) -> list[StoragePool]:
    """Keep the pools a joining node has to create itself.

    Pending pools are not fully formed yet and pools of remote drivers are
    shared by the whole cluster.
    """
    remote_drivers = set(remote_drivers)
    kept = []
    for pool in pools:
        if pool.is_pending:
            LOG.debug(f"Skipping pending storage pool {pool.name}")
            continue
        if pool.driver in remote_drivers:
            LOG.debug(f"Skipping {pool.driver} storage pool {pool.name}")
            continue
        kept.append(pool)
    return kept


def filter_networks(networks: Iterable[Network]) -> list[Network]:
    """Keep the managed networks that exist on the whole cluster."""
    return [
        network for network in networks if network.managed and not network.is_pending
    ]


class ReconcileRemoteResourcesStep(BaseStep):
    """Inherit storage pools and networks from the cluster being joined."""

    def __init__(
        self,
        config: InitConfig,
        client: Client,
        manager: StorageDriverManager | None = None,
    ):
        super().__init__(
            "Reconcile cluster resources", "Reconciling cluster storage and networks"
        )
        self.config = config
        self.client = client
        self.manager = manager or StorageDriverManager()
        self.storage_pools: list[StoragePoolSpec] = []
        self.networks: list[NetworkSpec] = []

    def has_prompts(self) -> bool:
        """Returns true if the step has prompts that it can ask the user."""
        return True

    def prompt(self, console: Console | None = None, show_hint: bool = False) -> None:
        """Ask the node-local values of the cluster resources.

        :raises: LxdInitException if the cluster resources cannot be listed
        """
        try:
            pools = self.client.storage_pools.list()
        except LxdInitException as e:
            raise LxdInitException(
                f"Failed to retrieve storage pools from the cluster: {e}"
            ) from e

        self.storage_pools = []
        for pool in filter_storage_pools(pools, self.manager.remote_drivers()):
            overrides = {}
            if pool.config.get("source"):
                overrides["source"] = PromptQuestion(
                    "Choose the local disk or dataset for storage pool"
                    f' "{pool.name}" (empty for loop disk)',
                    allow_empty=True,
                    console=console,
                    show_hint=show_hint,
                ).ask()
            self.storage_pools.append(StoragePoolSpec.from_remote(pool, overrides))

        try:
            networks = self.client.networks.list()
        except LxdInitException as e:
            raise LxdInitException(
                f"Failed to retrieve networks from the cluster: {e}"
            ) from e

        self.networks = []
        for network in filter_networks(networks):
            overrides = {}
            if network.config.get("bridge.external_interfaces"):
                overrides["bridge.external_interfaces"] = PromptQuestion(
                    "Choose the local network interface to connect to network"
                    f' "{network.name}" (empty for none)',
                    allow_empty=True,
                    console=console,
                    show_hint=show_hint,
                ).ask()
            self.networks.append(NetworkSpec.from_remote(network, overrides))

    def is_skip(self, status: Status | None = None) -> Result:
        """Only nodes joining a cluster inherit its resources."""
        if not isinstance(self.config.cluster, JoinIntent):
            return Result(ResultType.FAILED, "Not joining a cluster")
        return Result(ResultType.COMPLETED)

    def run(self, status: Status | None = None) -> Result:
        """Store the inherited resources in the configuration."""
        self.config.storage_pools = list(self.storage_pools)
        self.config.networks = list(self.networks)
        self.config.cluster = self.config.cluster.model_copy(
            update={
                "storage_pools": list(self.storage_pools),
                "networks": list(self.networks),
            }
        )
        return Result(ResultType.COMPLETED)
