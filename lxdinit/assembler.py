# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""Run the planning steps of `lxd init` in order."""

import logging

from rich.console import Console

from lxdinit.core.common import FORMAT_YAML, BaseStep, get_step_message, run_plan
from lxdinit.core.preseed import InitConfig
from lxdinit.core.questions import ConfirmQuestion
from lxdinit.core.settings import Settings
from lxdinit.remote.client import Client
from lxdinit.steps.clustering import AskClusteringStep
from lxdinit.steps.daemon import PlanDaemonConfigStep
from lxdinit.steps.maas import PromptMAASStep
from lxdinit.steps.network import PlanNetworkStep
from lxdinit.steps.reconcile import ReconcileRemoteResourcesStep
from lxdinit.steps.storage import PlanStoragePoolStep
from lxdinit.storage.base import PoolRole
from lxdinit.storage.manager import StorageDriverManager

LOG = logging.getLogger(__name__)


class ConfigAssembler:
    """Builds the configuration of a node from the operator's answers.

    Nothing is submitted to LXD: the local daemon is only queried to avoid
    name collisions and the cluster only to inherit its resources.
    """

    def __init__(
        self,
        settings: Settings,
        client: Client,
        console: Console | None = None,
        show_hints: bool = False,
        manager: StorageDriverManager | None = None,
    ):
        self.settings = settings
        self.client = client
        self.console = console or Console()
        self.show_hints = show_hints
        self.manager = manager or StorageDriverManager()

    def storage_plan(self, config: InitConfig) -> list[BaseStep]:
        if config.is_clustered:
            roles = [PoolRole.LOCAL, PoolRole.REMOTE]
        else:
            roles = [PoolRole.STANDALONE]
        return [
            PlanStoragePoolStep(config, self.settings, self.client, role, self.manager)
            for role in roles
        ]

    def create_plan(self, config: InitConfig) -> list[BaseStep]:
        """Steps planning the resources of a standalone or bootstrap node."""
        return [
            *self.storage_plan(config),
            PromptMAASStep(config),
            PlanNetworkStep(config, self.client),
            PlanDaemonConfigStep(config, self.settings),
        ]

    def join_plan(self, config: InitConfig, cluster_client: Client) -> list[BaseStep]:
        """Steps inheriting the resources of the cluster being joined."""
        return [ReconcileRemoteResourcesStep(config, cluster_client, self.manager)]

    def assemble(self, offer_preview: bool = True) -> InitConfig:
        """Ask every question and return the resulting configuration.

        :param offer_preview: whether to offer printing the result as YAML
        """
        config = InitConfig.empty()

        results = run_plan(
            [AskClusteringStep(config, self.settings)], self.console, self.show_hints
        )
        if config.is_joining:
            cluster_client = get_step_message(results, AskClusteringStep)
            plan = self.join_plan(config, cluster_client)
        else:
            plan = self.create_plan(config)
        run_plan(plan, self.console, self.show_hints)

        LOG.debug(f"Planned configuration for a {config.cluster.kind} node")
        if offer_preview and ConfirmQuestion(
            'Would you like a YAML "lxd init" preseed to be printed?',
            default_value=False,
            console=self.console,
        ).ask():
            self.console.print(
                config.render(FORMAT_YAML),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
        return config
