# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

from rich.console import Console
from rich.status import Status

from lxdinit.core import host
from lxdinit.core.common import (
    BaseStep,
    Result,
    ResultType,
    validate_ip_address,
)
from lxdinit.core.preseed import InitConfig
from lxdinit.core.questions import (
    ConfirmQuestion,
    IntPromptQuestion,
    PasswordPromptQuestion,
    PromptQuestion,
)
from lxdinit.core.settings import Settings
from lxdinit.utils import join_host_port

LOG = logging.getLogger(__name__)

ALL_ADDRESSES = "all"
WILDCARD_ADDRESS = "::"

SHARED_ALLOCATION_WARNING = """
We detected that you are running inside an unprivileged container.
This means that unless you manually configured your host otherwise,
you will not have enough uids and gids to allocate to your containers.

LXD can re-use your container's own allocation to avoid the problem.
Doing so makes your nested containers slightly less safe as they could
in theory attack their parent container and gain more privileges than
they otherwise would.
"""


def validate_bind_address(value: str) -> None:
    if value == ALL_ADDRESSES:
        return
    validate_ip_address(value)


def https_address(address: str, port: int) -> str:
    """Listener address, "all" meaning every IPv4 and IPv6 address."""
    if address == ALL_ADDRESSES:
        address = WILDCARD_ADDRESS
    return join_host_port(address, port)


def needs_shared_allocation() -> bool:
    """Whether containers lack their own uid and gid ranges."""
    idmap = host.default_idmap()
    if idmap and host.idmap_usable(idmap):
        return False
    return host.running_in_userns()


class PlanDaemonConfigStep(BaseStep):
    """Decide the daemon wide settings of a node not joining a cluster."""

    def __init__(self, config: InitConfig, settings: Settings):
        super().__init__("Plan daemon configuration", "Planning daemon configuration")
        self.config = config
        self.settings = settings
        self.privileged = False
        self.listen_address: str | None = None
        self.trust_password: str | None = None
        self.auto_update = True

    def has_prompts(self) -> bool:
        """Returns true if the step has prompts that it can ask the user."""
        return True

    def _ask_listener(self, console: Console | None, show_hint: bool) -> None:
        expose = ConfirmQuestion(
            "Would you like LXD to be available over the network?",
            default_value=False,
            console=console,
            show_hint=show_hint,
        ).ask()
        if not expose:
            return

        address = PromptQuestion(
            "Address to bind LXD to (not including port)",
            default_value=ALL_ADDRESSES,
            validation_function=validate_bind_address,
            console=console,
            show_hint=show_hint,
        ).ask()
        port = IntPromptQuestion(
            "Port to bind LXD to",
            default_value=self.settings.default_port,
            min_value=1,
            max_value=65535,
            console=console,
            show_hint=show_hint,
        ).ask()
        self.listen_address = https_address(address, port)
        self.trust_password = PasswordPromptQuestion(
            "Trust password for new clients",
            allow_empty=True,
            console=console,
            show_hint=show_hint,
        ).ask()

    def prompt(self, console: Console | None = None, show_hint: bool = False) -> None:
        """Ask about id allocation, the network listener and image updates."""
        if needs_shared_allocation():
            (console or Console()).print(SHARED_ALLOCATION_WARNING)
            self.privileged = ConfirmQuestion(
                "Would you like to have your containers share their parent's"
                " allocation?",
                default_value=True,
                console=console,
                show_hint=show_hint,
            ).ask()

        # Cluster members already listen on their cluster address
        if not self.config.is_clustered:
            self._ask_listener(console, show_hint)

        self.auto_update = ConfirmQuestion(
            "Would you like stale cached images to be updated automatically?",
            default_value=True,
            console=console,
            show_hint=show_hint,
        ).ask()

    def run(self, status: Status | None = None) -> Result:
        if self.privileged:
            self.config.default_profile.config["security.privileged"] = "true"
        if self.listen_address is not None:
            self.config.config["core.https_address"] = self.listen_address
            self.config.config["core.trust_password"] = self.trust_password or ""
        if not self.auto_update:
            self.config.config["images.auto_update_interval"] = "0"
        return Result(ResultType.COMPLETED)
