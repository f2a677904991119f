# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

from rich.console import Console
from rich.status import Status

from lxdinit.core import host
from lxdinit.core.common import (
    AUTO,
    NONE,
    BaseStep,
    Result,
    ResultType,
    bool_to_str,
    validate_address_setting_v4,
    validate_address_setting_v6,
    validate_network_name,
)
from lxdinit.core.preseed import InitConfig, NetworkSpec
from lxdinit.core.questions import ConfirmQuestion, PromptQuestion
from lxdinit.remote.client import Client

LOG = logging.getLogger(__name__)

DEFAULT_BRIDGE_NAME = "lxdbr0"
NIC_DEVICE = "eth0"
FAMILY_LABELS = {"ipv4": "IPv4", "ipv6": "IPv6"}


class PlanNetworkStep(BaseStep):
    """Plan a new bridge, or attach the default profile to an existing interface."""

    def __init__(self, config: InitConfig, client: Client):
        super().__init__("Plan network", "Planning network")
        self.config = config
        self.client = client
        self.bridge: NetworkSpec | None = None
        self.nic: dict[str, str] | None = None

    def has_prompts(self) -> bool:
        """Returns true if the step has prompts that it can ask the user."""
        return True

    def _network_exists(self, name: str) -> bool:
        if self.config.has_network(name):
            return True
        return self.client.networks.exists(name)

    def _ask_existing_interface(
        self, console: Console | None, show_hint: bool
    ) -> dict[str, str]:
        while True:
            name = PromptQuestion(
                "Name of the existing bridge or host interface",
                console=console,
                show_hint=show_hint,
            ).ask()
            if host.interface_exists(name):
                break
            (console or Console()).print(
                "The requested interface doesn't exist. Please choose another one."
            )

        nictype = "bridged" if host.interface_is_bridge(name) else "macvlan"
        nic = {"type": "nic", "nictype": nictype, "name": NIC_DEVICE, "parent": name}

        if not self.config.config.get("maas.api.url"):
            return nic
        connected = ConfirmQuestion(
            "Is this interface connected to your MAAS server?",
            default_value=True,
            console=console,
            show_hint=show_hint,
        ).ask()
        if not connected:
            return nic
        for family in ("ipv4", "ipv6"):
            subnet = PromptQuestion(
                f"What's the name of the MAAS {FAMILY_LABELS[family]} subnet"
                " for this interface (empty for no subnet)?",
                allow_empty=True,
                console=console,
                show_hint=show_hint,
            ).ask()
            if subnet:
                nic[f"maas.subnet.{family}"] = subnet
        return nic

    def _ask_address(
        self, family: str, console: Console | None, show_hint: bool
    ) -> dict[str, str]:
        label = FAMILY_LABELS[family]
        validator = (
            validate_address_setting_v4
            if family == "ipv4"
            else validate_address_setting_v6
        )
        address = PromptQuestion(
            f"What {label} address should be used?"
            f" (CIDR subnet notation, '{AUTO}' or '{NONE}')",
            default_value=AUTO,
            validation_function=validator,
            console=console,
            show_hint=show_hint,
        ).ask()
        config = {f"{family}.address": address}
        if address not in (AUTO, NONE):
            nat = ConfirmQuestion(
                f"Would you like LXD to NAT {label} traffic on your bridge?",
                default_value=True,
                console=console,
                show_hint=show_hint,
            ).ask()
            config[f"{family}.nat"] = bool_to_str(nat)
        return config

    def _ask_bridge(self, console: Console | None, show_hint: bool) -> NetworkSpec:
        while True:
            name = PromptQuestion(
                "What should the new bridge be called?",
                default_value=DEFAULT_BRIDGE_NAME,
                validation_function=validate_network_name,
                console=console,
                show_hint=show_hint,
            ).ask()
            if not self._network_exists(name):
                break
            (console or Console()).print(
                f'The requested network bridge "{name}" already exists.'
                " Please choose another name."
            )

        config = {}
        for family in ("ipv4", "ipv6"):
            config.update(self._ask_address(family, console, show_hint))
        return NetworkSpec.bridge(name, config)

    def prompt(self, console: Console | None = None, show_hint: bool = False) -> None:
        """Ask how instances of the default profile get their network."""
        self.bridge = None
        self.nic = None
        create = ConfirmQuestion(
            "Would you like to create a new network bridge?",
            default_value=True,
            console=console,
            show_hint=show_hint,
        ).ask()
        if create:
            self.bridge = self._ask_bridge(console, show_hint)
            self.nic = {
                "type": "nic",
                "nictype": "bridged",
                "name": NIC_DEVICE,
                "parent": self.bridge.name,
            }
            return

        use_existing = ConfirmQuestion(
            "Would you like to configure LXD to use an existing bridge or host"
            " interface?",
            default_value=False,
            console=console,
            show_hint=show_hint,
        ).ask()
        if use_existing:
            self.nic = self._ask_existing_interface(console, show_hint)

    def is_skip(self, status: Status | None = None) -> Result:
        """Skip when the default profile gets no network."""
        if self.nic is None:
            return Result(ResultType.SKIPPED)
        return Result(ResultType.COMPLETED)

    def run(self, status: Status | None = None) -> Result:
        """Add the bridge, if any, and the NIC of the default profile."""
        if self.bridge is not None:
            self.config.networks.append(self.bridge)
        self.config.default_profile.devices[NIC_DEVICE] = dict(self.nic)
        return Result(ResultType.COMPLETED, self.bridge)
