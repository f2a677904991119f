# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

from rich.console import Console
from rich.status import Status

from lxdinit.core.common import BaseStep, Result, ResultType
from lxdinit.core.preseed import InitConfig
from lxdinit.core.questions import ConfirmQuestion, PromptQuestion
from lxdinit.utils import get_hostname

LOG = logging.getLogger(__name__)


class PromptMAASStep(BaseStep):
    """Connect LXD to a MAAS server."""

    def __init__(self, config: InitConfig):
        super().__init__("MAAS", "Planning MAAS integration")
        self.config = config
        self.settings: dict[str, str] = {}

    def has_prompts(self) -> bool:
        """Returns true if the step has prompts that it can ask the user."""
        return True

    def prompt(self, console: Console | None = None, show_hint: bool = False) -> None:
        self.settings = {}
        connect = ConfirmQuestion(
            "Would you like to connect to a MAAS server?",
            default_value=False,
            console=console,
            show_hint=show_hint,
        ).ask()
        if not connect:
            return

        hostname = get_hostname()
        machine = PromptQuestion(
            "What's the name of this host in MAAS?",
            default_value=hostname,
            console=console,
            show_hint=show_hint,
        ).ask()
        # MAAS matches the hostname unless told otherwise
        if machine != hostname:
            self.settings["maas.machine"] = machine

        self.settings["maas.api.url"] = PromptQuestion(
            "What's the URL of your MAAS server?",
            console=console,
            show_hint=show_hint,
        ).ask()
        self.settings["maas.api.key"] = PromptQuestion(
            "What's a valid API key for your MAAS server?",
            console=console,
            show_hint=show_hint,
        ).ask()

    def is_skip(self, status: Status | None = None) -> Result:
        if not self.settings:
            return Result(ResultType.SKIPPED)
        return Result(ResultType.COMPLETED)

    def run(self, status: Status | None = None) -> Result:
        self.config.config.update(self.settings)
        return Result(ResultType.COMPLETED)
