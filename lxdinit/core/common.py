# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import enum
import ipaddress
import logging
import re
from typing import Any, Sequence

import click
import yaml
from rich.console import Console
from rich.status import Status

LOG = logging.getLogger(__name__)

FORMAT_JSON = "json"
FORMAT_YAML = "yaml"

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

AUTO = "auto"
NONE = "none"

# Kernel interface names are limited to 15 characters (IFNAMSIZ - 1)
NETWORK_NAME_MIN_LENGTH = 2
NETWORK_NAME_MAX_LENGTH = 15
NETWORK_NAME_INVALID_CHARS = re.compile(r"[^-a-zA-Z0-9]")


class ResultType(enum.Enum):
    COMPLETED = 0
    FAILED = 1
    SKIPPED = 2


class Result:
    """Outcome of a planning step.

    The message is free form: an error for failed steps, or whatever a later
    plan needs from a completed one (a planned pool, an authenticated client).
    """

    def __init__(self, result_type: ResultType, message: Any = ""):
        self.result_type = result_type
        self.message = message


class BaseStep:
    """One decision of the planner.

    A step asks its questions in prompt(), may bow out in is_skip() and then
    records its decision on the configuration being assembled in run().
    Steps only ever read remote state, they never change it.
    """

    def __init__(self, name: str, description: str = ""):
        """Initialise the step.

        :param name: short name of the step, used in logs
        :param description: what the step does, displayed while it runs
        """
        self.name = name
        self.description = description

    def prompt(
        self,
        console: Console | None = None,
        show_hint: bool = False,
    ) -> None:
        """Ask the operator the questions the step needs answered.

        :param console: the console to prompt on
        :param show_hint: whether to display question hints
        """
        pass

    def has_prompts(self) -> bool:
        """Returns true if the step has prompts that it can ask the user."""
        return False

    def is_skip(self, status: Status | None = None) -> Result:
        """Decide whether the step has anything to contribute.

        :return: ResultType.SKIPPED when there is nothing to record,
                 ResultType.FAILED when the plan cannot go on,
                 ResultType.COMPLETED otherwise
        """
        return Result(ResultType.COMPLETED)

    def run(self, status: Status | None = None) -> Result:
        """Record the decision of the step on the configuration."""
        return Result(ResultType.COMPLETED)

    @property
    def status(self) -> str:
        return self.description + " ... "

    def update_status(self, status: Status | None, msg: str) -> None:
        if status is not None:
            status.update(self.status + msg)


def run_plan(
    plan: Sequence[BaseStep],
    console: Console,
    show_hints: bool = False,
    no_raise: bool = False,
) -> dict[str, Result]:
    """Run the steps of a plan one after the other.

    The spinner is paused while a step prompts. Results are keyed by the
    class name of their step.

    :raises: click.ClickException when a step fails, unless no_raise is set
             in which case the plan stops at the failed step
    """
    results: dict[str, Result] = {}

    for step in plan:
        key = step.__class__.__name__
        LOG.debug(f"Starting step {step.name!r}")
        with console.status(step.status) as status:
            if step.has_prompts():
                status.stop()
                step.prompt(console, show_hints)
                status.start()

            result = step.is_skip(status)
            if result.result_type == ResultType.SKIPPED:
                LOG.debug(f"Skipping step {step.name!r}")
                results[key] = result
                continue

            if result.result_type != ResultType.FAILED:
                LOG.debug(f"Running step {step.name!r}")
                result = step.run(status)
                LOG.debug(f"Finished step {step.name!r}: {result.result_type}")
            results[key] = result

        if result.result_type == ResultType.FAILED:
            LOG.debug(f"Step {step.name!r} failed: {result.message}")
            if no_raise:
                break
            raise click.ClickException(str(result.message))

    return results


def get_step_message(plan_results: dict[str, Result], step: type[BaseStep]) -> Any:
    """Return the message of the result of step, None if it did not run."""
    result = plan_results.get(step.__name__)
    if result:
        return result.message
    return None


def str_presenter(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Dump multi-line strings, like PEM certificates, as literal blocks."""
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


def bool_to_str(value: bool) -> str:
    """Render a boolean the way LXD config values expect it."""
    return "true" if value else "false"


def validate_network_name(name: str) -> None:
    """Validate a bridge name against LXD interface naming rules."""
    if not name:
        raise ValueError("Network name cannot be empty")
    if not NETWORK_NAME_MIN_LENGTH <= len(name) <= NETWORK_NAME_MAX_LENGTH:
        raise ValueError(
            f"Network name must be between {NETWORK_NAME_MIN_LENGTH} and"
            f" {NETWORK_NAME_MAX_LENGTH} characters"
        )
    if NETWORK_NAME_INVALID_CHARS.search(name):
        raise ValueError(
            "Network name can only contain letters, digits and '-' characters"
        )


def _validate_cidr_address(value: str, version: int) -> None:
    if "/" not in value:
        raise ValueError(
            f"Invalid CIDR definition {value!r}, must be in the form 'ip/mask'"
        )
    try:
        interface = ipaddress.ip_interface(value)
    except ValueError as e:
        raise ValueError(f"Invalid CIDR definition {value!r}: {e}") from e
    if interface.version != version:
        raise ValueError(f"{value!r} is not an IPv{version} address")


def validate_cidr_v4(value: str) -> None:
    """Validate an IPv4 address in CIDR notation, e.g. 10.0.0.1/24."""
    _validate_cidr_address(value, 4)


def validate_cidr_v6(value: str) -> None:
    """Validate an IPv6 address in CIDR notation, e.g. fd42::1/64."""
    _validate_cidr_address(value, 6)


def validate_address_setting_v4(value: str) -> None:
    """Accept 'auto', 'none' or an IPv4 CIDR address."""
    if value in (AUTO, NONE):
        return
    validate_cidr_v4(value)


def validate_address_setting_v6(value: str) -> None:
    """Accept 'auto', 'none' or an IPv6 CIDR address."""
    if value in (AUTO, NONE):
        return
    validate_cidr_v6(value)


def validate_ip_address(value: str) -> None:
    """Validate a plain IP address literal."""
    try:
        ipaddress.ip_address(value)
    except ValueError as e:
        raise ValueError(f"{value!r} is not an IP address") from e
