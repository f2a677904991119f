# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

from rich.console import Console
from rich.status import Status

from lxdinit.core import host
from lxdinit.core.common import BaseStep, Result, ResultType
from lxdinit.core.preseed import InitConfig, StoragePoolSpec
from lxdinit.core.questions import ConfirmQuestion, PromptQuestion
from lxdinit.core.settings import Settings
from lxdinit.errors import StorageDriverUnavailableException, StoragePoolExistsException
from lxdinit.remote.client import Client
from lxdinit.storage.base import PoolContext, PoolRole
from lxdinit.storage.manager import StorageDriverManager, default_storage_driver

LOG = logging.getLogger(__name__)

DEFAULT_POOL_NAME = "default"
# Used when the filesystem under the LXD data directory cannot be detected
UNKNOWN_BACKING_FS = "dir"


def detect_backing_filesystem(settings: Settings) -> str:
    """Filesystem LXD stores its data on, "dir" when it cannot be told."""
    try:
        return host.detect_filesystem(settings.var_path)
    except (OSError, ValueError):
        LOG.debug(f"Cannot detect filesystem of {settings.var_path}", exc_info=True)
        return UNKNOWN_BACKING_FS


class PlanStoragePoolStep(BaseStep):
    """Plan a new storage pool and make it the root disk of the default profile."""

    def __init__(
        self,
        config: InitConfig,
        settings: Settings,
        client: Client,
        role: PoolRole = PoolRole.STANDALONE,
        manager: StorageDriverManager | None = None,
    ):
        super().__init__(
            f"Plan {role.value} storage pool", f"Planning {role.value} storage pool"
        )
        self.config = config
        self.settings = settings
        self.client = client
        self.role = role
        self.manager = manager or StorageDriverManager()
        self.wanted = False
        self.pool: StoragePoolSpec | None = None

    def has_prompts(self) -> bool:
        """Returns true if the step has prompts that it can ask the user."""
        return True

    def _gate_question(self) -> str:
        if self.role is PoolRole.STANDALONE:
            return "Do you want to configure a new storage pool?"
        return f"Do you want to configure a new {self.role.value} storage pool?"

    def _pool_exists(self, name: str) -> bool:
        if self.config.has_storage_pool(name):
            return True
        return self.client.storage_pools.exists(name)

    def _ask_name(self, console: Console | None, show_hint: bool) -> str:
        """Return the pool name, asking for it when the role does not fix it.

        :raises: StoragePoolExistsException if a pool with the fixed name exists
        """
        if (name := self.role.fixed_name) is not None:
            if self._pool_exists(name):
                raise StoragePoolExistsException(
                    f"The {self.role.value} storage pool already exists"
                )
            return name

        while True:
            name = PromptQuestion(
                "Name of the new storage pool",
                default_value=DEFAULT_POOL_NAME,
                console=console,
                show_hint=show_hint,
            ).ask()
            if not self._pool_exists(name):
                return name
            (console or Console()).print(
                f'The requested storage pool "{name}" already exists.'
                " Please choose another name."
            )

    def prompt(self, console: Console | None = None, show_hint: bool = False) -> None:
        """Ask for the pool name, its driver and the driver configuration.

        :raises: StorageDriverUnavailableException if no driver can serve the
                 role on this host
        """
        self.wanted = ConfirmQuestion(
            self._gate_question(),
            default_value=True,
            console=console,
            show_hint=show_hint,
        ).ask()
        if not self.wanted:
            return

        backing_fs = detect_backing_filesystem(self.settings)
        candidates = self.manager.available_drivers(
            self.role, backing_fs, host.running_in_userns()
        )
        if not candidates:
            raise StorageDriverUnavailableException(
                f"No {self.role.value} storage backends available"
            )
        default_driver = default_storage_driver(candidates, backing_fs)

        name = self._ask_name(console, show_hint)

        if len(candidates) > 1:
            driver_name = PromptQuestion(
                "Name of the storage backend to use",
                default_value=default_driver,
                choices=candidates,
                console=console,
                show_hint=show_hint,
            ).ask()
        else:
            driver_name = candidates[0]

        driver = self.manager.get_driver(driver_name)
        context = PoolContext(name=name, settings=self.settings, backing_fs=backing_fs)
        pool_config = driver.prompt_config(context, console, show_hint)
        driver.validate_config(pool_config)
        self.pool = StoragePoolSpec(name=name, driver=driver_name, config=pool_config)

    def is_skip(self, status: Status | None = None) -> Result:
        """Skip when the operator declined a new pool."""
        if not self.wanted or self.pool is None:
            return Result(ResultType.SKIPPED)
        return Result(ResultType.COMPLETED)

    def run(self, status: Status | None = None) -> Result:
        """Add the pool and point the default profile root disk at it."""
        self.config.storage_pools.append(self.pool)
        self.config.default_profile.devices["root"] = {
            "type": "disk",
            "path": "/",
            "pool": self.pool.name,
        }
        LOG.debug(f"Planned {self.pool.driver} storage pool {self.pool.name}")
        return Result(ResultType.COMPLETED, self.pool)
