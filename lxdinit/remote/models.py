# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""Models of the resources returned by the LXD REST API."""

import pydantic

STATUS_PENDING = "PENDING"


class StoragePool(pydantic.BaseModel):
    """Storage pool model."""

    model_config = pydantic.ConfigDict(extra="ignore")

    name: str
    driver: str
    description: str = ""
    config: dict[str, str] = pydantic.Field(default_factory=dict)
    status: str = ""
    locations: list[str] = pydantic.Field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        """Whether the pool is not yet created on every cluster member."""
        return self.status.upper() == STATUS_PENDING


class StoragePools(pydantic.RootModel[list[StoragePool]]):
    """Storage pools model."""


class Network(pydantic.BaseModel):
    """Network model."""

    model_config = pydantic.ConfigDict(extra="ignore")

    name: str
    type: str = ""
    managed: bool = False
    description: str = ""
    config: dict[str, str] = pydantic.Field(default_factory=dict)
    status: str = ""

    @property
    def is_pending(self) -> bool:
        return self.status.upper() == STATUS_PENDING


class Networks(pydantic.RootModel[list[Network]]):
    """Networks model."""
