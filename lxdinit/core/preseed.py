# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""The configuration planned by `lxd init`, in preseed form."""

import json
import logging
import typing

import pydantic
import yaml

from lxdinit.core.common import FORMAT_JSON, FORMAT_YAML, str_presenter
from lxdinit.remote.models import Network, StoragePool

LOG = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"

# Keys whose value only makes sense on one cluster member
NODE_LOCAL_POOL_KEYS = frozenset({"source"})
NODE_LOCAL_NETWORK_KEYS = frozenset({"bridge.external_interfaces"})

BRIDGE_CONFIG_KEYS = frozenset(
    {
        "bridge.external_interfaces",
        "ipv4.address",
        "ipv4.nat",
        "ipv6.address",
        "ipv6.nat",
    }
)


def _inherit_config(
    remote: dict[str, str], overrides: dict[str, str], node_local: frozenset[str]
) -> dict[str, str]:
    config = {
        key: value
        for key, value in remote.items()
        if key not in node_local or value == ""
    }
    config.update(overrides)
    return config


def _check_overrides(overrides: dict[str, str], allowed: frozenset[str]) -> None:
    unknown = sorted(set(overrides) - allowed)
    if unknown:
        raise ValueError(
            f"Only node-local keys can be overridden: {', '.join(unknown)}"
        )


class StoragePoolSpec(pydantic.BaseModel):
    """A storage pool to create on this node."""

    name: str
    driver: str
    description: str = ""
    config: dict[str, str] = pydantic.Field(default_factory=dict)

    @classmethod
    def from_remote(
        cls, pool: StoragePool, overrides: dict[str, str] | None = None
    ) -> "StoragePoolSpec":
        """Inherit a cluster pool, only replacing node-local keys.

        Node-local keys set on the remote are dropped unless overridden; a
        remote or overridden empty value is kept as such.
        """
        overrides = overrides or {}
        _check_overrides(overrides, NODE_LOCAL_POOL_KEYS)
        config = _inherit_config(pool.config, overrides, NODE_LOCAL_POOL_KEYS)
        return cls(
            name=pool.name,
            driver=pool.driver,
            description=pool.description,
            config=config,
        )


class NetworkSpec(pydantic.BaseModel):
    """A network to create on this node."""

    name: str
    type: str = "bridge"
    managed: bool = True
    description: str = ""
    config: dict[str, str] = pydantic.Field(default_factory=dict)

    @classmethod
    def bridge(cls, name: str, config: dict[str, str]) -> "NetworkSpec":
        """Build a new managed bridge."""
        unknown = set(config) - BRIDGE_CONFIG_KEYS
        if unknown:
            raise ValueError(
                f"Unsupported bridge configuration: {', '.join(sorted(unknown))}"
            )
        return cls(name=name, type="bridge", managed=True, config=config)

    @classmethod
    def from_remote(
        cls, network: Network, overrides: dict[str, str] | None = None
    ) -> "NetworkSpec":
        """Inherit a cluster network, only replacing node-local keys."""
        overrides = overrides or {}
        _check_overrides(overrides, NODE_LOCAL_NETWORK_KEYS)
        config = _inherit_config(network.config, overrides, NODE_LOCAL_NETWORK_KEYS)
        return cls(
            name=network.name,
            type=network.type,
            managed=True,
            description=network.description,
            config=config,
        )


class Profile(pydantic.BaseModel):
    name: str
    description: str = ""
    config: dict[str, str] = pydantic.Field(default_factory=dict)
    devices: dict[str, dict[str, str]] = pydantic.Field(default_factory=dict)


class TrustedRemote(pydantic.BaseModel):
    """An existing cluster member this node negotiates trust with."""

    address: str
    certificate: str
    fingerprint: str
    password: str = pydantic.Field(repr=False)
    fingerprint_confirmed: bool = False
    trust_established: bool = False


class StandaloneIntent(pydantic.BaseModel):
    kind: typing.Literal["standalone"] = "standalone"


class BootstrapIntent(pydantic.BaseModel):
    kind: typing.Literal["bootstrap"] = "bootstrap"
    server_name: str


class JoinIntent(pydantic.BaseModel):
    kind: typing.Literal["join"] = "join"
    server_name: str
    remote: TrustedRemote
    storage_pools: list[StoragePoolSpec] = pydantic.Field(default_factory=list)
    networks: list[NetworkSpec] = pydantic.Field(default_factory=list)

    @pydantic.model_validator(mode="after")
    def check_trusted(self) -> "JoinIntent":
        if not self.remote.fingerprint_confirmed:
            raise ValueError("The cluster certificate fingerprint was not confirmed")
        if not self.remote.trust_established:
            raise ValueError("No trust relationship with the cluster")
        return self


ClusterIntent = typing.Annotated[
    StandaloneIntent | BootstrapIntent | JoinIntent,
    pydantic.Field(discriminator="kind"),
]


class _PreseedDumper(yaml.SafeDumper):
    pass


_PreseedDumper.add_representer(str, str_presenter)


class InitConfig(pydantic.BaseModel):
    """Everything `lxd init` should apply to this node."""

    config: dict[str, str] = pydantic.Field(default_factory=dict)
    networks: list[NetworkSpec] = pydantic.Field(default_factory=list)
    storage_pools: list[StoragePoolSpec] = pydantic.Field(default_factory=list)
    profiles: list[Profile] = pydantic.Field(default_factory=list)
    cluster: ClusterIntent = pydantic.Field(default_factory=StandaloneIntent)

    @pydantic.model_validator(mode="after")
    def check_default_profile(self) -> "InitConfig":
        names = [profile.name for profile in self.profiles]
        if names.count(DEFAULT_PROFILE) != 1:
            raise ValueError("Exactly one default profile is required")
        return self

    @classmethod
    def empty(cls) -> "InitConfig":
        return cls(profiles=[Profile(name=DEFAULT_PROFILE)])

    @property
    def default_profile(self) -> Profile:
        for profile in self.profiles:
            if profile.name == DEFAULT_PROFILE:
                return profile
        raise ValueError("No default profile")

    @property
    def is_clustered(self) -> bool:
        return not isinstance(self.cluster, StandaloneIntent)

    @property
    def is_joining(self) -> bool:
        return isinstance(self.cluster, JoinIntent)

    def has_storage_pool(self, name: str) -> bool:
        return any(pool.name == name for pool in self.storage_pools)

    def has_network(self, name: str) -> bool:
        return any(network.name == name for network in self.networks)

    def _cluster_preseed(self) -> dict | None:
        match self.cluster:
            case BootstrapIntent(server_name=server_name):
                return {"server_name": server_name, "enabled": True}
            case JoinIntent(server_name=server_name, remote=remote):
                return {
                    "server_name": server_name,
                    "enabled": True,
                    "cluster_address": remote.address,
                    "cluster_certificate": remote.certificate,
                    "cluster_password": remote.password,
                }
        return None

    def to_preseed(self) -> dict:
        """Return the configuration laid out like an `lxd init` preseed."""
        preseed = {
            "config": dict(self.config),
            "networks": [network.model_dump() for network in self.networks],
            "storage_pools": [pool.model_dump() for pool in self.storage_pools],
            "profiles": [profile.model_dump() for profile in self.profiles],
        }
        if (cluster := self._cluster_preseed()) is not None:
            preseed["cluster"] = cluster
        return preseed

    def render(self, format: str = FORMAT_YAML) -> str:
        """Serialize the preseed for review or for `lxd init --preseed`."""
        preseed = self.to_preseed()
        if format == FORMAT_JSON:
            return json.dumps(preseed, indent=2)
        if format == FORMAT_YAML:
            return yaml.dump(
                preseed,
                Dumper=_PreseedDumper,
                sort_keys=False,
                default_flow_style=False,
            )
        raise ValueError(f"Unsupported format {format!r}")
