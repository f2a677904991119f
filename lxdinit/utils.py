# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import ipaddress
import logging
import socket
import sys

import click
from click import decorators

from lxdinit.errors import LxdInitException

LOG = logging.getLogger(__name__)
DEFAULT_HOSTNAME = "lxd"


def get_hostname() -> str:
    """Return the local hostname, falling back to a generic node name."""
    try:
        hostname = socket.gethostname()
    except OSError:
        LOG.debug("Failed to look up hostname", exc_info=True)
        return DEFAULT_HOSTNAME
    return hostname or DEFAULT_HOSTNAME


def split_host_port(address: str) -> tuple[str, int]:
    """Split a 'host:port' or '[v6]:port' address.

    :raises: ValueError if the address does not carry a valid port
    """
    if address.startswith("["):
        host, sep, port = address[1:].partition("]:")
        if not sep:
            raise ValueError(f"missing port in address {address!r}")
    else:
        host, sep, port = address.rpartition(":")
        if not sep:
            raise ValueError(f"missing port in address {address!r}")
        if ":" in host:
            raise ValueError(f"too many colons in address {address!r}")
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f"invalid port {port!r} in address {address!r}")
    return host, int(port)


def join_host_port(host: str, port: int) -> str:
    """Join host and port, bracketing IPv6 literals."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def canonical_network_address(address: str, default_port: int) -> str:
    """Return address as host:port, adding the default port when missing.

    Bare IPv6 literals are bracketed, so that '::1' becomes '[::1]:8443'.

    :raises: ValueError if the address has no host or is malformed
    """
    address = address.strip()
    try:
        host, _ = split_host_port(address)
    except ValueError:
        pass
    else:
        if not host:
            raise ValueError(f"missing host in address {address!r}")
        return address

    host = address.strip("[]")
    if not host:
        raise ValueError("missing host in address")
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        if ":" in host:
            raise ValueError(f"invalid address {address!r}") from None
        return join_host_port(host, default_port)
    return join_host_port(str(ip), default_port)


def click_option_show_hints(func: decorators.FC) -> decorators.FC:
    return click.option(
        "--show-hints",
        is_flag=True,
        default=False,
        help="Display question hints if available.",
    )(func)


class CatchGroup(click.Group):
    """Click group that turns errors into short messages with a non-zero exit."""

    def __call__(self, *args, **kwargs):
        """Invoke the group, catching lxdinit and unexpected errors."""
        try:
            return self.main(*args, **kwargs)
        except LxdInitException as e:
            LOG.debug("Planning failed", exc_info=True)
            LOG.error(f"Error: {e}")
            sys.exit(1)
        except Exception as e:
            LOG.debug("Unexpected error", exc_info=True)
            LOG.warning(
                "An unexpected error has occurred."
                " Please run with --verbose for more information."
            )
            LOG.error(f"Error: {e}")
            sys.exit(1)
