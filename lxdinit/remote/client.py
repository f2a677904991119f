# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import base64
import hashlib
import logging
import ssl
from pathlib import Path
from urllib.parse import quote

import requests
import requests_unixsocket
from requests.adapters import HTTPAdapter

from lxdinit.remote.service import (
    CertificateService,
    NetworkService,
    RemoteServiceUnavailableException,
    ServerService,
    StoragePoolService,
)
from lxdinit.utils import split_host_port

LOG = logging.getLogger(__name__)


class PinnedCertificateAdapter(HTTPAdapter):
    """Only trust one server certificate, whatever name it is issued for.

    Cluster members present self-signed certificates whose names rarely match
    the address they are reached on; the fingerprint was confirmed instead.
    """

    def __init__(self, certificate: str, **kwargs):
        self._certificate = certificate
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        context = ssl.create_default_context(cadata=self._certificate)
        context.check_hostname = False
        kwargs["ssl_context"] = context
        kwargs["assert_hostname"] = False
        return super().init_poolmanager(*args, **kwargs)

    def cert_verify(self, conn, url, verify, cert):
        super().cert_verify(conn, url, verify, cert)
        # Only the pinned certificate is trusted, not the system CA bundle
        conn.ca_certs = None
        conn.ca_cert_dir = None


class Client:
    """A client for the LXD REST API."""

    def __init__(self, session: requests.Session, endpoint: str):
        self.endpoint = endpoint
        self.storage_pools = StoragePoolService(session, endpoint)
        self.networks = NetworkService(session, endpoint)
        self.certificates = CertificateService(session, endpoint)
        self.server = ServerService(session, endpoint)

    @classmethod
    def from_socket(cls, socket_path: Path) -> "Client":
        """Client for the local daemon, over its unix socket."""
        endpoint = "http+unix://" + quote(str(socket_path), safe="")
        LOG.debug(f"Connecting to local LXD at {socket_path}")
        return cls(requests_unixsocket.Session(), endpoint)

    @classmethod
    def from_https(
        cls,
        address: str,
        server_cert: str,
        client_cert: tuple[str, str] | None = None,
    ) -> "Client":
        """Client for a remote daemon.

        :param address: host:port of the remote daemon
        :param server_cert: PEM certificate the remote must present
        :param client_cert: paths of the client certificate and its key, None
                            to connect anonymously
        """
        session = requests.Session()
        if client_cert is not None:
            session.cert = client_cert
        session.mount("https://", PinnedCertificateAdapter(server_cert))
        LOG.debug(f"Connecting to remote LXD at {address}")
        return cls(session, f"https://{address}")


def fetch_certificate(address: str) -> str:
    """Return the PEM certificate presented by address, without verifying it.

    :raises: RemoteServiceUnavailableException if address is malformed or no
             TLS connection can be made
    """
    try:
        host, port = split_host_port(address)
        return ssl.get_server_certificate((host, port))
    except (OSError, ValueError) as e:
        raise RemoteServiceUnavailableException(
            f"Unable to read remote TLS certificate: {e}"
        ) from e


def certificate_fingerprint(certificate: str) -> str:
    """SHA-256 fingerprint, in hex, of a PEM certificate."""
    return hashlib.sha256(ssl.PEM_cert_to_DER_cert(certificate)).hexdigest()


def certificate_der_base64(certificate: str) -> str:
    """Encode a PEM certificate the way the certificates API expects it."""
    return base64.b64encode(ssl.PEM_cert_to_DER_cert(certificate)).decode()
