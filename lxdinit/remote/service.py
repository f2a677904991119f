# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""Services wrapping the LXD REST API.

Every LXD response is a JSON document whose "metadata" field carries the
payload; errors carry an "error" field and an "error_code".
"""

import logging
from typing import Any

import requests
import tenacity

from lxdinit.errors import LxdInitException
from lxdinit.remote.models import Network, Networks, StoragePool, StoragePools

LOG = logging.getLogger(__name__)

API_VERSION = "1.0"
CERTIFICATE_ALREADY_TRUSTED = "Certificate already in trust store"
READY_WAIT_SECONDS = 1
READY_TIMEOUT_SECONDS = 30


class RemoteServiceUnavailableException(LxdInitException):
    """Raised when the LXD API cannot be reached."""


class ResourceNotFoundException(LxdInitException):
    """Raised when the requested resource does not exist."""


class RemoteServiceException(LxdInitException):
    """Raised when the LXD API answers with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BaseService:
    """A service talking to one LXD endpoint."""

    def __init__(self, session: requests.Session, endpoint: str):
        self._session = session
        self._endpoint = endpoint.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self._endpoint}/{API_VERSION}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = self._url(path)
        LOG.debug(f"[{method}] {url}")
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.exceptions.ConnectionError as e:
            raise RemoteServiceUnavailableException(str(e)) from e
        except requests.exceptions.RequestException as e:
            raise RemoteServiceException(str(e)) from e

        try:
            content = response.json()
        except ValueError:
            content = {}

        if response.status_code == 404:
            raise ResourceNotFoundException(content.get("error") or f"{path} not found")
        if response.status_code >= 400 or content.get("type") == "error":
            error = content.get("error") or response.reason or "unknown error"
            raise RemoteServiceException(error, response.status_code)

        return content.get("metadata")

    def _get(self, path: str, **kwargs) -> Any:
        return self._request("GET", path, **kwargs)

    def _post(self, path: str, data: dict, **kwargs) -> Any:
        return self._request("POST", path, json=data, **kwargs)


class StoragePoolService(BaseService):
    """Storage pools of an LXD server or cluster."""

    def list(self) -> list[StoragePool]:
        pools = self._get("storage-pools", params={"recursion": 1})
        return StoragePools.model_validate(pools or []).root

    def get(self, name: str) -> StoragePool:
        return StoragePool.model_validate(self._get(f"storage-pools/{name}"))

    def exists(self, name: str) -> bool:
        try:
            self.get(name)
        except ResourceNotFoundException:
            return False
        return True


class NetworkService(BaseService):
    """Networks of an LXD server or cluster."""

    def list(self) -> list[Network]:
        networks = self._get("networks", params={"recursion": 1})
        return Networks.model_validate(networks or []).root

    def get(self, name: str) -> Network:
        return Network.model_validate(self._get(f"networks/{name}"))

    def exists(self, name: str) -> bool:
        try:
            self.get(name)
        except ResourceNotFoundException:
            return False
        return True


class CertificateService(BaseService):
    """Trust store of an LXD server."""

    def add(self, certificate: str, name: str, password: str) -> None:
        """Add a client certificate to the trust store.

        :param certificate: base64 encoded DER certificate
        :param name: name of the trust store entry
        :param password: trust password of the server
        """
        data = {
            "type": "client",
            "certificate": certificate,
            "name": name,
            "password": password,
        }
        try:
            self._post("certificates", data)
        except RemoteServiceException as e:
            if CERTIFICATE_ALREADY_TRUSTED in str(e):
                LOG.debug(f"Certificate {name} already trusted")
                return
            raise


class ServerService(BaseService):
    """The LXD server itself."""

    def get(self) -> dict:
        return self._get("") or {}

    @tenacity.retry(
        wait=tenacity.wait_fixed(READY_WAIT_SECONDS),
        stop=tenacity.stop_after_delay(READY_TIMEOUT_SECONDS),
        retry=tenacity.retry_if_exception_type(RemoteServiceUnavailableException),
        reraise=True,
    )
    def wait_ready(self) -> None:
        """Wait for the daemon to answer on its API."""
        self.get()
