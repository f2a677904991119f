# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

from rich.console import Console
from rich.status import Status

from lxdinit.core import host
from lxdinit.core.common import BaseStep, Result, ResultType
from lxdinit.core.preseed import (
    BootstrapIntent,
    InitConfig,
    JoinIntent,
    StandaloneIntent,
    TrustedRemote,
)
from lxdinit.core.questions import (
    ConfirmQuestion,
    PasswordPromptQuestion,
    PromptQuestion,
)
from lxdinit.core.settings import Settings
from lxdinit.errors import LxdInitException, TrustSetupException, UserAbortedException
from lxdinit.remote.client import (
    Client,
    certificate_der_base64,
    certificate_fingerprint,
    fetch_certificate,
)
from lxdinit.remote.service import RemoteServiceUnavailableException
from lxdinit.utils import canonical_network_address, get_hostname

LOG = logging.getLogger(__name__)

TRUST_NAME_PREFIX = "lxd.cluster."


class TrustNegotiator:
    """Sets up the trust relationship between this node and a cluster."""

    def __init__(
        self,
        settings: Settings,
        console: Console | None = None,
        show_hint: bool = False,
    ):
        self.settings = settings
        self.console = console or Console()
        self.show_hint = show_hint

    def _fetch_remote_certificate(self) -> tuple[str, str]:
        """Ask for a cluster member until its certificate can be read."""
        while True:
            answer = PromptQuestion(
                "IP address or FQDN of an existing cluster node",
                description="The default port is used when none is given.",
                validation_function=lambda answer: canonical_network_address(
                    answer, self.settings.default_port
                ),
                console=self.console,
                show_hint=self.show_hint,
            ).ask()
            address = canonical_network_address(answer, self.settings.default_port)
            try:
                return address, fetch_certificate(address)
            except RemoteServiceUnavailableException as e:
                LOG.debug(f"Failed to fetch certificate from {address}", exc_info=True)
                self.console.print(f"Error connecting to existing cluster node: {e}")

    def ask_remote(self) -> TrustedRemote:
        """Ask which cluster to join and confirm its identity.

        :raises: UserAbortedException if the fingerprint is rejected
        """
        address, certificate = self._fetch_remote_certificate()
        fingerprint = certificate_fingerprint(certificate)
        self.console.print(f"Cluster certificate fingerprint: {fingerprint}")
        confirmed = ConfirmQuestion(
            "ok?",
            default_value=False,
            console=self.console,
            show_hint=self.show_hint,
        ).ask()
        if not confirmed:
            raise UserAbortedException()

        password = PasswordPromptQuestion(
            "Cluster trust password",
            confirm=False,
            console=self.console,
            show_hint=self.show_hint,
        ).ask()
        return TrustedRemote(
            address=address,
            certificate=certificate,
            fingerprint=fingerprint,
            password=password,
            fingerprint_confirmed=True,
        )

    def establish_trust(self, remote: TrustedRemote) -> tuple[TrustedRemote, Client]:
        """Add this node's certificate to the cluster trust store.

        :return: the remote flagged as trusted and a client authenticated
                 against it
        :raises: TrustSetupException if the remote refused the certificate
        """
        if not remote.fingerprint_confirmed:
            raise TrustSetupException("Cluster certificate fingerprint not confirmed")

        try:
            local_certificate = self.settings.server_cert.read_text()
            local_fingerprint = certificate_fingerprint(local_certificate)
        except (OSError, ValueError) as e:
            raise TrustSetupException(
                f"Unable to load server certificate {self.settings.server_cert}: {e}"
            ) from e

        anonymous = Client.from_https(remote.address, remote.certificate)
        try:
            anonymous.certificates.add(
                certificate_der_base64(local_certificate),
                f"{TRUST_NAME_PREFIX}{local_fingerprint}",
                remote.password,
            )
        except LxdInitException as e:
            raise TrustSetupException(str(e)) from e

        LOG.debug(f"Trust established with {remote.address}")
        client_cert = (str(self.settings.server_cert), str(self.settings.server_key))
        client = Client.from_https(
            remote.address, remote.certificate, client_cert=client_cert
        )
        return remote.model_copy(update={"trust_established": True}), client


class AskClusteringStep(BaseStep):
    """Decide whether this node runs standalone, bootstraps or joins a cluster."""

    def __init__(self, config: InitConfig, settings: Settings):
        super().__init__("Clustering", "Planning clustering")
        self.config = config
        self.settings = settings
        self.clustering = False
        self.server_name = ""
        self.server_address = ""
        self.trust_password: str | None = None
        self.remote: TrustedRemote | None = None
        self.negotiator: TrustNegotiator | None = None

    def has_prompts(self) -> bool:
        """Returns true if the step has prompts that it can ask the user."""
        return True

    def prompt(self, console: Console | None = None, show_hint: bool = False) -> None:
        """Ask the clustering questions, and which cluster to join if any."""
        self.clustering = ConfirmQuestion(
            "Would you like to use LXD clustering?",
            default_value=False,
            console=console,
            show_hint=show_hint,
        ).ask()
        if not self.clustering:
            return

        self.server_name = PromptQuestion(
            "What name should be used to identify this node in the cluster?",
            default_value=get_hostname(),
            console=console,
            show_hint=show_hint,
        ).ask()
        address = PromptQuestion(
            "What IP address or DNS name should be used to reach this node?",
            default_value=host.network_interface_address() or None,
            validation_function=lambda answer: canonical_network_address(
                answer, self.settings.default_port
            ),
            console=console,
            show_hint=show_hint,
        ).ask()
        self.server_address = canonical_network_address(
            address, self.settings.default_port
        )

        joining = ConfirmQuestion(
            "Are you joining an existing cluster?",
            default_value=False,
            console=console,
            show_hint=show_hint,
        ).ask()
        if joining:
            self.negotiator = TrustNegotiator(self.settings, console, show_hint)
            self.remote = self.negotiator.ask_remote()
            wipe = ConfirmQuestion(
                "All existing data is lost when joining a cluster, continue?",
                default_value=False,
                console=console,
                show_hint=show_hint,
            ).ask()
            if not wipe:
                raise UserAbortedException()
            return

        password_auth = ConfirmQuestion(
            "Setup password authentication on the cluster?",
            default_value=True,
            console=console,
            show_hint=show_hint,
        ).ask()
        if password_auth:
            self.trust_password = PasswordPromptQuestion(
                "Trust password for new clients",
                console=console,
                show_hint=show_hint,
            ).ask()

    def is_skip(self, status: Status | None = None) -> Result:
        """Standalone nodes have nothing to configure here."""
        if not self.clustering:
            self.config.cluster = StandaloneIntent()
            return Result(ResultType.SKIPPED)
        return Result(ResultType.COMPLETED)

    def run(self, status: Status | None = None) -> Result:
        """Record the cluster intent, setting up trust when joining.

        When joining, the message of the result is a client authenticated
        against the cluster.
        """
        self.config.config["core.https_address"] = self.server_address

        if self.remote is None:
            self.config.cluster = BootstrapIntent(server_name=self.server_name)
            if self.trust_password is not None:
                self.config.config["core.trust_password"] = self.trust_password
            return Result(ResultType.COMPLETED)

        self.update_status(status, "setting up trust with the cluster")
        negotiator = self.negotiator or TrustNegotiator(self.settings)
        try:
            remote, client = negotiator.establish_trust(self.remote)
        except TrustSetupException as e:
            LOG.debug("Failed to setup trust", exc_info=True)
            return Result(
                ResultType.FAILED,
                f"Failed to setup trust relationship with cluster: {e}",
            )

        self.config.cluster = JoinIntent(server_name=self.server_name, remote=remote)
        return Result(ResultType.COMPLETED, client)
