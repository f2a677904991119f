# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0


class LxdInitException(Exception):
    """Base exception for lxdinit."""


class UserAbortedException(LxdInitException):
    """Raised when the operator explicitly declines to continue."""

    def __init__(self, message: str = "User aborted configuration"):
        super().__init__(message)


class TrustSetupException(LxdInitException):
    """Raised when the trust relationship with a cluster cannot be set up."""


class StorageDriverUnavailableException(LxdInitException):
    """Raised when no storage driver can serve the requested pool role."""


class StoragePoolExistsException(LxdInitException):
    """Raised when a storage pool with a fixed name already exists."""


class ThinProvisioningToolsMissingException(LxdInitException):
    """Raised when LVM thin provisioning tools are missing and not waived."""
