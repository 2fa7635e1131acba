"""Error taxonomy for the Proxmox VE API client."""

from __future__ import annotations


class ClusterClientError(Exception):
    """Base class for all cluster client failures."""


class ConnectError(ClusterClientError):
    """Raised when the client cannot be built (TLS context, bad endpoint)."""


class RequestError(ClusterClientError):
    """Raised on transport failures and non-2xx HTTP responses."""


class ParseError(ClusterClientError):
    """Raised when a response body is not the expected JSON envelope."""
