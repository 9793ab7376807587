"""
Error hierarchy for the resolution pipeline.

MalformedInput errors are fatal for an event and are raised before any write.
TransientFetch errors come out of the gateway layer; relationship and leaf
branches absorb them, the metadata stage turns them into a failed event.
"""

from __future__ import annotations

from typing import Optional


class ParcelGraphError(Exception):
    """Base class for all parcelgraph errors."""


class ConfigurationError(ParcelGraphError):
    """Raised when startup configuration is unusable."""


class MalformedInputError(ParcelGraphError, ValueError):
    """Raised when an inbound event or hash cannot be interpreted."""


class MalformedHashError(MalformedInputError):
    """Raised when a content hash is not 32 bytes of hex."""

    def __init__(self, value: object, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Malformed content hash {value!r}: {reason}")


class TransientFetchError(ParcelGraphError):
    """A gateway fetch that may succeed if retried.

    `failure_tier` is "tier1" for network-level failures (connection, DNS,
    timeout, 429/502/504) and "tier2" for everything else.
    """

    def __init__(
        self,
        message: str,
        cid: Optional[str] = None,
        endpoint: Optional[str] = None,
        failure_tier: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.cid = cid
        self.endpoint = endpoint
        self.failure_tier = failure_tier
        self.status_code = status_code
        super().__init__(message)


class ShapeMismatchError(TransientFetchError):
    """A 2xx payload that is not JSON or fails its validator."""


class GatewayExhaustedError(TransientFetchError):
    """Raised once a resolution has used up its pass budget."""

    def __init__(
        self,
        cid: str,
        passes: int,
        last_error: Optional[BaseException] = None,
    ) -> None:
        self.passes = passes
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(
            f"No gateway returned a valid payload for {cid} after {passes} pass(es){detail}",
            cid=cid,
        )
