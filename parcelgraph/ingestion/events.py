"""Inbound chain events and the submitter allow-list gate."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import ConfigDict, Field, ValidationError, field_validator

from parcelgraph.shared.config import Config, collect_allowed_submitters
from parcelgraph.shared.errors import MalformedInputError
from parcelgraph.shared.models import ParcelBaseModel
from parcelgraph.shared.observability import get_logger

logger = get_logger(__name__)


class EventKind(str, Enum):
    """Both kinds carry the same payload and are processed identically."""

    DATA_SUBMITTED = "data_submitted"
    HEARTBEAT = "heartbeat"


class InboundEvent(ParcelBaseModel):
    """A decoded on-chain submission. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content_hash: str = Field(alias="contentHash", min_length=1)
    submitter: str = Field(min_length=1)
    property_hash: str = Field(alias="propertyHash", min_length=1)
    timestamp: Optional[int] = None
    kind: EventKind = EventKind.DATA_SUBMITTED

    @field_validator("submitter", "property_hash", "content_hash")
    @classmethod
    def strip_value(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("value cannot be blank")
        return v

    @classmethod
    def parse(cls, data: Union["InboundEvent", Mapping[str, Any]]) -> "InboundEvent":
        """Build an event, turning validation errors into MalformedInputError."""
        if isinstance(data, cls):
            return data
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise MalformedInputError(f"Invalid inbound event: {exc}") from exc


class EventGate:
    """Admit only events whose submitter is allow-listed."""

    def __init__(self, allowed_submitters: Iterable[str], case_sensitive: bool = False):
        self.case_sensitive = case_sensitive
        self._allowed = {self._normalize(s) for s in allowed_submitters if s}

    @classmethod
    def from_config(
        cls, config: Config, environ: Optional[Mapping[str, str]] = None
    ) -> "EventGate":
        return cls(
            collect_allowed_submitters(config, environ),
            case_sensitive=config.event_gate.case_sensitive,
        )

    def _normalize(self, address: str) -> str:
        address = address.strip()
        return address if self.case_sensitive else address.lower()

    def __len__(self) -> int:
        return len(self._allowed)

    def allows(self, event: InboundEvent) -> bool:
        allowed = self._normalize(event.submitter) in self._allowed
        if not allowed:
            logger.info(
                "event_submitter_rejected",
                submitter=event.submitter,
                property_hash=event.property_hash,
            )
        return allowed
