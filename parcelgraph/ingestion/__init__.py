# Event resolution and materialization pipeline
from .events import EventGate, EventKind, InboundEvent
from .metadata import COUNTY_LABEL, MetadataDispatcher, RootMetadata
from .pipeline import EventProcessor, ProcessingResult, ProcessingStatus, process_event
from .walker import GraphWalker, WalkResult

__all__ = [
    "COUNTY_LABEL",
    "EventGate",
    "EventKind",
    "EventProcessor",
    "GraphWalker",
    "InboundEvent",
    "MetadataDispatcher",
    "ProcessingResult",
    "ProcessingStatus",
    "RootMetadata",
    "WalkResult",
    "process_event",
]
