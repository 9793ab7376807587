"""parcelgraph: content-addressed property record materialization."""

__version__ = "0.1.0"
