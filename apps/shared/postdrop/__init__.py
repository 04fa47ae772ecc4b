"""postdrop: content ingestion, capacity-bounded storage and live fan-out."""

__version__ = "0.1.0"
