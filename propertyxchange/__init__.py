"""PropertyXchange real-estate marketplace backend."""

__version__ = "0.1.0"
