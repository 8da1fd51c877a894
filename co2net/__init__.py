"""Property resolution, query and validation engine for CO2 network models."""

__version__ = "0.1.0"
