"""kcode: configuration-driven terminal client for CNC-style machines."""

__version__ = "0.1.0"
