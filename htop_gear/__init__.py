"""HTop Gear: your process table as a terminal race."""

__version__ = "0.1.0"
