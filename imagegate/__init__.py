"""Image hosting gateway over an object store."""

__version__ = "0.3.0"
