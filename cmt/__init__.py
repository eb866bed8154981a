"""Live container migration between hosts using checkpoint/restore."""

__version__ = "0.1.0"
