"""Queue-driven courier dispatch: route assignment and invoice generation workers."""

__version__ = "0.1.0"
