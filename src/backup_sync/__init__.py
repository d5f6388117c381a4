"""Sync local directories to remote hosts with rsync and publish Prometheus timing metrics."""

__version__ = "0.1.0"

__all__ = ["__version__"]
