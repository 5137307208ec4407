"""NVMe/TCP discovery client: entry files, connection caching and host NQN management."""

__version__ = "0.1.0"