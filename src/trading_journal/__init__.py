"""Trading journal: trade log storage and the metrics engine behind its analytics."""

__version__ = "0.1.0"
