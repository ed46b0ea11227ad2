"""animarr - anime streaming aggregator."""

__version__ = "0.1.0"
