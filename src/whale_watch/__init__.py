"""Real-time whale trade detection and rolling chart aggregation."""

__version__ = "0.1.0"
