"""Geographic job-to-worker matching engine."""

__version__ = "0.1.0"
