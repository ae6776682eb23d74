"""Fleet management API over a hosted data platform."""

__version__ = "1.0.0"
