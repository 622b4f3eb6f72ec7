"""tlszones: tumor margin zoning and TLS classification."""

__version__ = "0.1.0"
