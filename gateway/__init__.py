"""Integration Gateway - authenticated proxy and webhook receiver for external APIs."""

__version__ = "0.1.0"
