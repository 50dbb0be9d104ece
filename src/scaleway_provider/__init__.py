"""Core of the Scaleway infrastructure-as-code provider."""

__version__ = "0.1.0"
