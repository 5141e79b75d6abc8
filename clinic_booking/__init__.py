"""Patient-facing clinic booking client."""

__version__ = "0.3.0"
