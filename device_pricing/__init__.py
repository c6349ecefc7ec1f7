"""Medical device classification and reference-price resolution engine."""

__version__ = "0.1.0"
