"""dtm -- governance core for a tiered design-token tree."""

__version__ = "0.1.0"
