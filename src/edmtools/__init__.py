"""edmtools – JPI EDM engine monitor recording decoder."""

__version__ = "0.1.0"
