"""Natural-language search over a community member directory."""

__version__ = "0.1.0"
