"""Building blocks for the HTTP API of an image labelling platform."""

__version__ = "0.1.0"