"""bibflow normalizes bibliographic source formats into one intermediate schema."""

__version__ = "0.4.0"
