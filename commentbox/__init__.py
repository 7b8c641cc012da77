"""commentbox - a small comment hosting backend."""

__version__ = "0.1.0"
