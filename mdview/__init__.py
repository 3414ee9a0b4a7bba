"""mdview: minimal desktop markdown file viewer."""

__version__ = "1.0.0"
