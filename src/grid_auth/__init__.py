"""Grid Auth: API key and session authentication for the media services."""

__version__ = "0.1.0"
