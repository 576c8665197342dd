"""URL shortener service: short-code allocation, redirects and click counting."""

__version__ = "1.0.0"
