"""Product API: cache-aside product catalog over a primary/replica store."""

__version__ = "0.1.0"
