from .cache_aside import CacheAsideEngine

__all__ = ["CacheAsideEngine"]
