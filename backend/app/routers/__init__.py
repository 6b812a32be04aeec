# API Routers

from . import health, quotes

__all__ = ["health", "quotes"]
