"""Public analytics share links: /share/analytics/{slug}/{token}."""

from .router import router

__all__ = ["router"]
