"""Admin surface for the UAT app.

Serves /admin (login, projects) and /api (share tokens). Session and
share-token signing lives in `admin.auth`.
"""

from .router import api_router, router

__all__ = ["router", "api_router"]
