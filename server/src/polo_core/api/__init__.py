"""FastAPI routes for Polo Core."""

from polo_core.api.auth import ConsoleCaller, TenantCaller, UserCaller
from polo_core.api.routes import router

__all__ = ["ConsoleCaller", "TenantCaller", "UserCaller", "router"]
