"""API routers."""

from chirp.routers.auth import router as auth_router
from chirp.routers.microposts import router as microposts_router
from chirp.routers.users import router as users_router

__all__ = ["auth_router", "users_router", "microposts_router"]
