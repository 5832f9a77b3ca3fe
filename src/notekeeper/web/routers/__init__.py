from notekeeper.web.routers.auth import router as auth_router
from notekeeper.web.routers.notes import router as notes_router
from notekeeper.web.routers.profile import router as profile_router

__all__ = [
    "auth_router",
    "notes_router",
    "profile_router",
]
