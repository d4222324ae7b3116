from fastapi import APIRouter

from app.api.auth import router as auth_router
from app.api.comments import router as comments_router
from app.api.conversations import router as conversations_router
from app.api.friendships import router as friendships_router
from app.api.groups import router as groups_router
from app.api.media import router as media_router
from app.api.messages import router as messages_router
from app.api.notifications import router as notifications_router
from app.api.posts import router as posts_router
from app.api.users import router as users_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(users_router)
router.include_router(friendships_router)
router.include_router(conversations_router)
router.include_router(messages_router)
router.include_router(groups_router)
router.include_router(posts_router)
router.include_router(comments_router)
router.include_router(notifications_router)
router.include_router(media_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Penpal API"}
