"""API router: all JSON endpoints under the /api prefix."""

from fastapi import APIRouter

from .chat.routes import router as chat_router
from .donations.routes import router as donations_router
from .food.routes import router as food_router
from .notifications.routes import router as notifications_router
from .recipes.routes import router as recipes_router
from .stakeholders.routes import router as stakeholders_router
from .tasks.routes import router as digests_router

api_router = APIRouter(prefix="/api")

api_router.include_router(stakeholders_router)
api_router.include_router(food_router)
api_router.include_router(donations_router)
api_router.include_router(notifications_router)
api_router.include_router(chat_router)
api_router.include_router(recipes_router)
api_router.include_router(digests_router)
