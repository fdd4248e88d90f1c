"""API v1 main router.

Aggregates all v1 API routers into a single router for inclusion in the app.
"""

from fastapi import APIRouter

from bookswap.api.v1.auth import router as auth_router
from bookswap.api.v1.books import router as books_router
from bookswap.api.v1.exchanges import router as exchanges_router
from bookswap.api.v1.genres import router as genres_router
from bookswap.api.v1.reviews import router as reviews_router
from bookswap.api.v1.users import router as users_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["Auth"])
router.include_router(books_router, prefix="/books", tags=["Books"])
router.include_router(exchanges_router, prefix="/exchanges", tags=["Exchanges"])
router.include_router(users_router, prefix="/users", tags=["Users"])
router.include_router(reviews_router, prefix="/reviews", tags=["Reviews"])
router.include_router(genres_router, prefix="/genres", tags=["Genres"])
