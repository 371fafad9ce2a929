from fastapi import APIRouter
from .users import router as users_router
from .stories import router as stories_router

router = APIRouter()
router.include_router(users_router, tags=['users'])
router.include_router(stories_router, prefix='/story', tags=['stories'])
