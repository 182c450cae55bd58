from fastapi import APIRouter
from . import admin, auth, catalog, history, my_list

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
api_router.include_router(history.router, prefix="/history", tags=["history"])
api_router.include_router(my_list.router, prefix="/my-list", tags=["my-list"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])

__all__ = ["api_router"]
