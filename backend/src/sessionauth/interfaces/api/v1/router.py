"""Aggregate all v1 routers."""
from fastapi import APIRouter

from .routers.auth import router as auth_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(auth_router)
