"""API router for the itemzip API."""

from fastapi import APIRouter

from itemzip.api.v1.endpoints import archives, public

api_router = APIRouter()
api_router.include_router(archives.router, tags=["archives"])
api_router.include_router(public.router, prefix="/public", tags=["public"])
