"""API routes for DXTREE backend."""

from fastapi import APIRouter

from backend.routes import monitoring, predict, tables

api_router = APIRouter(prefix="/api", tags=["api"])

api_router.include_router(monitoring.router)
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(predict.router, prefix="/predict", tags=["predict"])
