"""
DXTREE FastAPI application entrypoint.

Run with: uvicorn backend.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from backend import auth
from backend.database import Base, engine
from backend.models_db import PredictionLogModel, TrainingTableModel  # noqa: F401  (register tables)
from backend.routes import api_router
from backend.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and create DB tables on startup."""
    configure_logging()
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="DXTREE API",
    description="""Symptom questionnaire diagnosis with ID3 decision trees.

Store a training table (symptoms x diseases), then send questionnaire answers
to get the most probable disease. The tree is rebuilt from the table on every
request.

## Authentication
When `DXTREE_API_KEY` is set, include it as `X-API-Key`, `?api_key=` or
`Authorization: Bearer`. `/api/health` and `/api/metrics` are open.
""",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for local frontend dev (Vite default port 5173)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AuthAndRateLimitMiddleware(BaseHTTPMiddleware):
    """Optional API key auth and rate limiting for /api/*."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith("/api/"):
            return await call_next(request)
        key = auth.extract_api_key(request)
        try:
            auth.check_rate_limit(auth.client_id(request, key))
        except auth.RateLimitExceeded:
            return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded."})
        if auth.API_KEY_ENV and not auth.skip_auth_path(path):
            if not key:
                return JSONResponse(status_code=401, content={"detail": "Missing API key. Provide X-API-Key or api_key."})
            if key != auth.API_KEY_ENV:
                return JSONResponse(status_code=403, content={"detail": "Invalid API key."})
        return await call_next(request)


app.add_middleware(AuthAndRateLimitMiddleware)
app.include_router(api_router)


@app.get("/")
def root():
    return {"service": "DXTREE", "docs": "/docs", "api": "/api"}
