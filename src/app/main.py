# src/app/main.py
from __future__ import annotations

import logging
import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src.app.config import settings
from src.app.routers.recipes import router as recipes_router

# stdout logging for dev and containers
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Recipe Generator API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recipes_router)

if settings.IMAGE_STORAGE_BACKEND == "local":
    uploads_dir = Path(settings.IMAGE_STORAGE_PATH)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.MEDIA_URL_PREFIX.rstrip("/") or "/uploads", StaticFiles(directory=uploads_dir), name="uploads")


@app.get("/health")
def health():
    return {"ok": True}
