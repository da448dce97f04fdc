# /backend/app/main.py

from __future__ import annotations
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import CORS_ORIGINS, LOG_LEVEL
from app.db import get_db
from app.api.routers import auth, moods, meditations, therapists, bookings, symptoms
from app.kafka import start_kafka, stop_kafka
from app.services.session_events import session_events, log_session_event

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 앱 시작 시
    await start_kafka()
    unsubscribe = session_events.subscribe(log_session_event)
    try:
        yield
    finally:
        # 앱 종료 시
        unsubscribe()
        await stop_kafka()


app = FastAPI(
    title="MindCare API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Something went wrong. Please try again."})


app.include_router(auth.router)
app.include_router(moods.router)
app.include_router(meditations.router)
app.include_router(therapists.router)
app.include_router(bookings.router)
app.include_router(symptoms.router)


@app.get("/health")
async def health():
    return {"ok": True}


@app.get("/db-health")
async def db_health(db: AsyncSession = Depends(get_db)):
    result = await db.execute(text("SELECT 1"))
    return {"db": "ok", "result": result.scalar_one()}
