# /backend/app/functions/main.py
# Serverless-style functions, deployed separately from the main API:
#   uvicorn app.functions.main:app --port 8001

from __future__ import annotations
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import LOG_LEVEL
from app.functions import booking_email, symptom_checker
from app.functions.deps import ALLOWED_HEADERS

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="MindCare Functions")

# browsers call these directly, from any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=ALLOWED_HEADERS,
)

app.include_router(booking_email.router)
app.include_router(symptom_checker.router)


@app.get("/health")
async def health():
    return {"ok": True}
