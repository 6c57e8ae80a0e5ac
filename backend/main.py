"""
Class Council — Grade Computation & Ranking Engine
FastAPI backend entry point.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routes.council import CONFIG, router as council_router

# Load environment
load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "My School")
SCHOOL_YEAR = os.getenv("SCHOOL_YEAR", "")
# Comma-separated allowed origins, e.g. http://localhost:5173,https://app.example.com
raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]

app = FastAPI(
    title="Class Council API",
    description=(
        "Grade book engine: subject and term averages, ranks, council "
        "decisions, annual promotion and class statistics."
    ),
    version="1.0.0",
)

# CORS — allow the front-end dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(council_router, prefix="/api/council", tags=["Council"])


@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "school_name": SCHOOL_NAME,
        "school_year": SCHOOL_YEAR,
        "admission_threshold": CONFIG.admission_threshold,
    }
