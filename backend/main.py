"""
Academics — school reporting and class assignment backend.
FastAPI backend entry point.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment before the route modules read their settings
load_dotenv()

from academics.layout import PASS_ATTENDANCE, PASS_AVERAGE  # noqa: E402
from routes.assignments import router as assignments_router  # noqa: E402
from routes.reports import router as reports_router  # noqa: E402

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "My School")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# Comma-separated allowed origins, e.g. http://localhost:5173,https://app.example.com
raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Academics API",
    description=(
        "Report cards, attendance reports and teacher-to-class links "
        "for school administration."
    ),
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Register route modules
app.include_router(reports_router, prefix="/api/reports", tags=["Reports"])
app.include_router(assignments_router, prefix="/api/assignments", tags=["Assignments"])

logger.info("Academics API ready for %s", SCHOOL_NAME)


@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "school_name": SCHOOL_NAME,
    }


@app.get("/api/config")
async def get_config():
    """Return server configuration to the frontend."""
    return {
        "school_name": SCHOOL_NAME,
        "pass_average": PASS_AVERAGE,
        "pass_attendance": PASS_ATTENDANCE,
    }
