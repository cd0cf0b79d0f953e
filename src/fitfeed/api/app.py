# src/fitfeed/api/app.py
"""
FastAPI application wiring.

Creates the `FastAPI` instance and installs middleware. Endpoints live in
`fitfeed.api.routes`; ranking lives in `fitfeed.ranking`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from fitfeed.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="FitFeed API", version="0.1.0")

# CORS (dev-friendly): allow a local web app to call this API.
# - FITFEED_CORS_ORIGINS="http://localhost:8080,http://127.0.0.1:8080"
# - FITFEED_CORS_ALLOW_LOCAL=0 disables the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("FITFEED_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("FITFEED_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = os.getenv("FITFEED_CORS_ALLOW_ORIGIN_REGEX", "").strip() or (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
)
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)
