"""
Expense Tracker Backend API

A FastAPI backend for personal expenses, trips shared with friends, and settling up.
This module sets up the app and mounts routers - all endpoint logic is in routers/.
"""

import logging
import os
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import models
from database import engine

# Import routers
from routers import analytics, auth, balances, categories, expenses, friends, notifications, trips

logger = logging.getLogger(__name__)


# Create database tables
models.Base.metadata.create_all(bind=engine)

# Comma-separated list of allowed origins, "*" allows any
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Initialize FastAPI app
app = FastAPI(
    title="Expense Tracker API",
    description="API for personal expenses, shared trips and settling up",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(friends.router)
app.include_router(trips.router)
app.include_router(expenses.router)
app.include_router(balances.router)
app.include_router(categories.router)
app.include_router(analytics.router)
app.include_router(notifications.router)


@app.get("/")
def health_check():
    return {
        "message": "Expense Tracker Backend",
        "title": "Personal and shared expense ledger with balances and settle-up suggestions.",
        "status": "running"
    }


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    # Unknown routes only; 404s raised by endpoints keep their detail
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse(
            status_code=404,
            content={"error": "Not Found", "message": "The requested resource was not found"}
        )
    return await http_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Rejected inputs such as Infinity cannot be echoed back as JSON
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors(), exclude={"input"})}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal Server Error", "message": "Something went wrong"}
    )
