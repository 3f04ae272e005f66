import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
from pydantic import ValidationError

from app.config import Config
from app.db.database import db
from app.routers import health, products, users
from app.exceptions import (
    AppException,
    app_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.connect()
    yield
    await db.disconnect()


app = FastAPI(
    title="Bookstore API",
    version="1.0.0",
    description="Catalog of books and stationery with cookie based user sessions",
    lifespan=lifespan
)

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(ValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Cookies are sent cross-origin, so origins must be explicit
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded images, the directory must exist before the first upload
Path(Config.MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
app.mount(Config.MEDIA_URL, StaticFiles(directory=Config.MEDIA_ROOT), name="media")

# Include routers
app.include_router(health.router)
app.include_router(products.router)
app.include_router(users.router)
