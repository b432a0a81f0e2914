import os
from contextlib import asynccontextmanager
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from app.db.db import create_db_and_tables  # noqa: E402
from app.routers import auth, found_items, logs, lost_items, profile  # noqa: E402
from app.utils.app_error import LostAndFoundError, ValidationError  # noqa: E402
from app.utils.logger import setup_logging  # noqa: E402

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:8081").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LostAndFoundError)
async def lost_and_found_error_handler(request: Request, exc: LostAndFoundError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)

    content = {"status": exc.status, "detail": exc.message}
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors

    return JSONResponse(status_code=exc.status_code, content=content)


# Register routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(profile.router, prefix="/profile", tags=["Profile"])
app.include_router(lost_items.router, prefix="/lost", tags=["Lost Items"])
app.include_router(found_items.router, prefix="/found", tags=["Found Items"])
app.include_router(logs.router, prefix="/logs", tags=["Logs"])


@app.get("/")
def root():
    return {"status": "ok"}
