# tracker/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tracker import settings
from tracker.errors import (
    ConcurrencyConflictError,
    EmptyBulkInputError,
    InvalidPositionError,
    NotFoundError,
    ValidationError,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("tracker")


# ---------------- DATABASE INIT ----------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    from tracker.database import Base, engine
    from tracker.models.project import Project  # noqa: F401  registers every model

    logger.info("database_init", extra={"database_url": engine.url.render_as_string(hide_password=True)})
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Story Tracker", lifespan=lifespan)

# ---------------- CORS ----------------
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

if settings.FRONTEND_ORIGIN:
    origins.append(settings.FRONTEND_ORIGIN)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------- ERRORS ----------------
@app.exception_handler(NotFoundError)
def not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc), "entity": exc.entity})


@app.exception_handler(ValidationError)
def validation_failed(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "fields": exc.fields})


@app.exception_handler(InvalidPositionError)
def invalid_position(request: Request, exc: InvalidPositionError):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "last_position": exc.last_position},
    )


@app.exception_handler(EmptyBulkInputError)
def empty_bulk_input(request: Request, exc: EmptyBulkInputError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ConcurrencyConflictError)
def concurrency_conflict(request: Request, exc: ConcurrencyConflictError):
    logger.warning("request_conflict", extra={"path": request.url.path})
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# ---------------- ROUTERS ----------------
from tracker.project.project_router import router as project_router  # noqa: E402
from tracker.story.story_router import router as story_router  # noqa: E402

app.include_router(project_router)
app.include_router(story_router)


# ---------------- ROOT ----------------
@app.get("/")
def read_root():
    return {"message": "Backend running successfully"}
