from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from tasklane.config import get_settings
from tasklane.database import create_db_and_tables
from tasklane.errors import StoreError, Unauthorized, ValidationError
from tasklane.logging_config import setup_logging
from tasklane.routers import recurring, tasks, workspaces

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: logging and tables
    setup_logging()
    create_db_and_tables()
    yield


app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(tasks.router)
app.include_router(recurring.router)
app.include_router(workspaces.router)


@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized):
    return JSONResponse(status_code=401, content={"detail": exc.message})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.get("/health")
def health_check():
    return {"status": "ok", "app": settings.app_name}
