from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.logger import setup_logger
from app.models import team_member  # noqa: F401  registers the table on Base
from app.models.database import Base, SessionLocal, engine
from app.routers import auth_router, diagnostics_router, logs_router, requisitions_router, team_members_router
from app.service import team_directory_service

logger = setup_logger("app_logger")

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        team_directory_service.seed_from_blob(db, settings.team_members_data)
    finally:
        db.close()
    logger.info("Requisition dashboard API started")
    yield


app = FastAPI(
    title="Content Requisition Dashboard API",
    description="Lists and updates content-operations requisitions kept in a Google Sheet, "
                "and manages the team directory used to log in.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["X-Frame-Options"] = "DENY"
    return response


register_exception_handlers(app)

app.include_router(requisitions_router.router)
app.include_router(team_members_router.router)
app.include_router(auth_router.router)
app.include_router(diagnostics_router.router)
app.include_router(logs_router.router)


@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Welcome to the Content Requisition Dashboard API"}
