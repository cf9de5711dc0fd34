import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from interview_coach.api.v1.interview import interview_router
from interview_coach.api.v1.resume import resume_router
from interview_coach.core.config import settings
from interview_coach.core.exceptions import (
    AppError,
    app_error_handler,
    global_exception_handler,
    http_exception_handler,
)
from interview_coach.core.logger import setup_logger
from interview_coach.services.interview.session import InterviewSession
from interview_coach.services.pipeline.results_pipeline import ResultsPipeline
from interview_coach.services.providers import create_provider

# Setup logger with fresh log file on startup
setup_logger(
    log_level=logging.DEBUG if settings.DEBUG_MODE else logging.INFO,
    clear_log=True,
    use_json=settings.LOG_JSON,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Provider and credential are resolved once; switching needs a restart
    provider = create_provider(settings)
    session = InterviewSession()
    app.state.provider = provider
    app.state.session = session
    app.state.results_pipeline = ResultsPipeline(provider, session)
    logger.info(f"Application startup: AI Interview Coach (provider={provider.name})")
    yield
    await provider.aclose()
    logger.info("Application shutdown")


app = FastAPI(
    title="AI Interview Coach",
    description="Mock interviews with live AI interviewers, evaluations and learning roadmaps.",
    version="1.0.0",
    lifespan=lifespan
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for simplicity in development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(interview_router, prefix="/api/v1", tags=["interview"])
app.include_router(resume_router, prefix="/api/v1", tags=["resume"])


@app.get("/")
async def read_root():
    return {"service": "AI Interview Coach", "provider": settings.AI_PROVIDER}
