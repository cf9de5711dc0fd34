import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from interview_coach.api.deps import get_provider
from interview_coach.schemas.interview import ResumeMatchResult, ResumeScoreRequest
from interview_coach.services.pipeline.resume_scorer import score_resume
from interview_coach.services.providers.base import AIProvider
from interview_coach.services.tools.extractors import file_text_extractor
from interview_coach.services.tools.file_validator import FileValidator

logger = logging.getLogger(__name__)

resume_router = APIRouter()


@resume_router.post("/resume/score", response_model=ResumeMatchResult)
async def score_resume_text(
    request: ResumeScoreRequest,
    provider: AIProvider = Depends(get_provider),
):
    """Score pasted resume text against a job description."""
    return await score_resume(provider, request.resume_text, request.job_description)


@resume_router.post("/resume/score-file", response_model=ResumeMatchResult)
async def score_resume_file(
    resume_file: UploadFile = File(...),
    job_description: str = Form(...),
    provider: AIProvider = Depends(get_provider),
):
    """
    Score an uploaded resume (PDF or TXT) against a job description.

    Flow:
    1. Validate the upload (size, extension, magic bytes)
    2. Extract text
    3. Score under the retry policy
    """
    if not job_description.strip():
        raise HTTPException(status_code=400, detail="Job description must not be empty.")

    content = await resume_file.read()
    filename = resume_file.filename or ""
    try:
        FileValidator(logger=logger).validate(filename, content)
        resume_text = file_text_extractor(filename, content)
    except ValueError as e:
        logger.warning(f"Rejected resume upload {filename!r}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    return await score_resume(provider, resume_text, job_description)
