"""
Main FastAPI Application

This is the main application file that handles API endpoints and coordinates
between the study-artifact services: flashcards, quizzes, summaries, mind maps,
videos, pictures, OCR, PDF extraction, exams, chat and activity history.
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psycopg2
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import BackgroundTasks, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

# Import configuration
from config import *

# Import user-friendly error handling
from user_friendly_errors import (
    describe_video_error,
    friendly_error,
    get_context_specific_error,
    get_user_friendly_error,
)

# Import services
from activity_tracker import activity_tracker, calculate_duration, extract_topic, get_user_email_from_request
from bedrock_client import AIGenerationError, bedrock_service
from chat_service import chat_service
from db import database
from flashcard_generator import flashcard_generator
from image_service import image_service
from job_manager import job_manager
from mindmap_generator import mindmap_generator
from ocr_service import InvalidImageError, ocr_service
from pdf_processor import PDFExtractionError, pdf_processor
from quiz_generator import quiz_generator
from recommend_service import recommend_service
from summary_generator import summary_generator
from video_service import PromptTooLongError, video_service

from routes import exam_routes
from routes import history_routes

# Setup logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

ARTICLE_EMPTY = "Article content cannot be empty"
TEXT_EMPTY = "Text content cannot be empty"


# Pydantic models for request bodies
class TextRequest(BaseModel):
    text: Optional[str] = ""
    style: Optional[str] = None


class QuizRequest(BaseModel):
    text: Optional[str] = ""
    questionCount: Optional[int] = Field(None, ge=1, le=20)
    difficulty: Optional[str] = "medium"


class QuizEvaluationRequest(BaseModel):
    questions: List[Dict[str, Any]]
    answers: Dict[str, Any]  # question id -> chosen option


class VideoOpenAIRequest(BaseModel):
    prompt: Optional[str] = None
    action: Optional[str] = None
    invocationArn: Optional[str] = None
    text: Optional[str] = None
    style: Optional[str] = None
    track: bool = False


class TrackVideosRequest(BaseModel):
    invocationArns: List[str]


class ChatRequest(BaseModel):
    message: Optional[Any] = None
    conversationHistory: Optional[List[Dict[str, Any]]] = None


class RecommendRequest(BaseModel):
    userInput: Optional[str] = None


app = FastAPI(title="Study Hub Backend", version="1.0.0")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"❌ Validation error on {request.method} {request.url}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "errors": exc.errors(),
            "body": str(exc.body) if hasattr(exc, 'body') else None
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Return user-friendly messages for HTTP errors while logging technical details."""
    logger.error(f"HTTPException on {request.method} {request.url}: {exc.detail}")

    status_code = exc.status_code or 500
    detail = exc.detail

    # Preserve structured details (dict) to avoid breaking clients relying on fields
    if isinstance(detail, dict):
        return JSONResponse(status_code=status_code, content=detail)

    # Map common statuses to friendly messages
    friendly_messages = {
        400: "We couldn't process your request. Please check the information and try again.",
        404: "We couldn't find what you're looking for.",
        405: "This action isn't allowed.",
        408: "The request timed out. Please try again.",
        413: "This is too large to process. Please try a smaller file.",
        415: "This file type isn't supported.",
        429: "You've reached the current rate limit. Please wait and try again.",
        500: "Something went wrong on our side. Please try again in a moment.",
        502: "The service is temporarily unavailable. Please try again shortly.",
        503: "The service is temporarily unavailable. Please try again shortly.",
        504: "The request took too long. Please try again.",
    }

    message = friendly_messages.get(status_code, "We ran into a problem. Please try again.")
    return JSONResponse(status_code=status_code, content={"detail": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all handler to avoid exposing technical errors to users."""
    logger.error(f"Unhandled error on {request.method} {request.url}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Something went wrong on our side. Please try again in a moment."}
    )


# Startup event to initialize services
@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    logger.info("🚀 Starting application startup...")

    # Blocking SDK and database calls run on this pool through asyncio.to_thread
    asyncio.get_running_loop().set_default_executor(ThreadPoolExecutor(max_workers=MAX_WORKERS))

    if database.is_configured():
        try:
            await asyncio.to_thread(database.init_schema)
        except psycopg2.Error as e:
            logger.error(f"❌ Failed to initialize database: {e}")
    else:
        logger.warning("⚠️ DATABASE_URL not set - activity history disabled")

    removed = job_manager.cleanup_old_jobs()
    if removed:
        logger.info(f"🧹 Removed {removed} stale jobs")

    logger.info("✅ Application startup complete!")


@app.on_event("shutdown")
async def shutdown_event():
    database.close()


# Add CORS middleware
allowed_origins = CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"] if CORS_METHODS == ["*"] else CORS_METHODS,
    allow_headers=["*"] if CORS_HEADERS == ["*"] else CORS_HEADERS,
    expose_headers=["Content-Disposition"],
    max_age=86400,
)

app.include_router(exam_routes.router)
app.include_router(history_routes.router)


def _require_text(text: Optional[str], message: str = TEXT_EMPTY) -> str:
    if not text or not text.strip():
        raise HTTPException(status_code=400, detail={"error": message})
    return text


def _track(background_tasks: BackgroundTasks, request: Request, activity_type: str,
           input_text: str, result: Any, started: float, metadata: Optional[Dict] = None):
    """Queue a history record when the caller identified themselves"""
    user_email = get_user_email_from_request(request)
    if user_email:
        background_tasks.add_task(
            activity_tracker.record_completed, user_email, activity_type, input_text,
            result, calculate_duration(started), metadata,
        )


# Basic endpoints
@app.get("/")
async def root():
    return {"message": "Study Hub API is running", "status": "ok", "version": "1.0.0"}


@app.get("/api/")
async def api_root():
    return {"message": "Study Hub API", "version": "1.0.0"}


# Health check endpoint
@app.get("/health")
async def health_check():
    """Simple health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": config.ENVIRONMENT,
        "database": config.get_database_status(),
        "bedrock": bedrock_service.is_available(),
        "openai": chat_service.is_available(),
        "cors_origins": allowed_origins,
    }


# ---------------------- Study artifacts ----------------------

@app.post("/api/analyze")
async def analyze(body: TextRequest, request: Request, background_tasks: BackgroundTasks):
    """Generate flashcards from text"""
    text = _require_text(body.text, ARTICLE_EMPTY)
    started = time.time()
    flashcards = await asyncio.to_thread(flashcard_generator.generate, text)
    _track(background_tasks, request, "flashcard", text, {"flashcards": flashcards}, started)
    return {"result": flashcards}


@app.post("/api/quiz")
async def generate_quiz(body: QuizRequest, request: Request, background_tasks: BackgroundTasks):
    """Generate a multiple-choice quiz from text"""
    text = _require_text(body.text, ARTICLE_EMPTY)
    started = time.time()
    difficulty = body.difficulty or "medium"
    questions = await asyncio.to_thread(quiz_generator.generate_quiz, text, body.questionCount, difficulty)
    _track(background_tasks, request, "quiz", text, {"questions": questions}, started,
           {"difficulty": difficulty})
    return {"result": questions}


@app.post("/api/quiz/evaluate")
async def evaluate_quiz(body: QuizEvaluationRequest):
    """Score submitted quiz answers"""
    return quiz_generator.evaluate_quiz(body.questions, body.answers)


@app.post("/api/summarize")
async def summarize(body: TextRequest, request: Request, background_tasks: BackgroundTasks):
    """Summarize text"""
    text = _require_text(body.text)
    started = time.time()
    summary = await asyncio.to_thread(summary_generator.generate_summary, text)
    _track(background_tasks, request, "summary", text, summary, started)
    return {"result": summary}


@app.post("/api/mindmap")
async def mindmap(body: TextRequest, request: Request, background_tasks: BackgroundTasks):
    """Generate a mind map from text"""
    text = _require_text(body.text)
    started = time.time()
    mind_map = await asyncio.to_thread(mindmap_generator.generate_mindmap, text)
    _track(background_tasks, request, "mindmap", text, mind_map, started,
           {"topic": mind_map.get("title") or extract_topic(text)})
    return {"result": mind_map}


# ---------------------- Video ----------------------

@app.post("/api/video")
async def video(body: TextRequest, request: Request, background_tasks: BackgroundTasks):
    """Generate a slide storyboard for the presentation player"""
    text = _require_text(body.text)
    started = time.time()
    storyboard = await asyncio.to_thread(video_service.generate_storyboard, text)
    _track(background_tasks, request, "video", text, storyboard, started)
    return {"result": storyboard}


@app.post("/api/video-nova-pro")
async def video_nova_pro(body: TextRequest, request: Request, background_tasks: BackgroundTasks):
    """Shot script from Nova Pro"""
    text = _require_text(body.text)
    style = body.style or "educational"
    started = time.time()
    try:
        result = await asyncio.to_thread(video_service.generate_nova_pro_video, text, style)
    except AIGenerationError as e:
        logger.error(f"❌ Nova Pro video generation failed: {e}")
        return JSONResponse(status_code=500, content={"error": f"Nova Pro video generation failed: {e}"})
    _track(background_tasks, request, "video", text, result, started, {"style": style})
    return {"result": result}


@app.post("/api/video-openai")
async def video_openai(body: VideoOpenAIRequest, request: Request, background_tasks: BackgroundTasks):
    """
    Nova Reel video generation.

    - action "check-status" with invocationArn: report one job's status
    - text: OpenAI shot script, one Nova Reel job per shot
    - prompt: a single Nova Reel job
    """
    if body.action == "check-status" and body.invocationArn:
        try:
            return await asyncio.to_thread(video_service.check_status, body.invocationArn)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Status check error: {e}")
            return JSONResponse(
                status_code=500,
                content={"message": "Failed to check job status", "error": friendly_error(e, "video")},
            )

    if body.text:
        text = _require_text(body.text)
        style = body.style or "educational"
        started = time.time()
        try:
            result = await asyncio.to_thread(video_service.generate_openai_videos, text, style)
        except AIGenerationError as e:
            logger.error(f"❌ OpenAI video script failed: {e}")
            return JSONResponse(
                status_code=500,
                content={"message": "Internal Server Error", "error": friendly_error(e, "video")},
            )

        arns = [job["invocationArn"] for job in result["videoJobs"]]
        user_email = get_user_email_from_request(request)
        if body.track and arns:
            job_id = video_service.create_tracking_job(arns, user_email)
            background_tasks.add_task(video_service.track_jobs, job_id, arns)
            result["trackingJobId"] = job_id
        _track(background_tasks, request, "video", text, result, started, {"style": style})

        return {
            "message": f"🎥 Started {result['successfulJobs']} video generation jobs ({result['failedJobs']} failed)",
            "result": result,
        }

    if not body.prompt:
        raise HTTPException(
            status_code=400,
            detail={"message": 'Either "text" (for OpenAI + Nova Reel) or "prompt" (for direct Nova Reel) is required'},
        )

    try:
        return await asyncio.to_thread(video_service.start_direct_video, body.prompt)
    except PromptTooLongError as e:
        return JSONResponse(
            status_code=400,
            content={
                "message": "Prompt too long",
                "error": f"Prompt must be {e.limit} characters or less. Your prompt is {e.length} characters.",
                "limit": e.limit,
                "currentLength": e.length,
                "suggestion": "Please shorten your prompt and try again.",
            },
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ Nova Reel start failed: {e}")
        status_code, content = describe_video_error(e)
        return JSONResponse(status_code=status_code, content=content)


@app.post("/api/video-jobs/track")
async def track_video_jobs(body: TrackVideosRequest, request: Request, background_tasks: BackgroundTasks):
    """Poll a batch of Nova Reel jobs in the background; progress at /status/{job_id}"""
    if not body.invocationArns:
        raise HTTPException(status_code=400, detail={"error": "invocationArns must not be empty"})
    job_id = video_service.create_tracking_job(body.invocationArns, get_user_email_from_request(request))
    background_tasks.add_task(video_service.track_jobs, job_id, body.invocationArns)
    return {"job_id": job_id, "status": "processing"}


# Job status endpoint
@app.get("/status/{job_id}")
async def get_job_status(job_id: str):
    """Get the status of a background job"""
    job_data = job_manager.get_job_status(job_id)

    if not job_data:
        raise HTTPException(status_code=404, detail="Job not found")

    return job_data


# ---------------------- Pictures, OCR and PDFs ----------------------

@app.post("/api/text-to-picture")
async def text_to_picture(body: TextRequest, request: Request, background_tasks: BackgroundTasks):
    """Generate an illustration for the text"""
    text = _require_text(body.text)
    started = time.time()
    try:
        picture = await asyncio.to_thread(image_service.generate_image, text, body.style)
    except AIGenerationError as e:
        logger.error(f"❌ Image generation failed: {e}")
        return JSONResponse(status_code=500, content={"error": friendly_error(e, "picture")})
    _track(background_tasks, request, "picture", text, picture, started, {"style": body.style})
    return {"result": picture}


@app.post("/api/extract-image")
async def extract_image(file: Optional[UploadFile] = File(None)):
    """Extract text from an uploaded image with Rekognition"""
    if not file or not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail={"error": "Please upload a valid image file."})

    image_bytes = await file.read()
    if len(image_bytes) > MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=413, detail={"error": get_user_friendly_error("FILE_TOO_LARGE")})

    try:
        return await asyncio.to_thread(ocr_service.extract_text, image_bytes)
    except InvalidImageError as e:
        logger.warning(f"Unreadable image upload: {e}")
        raise HTTPException(status_code=400, detail={"error": "Please upload a valid image file."})
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ OCR failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process the image.", "details": friendly_error(e, "ocr")},
        )


@app.post("/api/extract-pdf")
async def extract_pdf(pdf: Optional[UploadFile] = File(None)):
    """Extract the text of an uploaded PDF"""
    if not pdf:
        raise HTTPException(status_code=400, detail={"error": "No PDF file provided"})
    if not pdf_processor.is_pdf_upload(pdf.filename, pdf.content_type):
        raise HTTPException(status_code=400, detail={"error": "File must be a PDF"})

    pdf_bytes = await pdf.read()
    if len(pdf_bytes) > MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=413, detail={"error": get_user_friendly_error("FILE_TOO_LARGE")})

    try:
        return await asyncio.to_thread(pdf_processor.extract_text, pdf_bytes, pdf.filename)
    except PDFExtractionError as e:
        logger.error(f"PDF extraction error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to extract text from PDF",
                     "details": get_context_specific_error("PROCESSING_FAILED", "upload")},
        )


# ---------------------- Assistant ----------------------

@app.post("/api/chatbox")
async def chatbox(body: ChatRequest):
    """Study assistant chat"""
    if not body.message or not isinstance(body.message, str):
        raise HTTPException(status_code=400, detail={"error": "Message is required and must be a string"})
    return await asyncio.to_thread(chat_service.reply, body.message, body.conversationHistory or [])


@app.post("/api/recommend")
async def recommend(body: RecommendRequest):
    """Recommend the study format that best fits what the user wants to learn"""
    if not body.userInput or not body.userInput.strip():
        raise HTTPException(status_code=400, detail={"error": "Missing input"})
    try:
        recommendation = await asyncio.to_thread(recommend_service.recommend, body.userInput)
    except AIGenerationError as e:
        logger.error(f"Recommendation error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to get recommendation"})
    return {"recommendation": recommendation}


if __name__ == "__main__":
    uvicorn.run("main:app", host=HOST, port=PORT, reload=DEBUG)
