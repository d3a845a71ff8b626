import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from activity_tracker import activity_tracker, get_user_email_from_request
from bedrock_client import AIGenerationError
from config import MAX_UPLOAD_SIZE
from exam_pdf import render_exam_pdf
from exam_service import exam_service
from pdf_processor import PDFExtractionError, pdf_processor
from user_friendly_errors import friendly_error, get_context_specific_error, get_user_friendly_error

logger = logging.getLogger(__name__)

router = APIRouter()


class RefineExamRequest(BaseModel):
    currentExam: Optional[str] = None
    refinementInstructions: Optional[str] = None
    difficulty: Optional[str] = "medium"


async def _read_pdf_text(upload: UploadFile) -> str:
    """Extract the text of one uploaded PDF, raising 400 for unusable files"""
    if not pdf_processor.is_pdf_upload(upload.filename, upload.content_type):
        raise HTTPException(status_code=400, detail={"error": get_user_friendly_error("INVALID_FILE_TYPE")})
    data = await upload.read()
    if not data:
        raise HTTPException(status_code=400, detail={"error": get_user_friendly_error("EMPTY_FILE")})
    if len(data) > MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=413, detail={"error": get_user_friendly_error("FILE_TOO_LARGE")})
    try:
        extracted = await asyncio.to_thread(pdf_processor.extract_text, data, upload.filename)
    except PDFExtractionError as e:
        logger.warning(f"Unreadable PDF upload {upload.filename}: {e}")
        raise HTTPException(
            status_code=400,
            detail={"error": get_context_specific_error("PROCESSING_FAILED", "upload")},
        )
    return extracted["text"]


async def _read_exam_sources(exam_pdf: Optional[UploadFile], materials_pdf: Optional[UploadFile]):
    if not exam_pdf or not materials_pdf:
        raise HTTPException(
            status_code=400,
            detail={"error": "Both exam paper and learning materials PDFs are required"},
        )
    exam_text = await _read_pdf_text(exam_pdf)
    materials_text = await _read_pdf_text(materials_pdf)
    return exam_text, materials_text


@router.post("/api/generate-exam")
async def generate_exam(
    request: Request,
    background_tasks: BackgroundTasks,
    examPDF: Optional[UploadFile] = File(None),
    materialsPDF: Optional[UploadFile] = File(None),
    difficulty: str = Form("medium"),
):
    """Generate a new exam paper in the format of a past paper"""
    exam_text, materials_text = await _read_exam_sources(examPDF, materialsPDF)
    try:
        exam_content = await asyncio.to_thread(
            exam_service.generate_exam, exam_text, materials_text, difficulty
        )
    except AIGenerationError as e:
        logger.error(f"Error generating exam: {e}")
        return JSONResponse(status_code=500, content={"error": friendly_error(e, "exam")})

    background_tasks.add_task(
        activity_tracker.record_completed, get_user_email_from_request(request), "exam",
        materials_text, {"examContent": exam_content}, 0, {"difficulty": difficulty},
    )
    return {"examContent": exam_content}


@router.post("/api/generate-exam-content")
async def generate_exam_content(
    examPDF: Optional[UploadFile] = File(None),
    materialsPDF: Optional[UploadFile] = File(None),
    difficulty: str = Form("medium"),
):
    """Generate a plain-text exam paper ready for PDF rendering"""
    exam_text, materials_text = await _read_exam_sources(examPDF, materialsPDF)
    try:
        exam_content = await asyncio.to_thread(
            exam_service.generate_exam_content, exam_text, materials_text, difficulty
        )
    except AIGenerationError as e:
        logger.error(f"Error generating exam content: {e}")
        return JSONResponse(status_code=500, content={"error": friendly_error(e, "exam")})
    return {"examContent": exam_content}


@router.post("/api/refine-exam")
async def refine_exam(body: RefineExamRequest):
    """Apply free-form refinement instructions to an exam paper"""
    if not body.currentExam or not body.refinementInstructions:
        raise HTTPException(
            status_code=400,
            detail={"error": "Current exam and refinement instructions are required"},
        )
    try:
        exam_content = await asyncio.to_thread(
            exam_service.refine_exam, body.currentExam, body.refinementInstructions,
            body.difficulty or "medium",
        )
    except AIGenerationError as e:
        logger.error(f"Error refining exam: {e}")
        return JSONResponse(status_code=500, content={"error": friendly_error(e, "exam")})
    return {"examContent": exam_content}


@router.post("/api/generate-pdf")
async def generate_pdf(content: Optional[str] = Form(None)):
    """Render exam text as an A4 PDF"""
    if not content:
        raise HTTPException(status_code=400, detail={"error": "Content is required"})
    pdf_bytes = await asyncio.to_thread(render_exam_pdf, content)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": 'inline; filename="exam-paper.pdf"'},
    )
