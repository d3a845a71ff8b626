#!/usr/bin/env python3
"""
Tests for image OCR, PDF text extraction and image generation
"""

import base64
import io

import fitz
import pytest
from PIL import Image

from bedrock_client import AIGenerationError, BedrockService
from conftest import FakeBedrockRuntime, client_error
from image_service import ImageService, build_image_prompt
from ocr_service import InvalidImageError, OCRService
from pdf_processor import PDFExtractionError, PDFProcessor

IMAGE_MODEL = "amazon.nova-canvas-v1:0"


def image_bytes(image_format, mode="RGB", size=(40, 20)):
    buffer = io.BytesIO()
    Image.new(mode, size, color=0).save(buffer, format=image_format)
    return buffer.getvalue()


def make_pdf(text, title=""):
    document = fitz.open()
    page = document.new_page()
    page.insert_text((72, 72), text)
    if title:
        document.set_metadata({"title": title})
    data = document.tobytes()
    document.close()
    return data


class FakeRekognition:
    def __init__(self, detections):
        self.detections = detections
        self.images = []

    def detect_text(self, Image):
        self.images.append(Image["Bytes"])
        return {"TextDetections": self.detections}


# OCR

def test_extract_text_keeps_lines_only():
    client = FakeRekognition([
        {"Type": "LINE", "DetectedText": "Newton's Laws", "Confidence": 99.0},
        {"Type": "WORD", "DetectedText": "Newton's", "Confidence": 99.0},
        {"Type": "LINE", "DetectedText": "F = ma", "Confidence": 96.5},
    ])
    png = image_bytes("PNG")

    result = OCRService(client).extract_text(png)

    assert result == {"extractedText": "Newton's Laws\nF = ma", "lineCount": 2, "confidence": 97.75}
    assert client.images == [png]


def test_extract_text_without_detections():
    result = OCRService(FakeRekognition([])).extract_text(image_bytes("JPEG"))
    assert result == {"extractedText": "", "lineCount": 0, "confidence": None}


def test_prepare_image_converts_unsupported_formats():
    gif = image_bytes("GIF", mode="P")
    prepared = OCRService(FakeRekognition([])).prepare_image(gif)

    assert prepared != gif
    assert Image.open(io.BytesIO(prepared)).format == "PNG"


def test_prepare_image_rejects_non_images():
    with pytest.raises(InvalidImageError):
        OCRService(FakeRekognition([])).prepare_image(b"definitely not an image")


# PDF

def test_pdf_upload_detection():
    processor = PDFProcessor()
    assert processor.is_pdf_upload("notes.pdf", "application/pdf")
    assert processor.is_pdf_upload("notes.PDF", "application/octet-stream")
    assert processor.is_pdf_upload("notes.pdf", None)
    assert not processor.is_pdf_upload("notes.pdf", "image/png")
    assert not processor.is_pdf_upload("notes.txt", None)


def test_extract_pdf_text():
    result = PDFProcessor().extract_text(make_pdf("Cells are the basic unit of life.", title="Biology Notes"))

    assert result["text"] == "Cells are the basic unit of life."
    assert result["extractedText"] == result["text"]
    assert result["pageCount"] == 1
    assert result["wordCount"] == 7
    assert result["info"]["Title"] == "Biology Notes"


def test_extract_pdf_uses_filename_without_title():
    result = PDFProcessor().extract_text(make_pdf("Atoms"), filename="chem.pdf")
    assert result["info"]["Title"] == "chem.pdf"


def test_clean_text_rejoins_hyphenated_words_and_drops_page_numbers():
    cleaned = PDFProcessor()._clean_text("photo-\nsynthesis   happens\n12\n\n\n\nin leaves “here”")
    assert cleaned == 'photosynthesis happens\n\nin leaves "here"'


def test_invalid_pdf_raises():
    with pytest.raises(PDFExtractionError):
        PDFProcessor().extract_text(b"this is not a pdf")


# Image generation

def test_build_image_prompt_applies_style_hint():
    assert build_image_prompt(" Volcano ", "diagram") == "Volcano. Style: simple diagram, flat colors, white background"
    assert build_image_prompt("Volcano", "watercolor") == "Volcano. Style: watercolor"
    assert build_image_prompt("Volcano") == "Volcano"
    assert len(build_image_prompt("x" * 2000)) == 1024


def test_generate_image_returns_data_url():
    encoded = base64.b64encode(image_bytes("PNG")).decode("ascii")
    runtime = FakeBedrockRuntime({IMAGE_MODEL: {"images": [encoded]}})
    service = ImageService(bedrock=BedrockService(client=runtime), model_id=IMAGE_MODEL)

    result = service.generate_image("Water cycle", "educational")

    assert result["imageUrl"] == f"data:image/png;base64,{encoded}"
    assert result["style"] == "educational"
    body = runtime.calls[0][1]
    assert body["taskType"] == "TEXT_IMAGE"
    assert body["textToImageParams"]["text"].startswith("Water cycle. Style:")


@pytest.mark.parametrize("response", [
    {"images": []},
    {"error": "content filtered"},
    client_error("ValidationException", "blocked"),
])
def test_generate_image_failures(response):
    runtime = FakeBedrockRuntime({IMAGE_MODEL: response})
    service = ImageService(bedrock=BedrockService(client=runtime), model_id=IMAGE_MODEL)
    with pytest.raises(AIGenerationError):
        service.generate_image("Water cycle")
