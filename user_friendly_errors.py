"""
User-friendly error messages for the study hub API.
This module converts technical errors from AWS, OpenAI and uploads into messages users can act on.
"""

from typing import Any, Dict, Tuple

from botocore.exceptions import ClientError

from config import BEDROCK_REGION, VIDEO_S3_BUCKET


def get_user_friendly_error(error_type: str, context: str = "general") -> str:
    """
    Convert technical error types to user-friendly messages.

    Args:
        error_type: The technical error type (e.g., "ThrottlingException")
        context: The context where the error occurred (e.g., "upload", "video")

    Returns:
        A user-friendly error message
    """

    # AWS service error codes
    aws_errors = {
        "AccessDeniedException": "The AI service refused the request. Please check model access and try again.",
        "ThrottlingException": "The AI service is busy right now. Please wait a moment and try again.",
        "ServiceQuotaExceededException": "The AI service quota has been reached. Please try again later.",
        "ModelTimeoutException": "The AI model took too long to respond. Please try again with shorter text.",
        "ModelNotReadyException": "The AI model is starting up. Please try again in a minute.",
        "ValidationException": "The AI service could not accept this request. Please check your input.",
        "ResourceNotFoundException": "The requested AI resource could not be found.",
        "InvalidImageFormatException": "This image format isn't supported. Please upload a JPEG or PNG image.",
        "ImageTooLargeException": "This image is too large to scan. Please use a smaller image.",
        "InvalidParameterException": "We couldn't read this image. Please try a clearer picture.",
        "EndpointConnectionError": "We couldn't reach the AI service. Please try again shortly.",
        "NoCredentialsError": "The AI service is not configured correctly. Please contact support.",
    }

    # OpenAI errors
    openai_errors = {
        "RateLimitError": "The assistant is busy right now. Please wait a moment and try again.",
        "AuthenticationError": "The assistant is not configured correctly. Please contact support.",
        "APIConnectionError": "We couldn't reach the assistant. Please try again shortly.",
        "APITimeoutError": "The assistant took too long to respond. Please try again.",
    }

    # Generation errors without a service error behind them
    generation_errors = {
        "AIGenerationError": "The AI service couldn't complete this request. Please try again in a moment.",
    }

    # Upload errors
    upload_errors = {
        "FILE_TOO_LARGE": "Your file is too large. Please choose a file smaller than 20MB.",
        "INVALID_FILE_TYPE": "This file type isn't supported for this action.",
        "EMPTY_FILE": "The uploaded file is empty. Please choose another file.",
        "PROCESSING_FAILED": "We couldn't process your file. Please try a different file.",
    }

    # Database errors
    database_errors = {
        "DB_NOT_CONFIGURED": "History is not available right now.",
        "DB_UNAVAILABLE": "We couldn't reach the history database. Please try again shortly.",
    }

    all_errors = {
        **aws_errors,
        **openai_errors,
        **generation_errors,
        **upload_errors,
        **database_errors,
    }

    if error_type in all_errors:
        return all_errors[error_type]

    return "Something went wrong. Please try again in a moment."


def get_context_specific_error(error_type: str, context: str) -> str:
    """
    Get context-specific error messages for better user experience.

    Args:
        error_type: The technical error type
        context: The specific context (upload, video, ocr, exam, picture)

    Returns:
        A context-appropriate user-friendly error message
    """

    context_messages = {
        "upload": {
            "INVALID_FILE_TYPE": "Please upload a PDF file.",
        },
        "ocr": {
            "INVALID_FILE_TYPE": "Please upload an image file (JPEG, PNG, GIF, BMP or WebP).",
            "PROCESSING_FAILED": "We couldn't read any text from this image. Please try a clearer picture.",
        },
        "video": {
            "ThrottlingException": "Too many videos are being generated right now. Please try again in a few minutes.",
            "ValidationException": "The video request was rejected. Please shorten the text and try again.",
            "ResourceNotFoundException": "We couldn't find this video job. It may have expired.",
            "AIGenerationError": "We couldn't write a script for this video. Please try again in a moment.",
        },
        "exam": {
            "AIGenerationError": "We couldn't generate the exam paper. Please try again in a moment.",
        },
        "picture": {
            "ValidationException": "This picture request was blocked. Please rephrase the text and try again.",
            "AIGenerationError": "We couldn't create a picture for this text. Please try again in a moment.",
        },
    }

    context_errors = context_messages.get(context, {})
    if error_type in context_errors:
        return context_errors[error_type]

    return get_user_friendly_error(error_type, context)


def aws_error_code(error: BaseException) -> str:
    """
    Service error code of a botocore ClientError, else the exception class name.

    Errors raised "from" a service error report the code of that service error.
    """
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "") or type(error).__name__
    if error.__cause__ is not None:
        return aws_error_code(error.__cause__)
    return type(error).__name__


def friendly_error(error: BaseException, context: str = "general") -> str:
    """User-facing message for an exception raised while serving a request"""
    return get_context_specific_error(aws_error_code(error), context)


def describe_video_error(error: Exception, bucket: str = VIDEO_S3_BUCKET,
                         region: str = BEDROCK_REGION) -> Tuple[int, Dict[str, Any]]:
    """
    Map a Nova Reel start failure to a status code and a response body with next steps.

    Returns:
        (status_code, body)
    """
    code = aws_error_code(error)
    message = str(error)

    if code == "ValidationException" and "Invalid Output Config" in message:
        return 400, {
            "message": "🚨 S3 Bucket Not Found or Not Accessible",
            "error": f'The S3 bucket "{bucket}" doesn\'t exist or Bedrock can\'t access it',
            "instructions": [
                "1. 🌐 Go to AWS S3 Console (https://s3.console.aws.amazon.com/)",
                f'2. 📦 Create bucket named: "{bucket}"',
                f"3. 🌍 Set region to: {region}",
                "4. 🔐 Add bucket policy to allow bedrock.amazonaws.com access",
                "5. ✅ Try again after creating the bucket",
            ],
            "bucketName": bucket,
            "region": region,
        }

    if code == "ValidationException" and "model identifier" in message:
        return 400, {
            "message": "Nova Reel model not available",
            "error": "Model not available in this region or access not granted",
            "region": region,
        }

    if code == "AccessDeniedException":
        return 403, {
            "message": "Access denied",
            "error": "Either model access or S3 permissions issue",
            "suggestions": [
                "Check Nova Reel access in Bedrock console",
                "Verify S3 bucket permissions",
                "Ensure AWS credentials are correct",
            ],
        }

    return 500, {
        "message": "Internal Server Error",
        "error": friendly_error(error, "video"),
        "name": code or "UNKNOWN_ERROR",
    }
