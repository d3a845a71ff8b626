"""
Configuration settings for Study Hub API
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv


def _load_environment():
    """Load environment variables from .env before the settings below read them"""
    env_path = Path(__file__).parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)
        print(f"✅ Loaded .env file from: {env_path}")
    else:
        load_dotenv()


_load_environment()

DEFAULT_TEXT_MODELS = (
    "amazon.nova-pro-v1:0,"
    "amazon.nova-lite-v1:0,"
    "anthropic.claude-3-haiku-20240307-v1:0,"
    "anthropic.claude-3-sonnet-20240229-v1:0"
)


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Application configuration class"""

    def __init__(self):
        self._setup_directories()
        self._validate_config()

    def _setup_directories(self):
        """Setup directory paths"""
        self.BASE_DIR = Path(__file__).parent
        self.DATA_DIR = self.BASE_DIR / "data"
        self.DATA_DIR.mkdir(exist_ok=True)

    def _validate_config(self):
        """Validate configuration settings"""
        errors = []
        warnings = []

        if not self.DATABASE_URL:
            warnings.append("DATABASE_URL is missing - activity history will not be stored")

        if not self.OPENAI_API_KEY:
            warnings.append("OPENAI_API_KEY is missing - chat and OpenAI video scripts will use fallbacks")

        if not self.has_aws_credentials():
            warnings.append("AWS credentials are missing - Bedrock generation will use fallback generators")

        if self.MAX_WORKERS < 1:
            errors.append("MAX_WORKERS must be at least 1")

        if self.MAX_UPLOAD_SIZE < 1024 * 1024:
            errors.append("MAX_UPLOAD_SIZE must be at least 1MB")

        if self.VIDEO_POLL_INTERVAL_SECONDS <= 0:
            errors.append("VIDEO_POLL_INTERVAL_SECONDS must be positive")

        if not self.BEDROCK_TEXT_MODELS:
            errors.append("BEDROCK_TEXT_MODELS must name at least one model")

        if warnings and not self.is_production():
            print("⚠️ Configuration warnings:")
            for warning in warnings:
                print(f"   - {warning}")

        if errors:
            raise ValueError("Configuration errors: " + "; ".join(errors))

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Processing Configuration
    MAX_WORKERS: int = int(os.getenv("MAX_WORKERS", "4"))
    MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", str(20 * 1024 * 1024)))  # 20MB
    JOBS_FILE: str = os.getenv("JOBS_FILE", "data/jobs.json")

    # CORS Configuration
    CORS_ORIGINS: list = os.getenv("CORS_ORIGINS", "*").split(",") if os.getenv("CORS_ORIGINS", "*") != "*" else ["*"]
    CORS_METHODS: list = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_HEADERS: list = ["*"]

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Database Configuration - Postgres
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_SSL: bool = os.getenv("DB_SSL", "false").lower() == "true"
    DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "20"))
    DB_CONNECT_TIMEOUT: int = int(os.getenv("DB_CONNECT_TIMEOUT", "2"))

    # AWS Configuration
    AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
    AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
    AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
    AWS_SESSION_TOKEN: str = os.getenv("AWS_SESSION_TOKEN", "")

    # Bedrock Configuration
    BEDROCK_REGION: str = os.getenv("BEDROCK_REGION", os.getenv("AWS_REGION", "us-east-1"))
    BEDROCK_TEXT_MODELS: List[str] = _split_list(os.getenv("BEDROCK_TEXT_MODELS", DEFAULT_TEXT_MODELS))
    BEDROCK_PRIMARY_MODEL: str = os.getenv("BEDROCK_PRIMARY_MODEL", "amazon.nova-pro-v1:0")
    BEDROCK_IMAGE_MODEL: str = os.getenv("BEDROCK_IMAGE_MODEL", "amazon.nova-canvas-v1:0")

    # Video Generation - Nova Reel
    NOVA_REEL_MODEL: str = os.getenv("NOVA_REEL_MODEL", "amazon.nova-reel-v1:1")
    VIDEO_S3_BUCKET: str = os.getenv("VIDEO_S3_BUCKET", os.getenv("AWS_S3_BUCKET", "study-hub-videos-generation"))
    VIDEO_FALLBACK_URL: str = os.getenv(
        "VIDEO_FALLBACK_URL",
        "https://study-hub-videos-generation.s3.us-east-1.amazonaws.com/samples/presentation.mp4",
    )
    VIDEO_POLL_INTERVAL_SECONDS: float = float(os.getenv("VIDEO_POLL_INTERVAL_SECONDS", "15"))
    VIDEO_POLL_TIMEOUT_SECONDS: float = float(os.getenv("VIDEO_POLL_TIMEOUT_SECONDS", "900"))
    VIDEO_SHOT_DELAY_SECONDS: float = float(os.getenv("VIDEO_SHOT_DELAY_SECONDS", "3"))

    # AI/LLM Configuration - OpenAI
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_CHAT_MODEL: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-3.5-turbo")
    OPENAI_SCRIPT_MODEL: str = os.getenv("OPENAI_SCRIPT_MODEL", "gpt-4o-mini")

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    def is_running_in_ecs(self) -> bool:
        """ECS tasks expose a container metadata endpoint and carry a task role"""
        return bool(os.getenv("ECS_CONTAINER_METADATA_URI") or os.getenv("ECS_CONTAINER_METADATA_URI_V4"))

    def has_aws_credentials(self) -> bool:
        return self.is_running_in_ecs() or bool(self.AWS_ACCESS_KEY_ID and self.AWS_SECRET_ACCESS_KEY)

    def get_database_status(self) -> str:
        return "postgres" if self.DATABASE_URL else "disabled"


# Create global config instance
config = Config()

# Apply environment-specific overrides
if config.is_production():
    config.DEBUG = False
    config.LOG_LEVEL = "WARNING"

# Legacy compatibility - expose config values at module level
HOST = config.HOST
PORT = config.PORT
DEBUG = config.DEBUG

BASE_DIR = config.BASE_DIR
DATA_DIR = config.DATA_DIR

# Processing settings
MAX_WORKERS = config.MAX_WORKERS
MAX_UPLOAD_SIZE = config.MAX_UPLOAD_SIZE
JOBS_FILE = config.JOBS_FILE

# CORS
CORS_ORIGINS = config.CORS_ORIGINS
CORS_METHODS = config.CORS_METHODS
CORS_HEADERS = config.CORS_HEADERS

# Logging
LOG_LEVEL = config.LOG_LEVEL
LOG_FORMAT = config.LOG_FORMAT

# Database
DATABASE_URL = config.DATABASE_URL
DB_SSL = config.DB_SSL
DB_POOL_MAX = config.DB_POOL_MAX
DB_CONNECT_TIMEOUT = config.DB_CONNECT_TIMEOUT

# AWS
AWS_REGION = config.AWS_REGION
AWS_ACCESS_KEY_ID = config.AWS_ACCESS_KEY_ID
AWS_SECRET_ACCESS_KEY = config.AWS_SECRET_ACCESS_KEY
AWS_SESSION_TOKEN = config.AWS_SESSION_TOKEN

# Bedrock
BEDROCK_REGION = config.BEDROCK_REGION
BEDROCK_TEXT_MODELS = config.BEDROCK_TEXT_MODELS
BEDROCK_PRIMARY_MODEL = config.BEDROCK_PRIMARY_MODEL
BEDROCK_IMAGE_MODEL = config.BEDROCK_IMAGE_MODEL

# Video
NOVA_REEL_MODEL = config.NOVA_REEL_MODEL
VIDEO_S3_BUCKET = config.VIDEO_S3_BUCKET
VIDEO_FALLBACK_URL = config.VIDEO_FALLBACK_URL
VIDEO_POLL_INTERVAL_SECONDS = config.VIDEO_POLL_INTERVAL_SECONDS
VIDEO_POLL_TIMEOUT_SECONDS = config.VIDEO_POLL_TIMEOUT_SECONDS
VIDEO_SHOT_DELAY_SECONDS = config.VIDEO_SHOT_DELAY_SECONDS

# OpenAI
OPENAI_API_KEY = config.OPENAI_API_KEY
OPENAI_CHAT_MODEL = config.OPENAI_CHAT_MODEL
OPENAI_SCRIPT_MODEL = config.OPENAI_SCRIPT_MODEL

# Print configuration summary on import
if not config.is_production():
    print(f"🔧 Configuration loaded:")
    print(f"   Environment: {config.ENVIRONMENT}")
    print(f"   Database: {config.get_database_status()}")
    print(f"   Bedrock: {'✅' if config.has_aws_credentials() else '❌'} ({config.BEDROCK_REGION})")
    print(f"   OpenAI: {'✅' if config.OPENAI_API_KEY else '❌'}")
