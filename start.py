#!/usr/bin/env python3
"""
Startup script for Study Hub API
"""

import importlib.util
import os
import sys


def check_dependencies():
    """Check if required Python packages are installed"""
    # import name -> package name on PyPI
    required_packages = {
        'fastapi': 'fastapi',
        'uvicorn': 'uvicorn',
        'boto3': 'boto3',
        'openai': 'openai',
        'psycopg2': 'psycopg2-binary',
        'reportlab': 'reportlab',
        'fitz': 'PyMuPDF',
        'PIL': 'Pillow',
        'dotenv': 'python-dotenv',
        'multipart': 'python-multipart',
    }

    missing_packages = []
    for module_name, package in required_packages.items():
        if importlib.util.find_spec(module_name) is None:
            missing_packages.append(package)
            print(f"❌ {package} is missing")
        else:
            print(f"✅ {package} is installed")

    if missing_packages:
        print(f"\nPlease install missing packages:")
        print(f"pip install {' '.join(missing_packages)}")
        return False

    return True


def check_environment():
    """Report which hosted services are configured; none of them is mandatory"""
    in_ecs = bool(os.getenv("ECS_CONTAINER_METADATA_URI") or os.getenv("ECS_CONTAINER_METADATA_URI_V4"))
    checks = {
        "AWS credentials (Bedrock, Rekognition)": in_ecs or bool(
            os.getenv("AWS_ACCESS_KEY_ID") and os.getenv("AWS_SECRET_ACCESS_KEY")),
        "OpenAI API key (chat, video scripts)": bool(os.getenv("OPENAI_API_KEY")),
        "DATABASE_URL (activity history)": bool(os.getenv("DATABASE_URL")),
    }
    for name, ok in checks.items():
        print(f"{'✅' if ok else '⚠️ '} {name}{'' if ok else ' not configured'}")


def main():
    print("📚 Study Hub API - Startup Check")
    print("=" * 50)

    # Check Python dependencies
    if not check_dependencies():
        print("\nInstall dependencies with: pip install -e .")
        sys.exit(1)

    print()

    from config import HOST, PORT
    check_environment()

    print()
    print("🚀 All checks passed! Starting the application...")
    print(f"📚 API documentation at: http://localhost:{PORT}/docs")
    print()

    # Start the application
    try:
        import uvicorn
        from main import app
        uvicorn.run(app, host=HOST, port=PORT)
    except KeyboardInterrupt:
        print("\n👋 Application stopped by user")


if __name__ == "__main__":
    main()
