import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database
# Default to local SQLite, but allow override for a hosted Postgres
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///finance_tracker.db")

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "7d")
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "user"

# Image hosting (S3 when a bucket is configured, local disk otherwise)
S3_BUCKET = os.getenv("S3_BUCKET")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_IMAGE_BYTES = 2 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png")

# Receipt scanning
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Web
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
