# backend/config.py
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_list(name: str, default: str) -> list:
    raw = os.getenv(name, default) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    """Configuration class for the interview prep backend"""

    # Flask
    DEBUG = os.getenv("DEBUG", "False").lower() == "true"
    SECRET_KEY = os.getenv("SECRET_KEY", "interview-prep-secret-key")
    CORS_ORIGINS = _env_list("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))

    # ----------------------------------------------------------------------
    # LLM providers (Loaded from .env)
    # ----------------------------------------------------------------------
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
    OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")

    # ----------------------------------------------------------------------
    # Voice platform (Vapi)
    # ----------------------------------------------------------------------
    VAPI_PRIVATE_KEY = os.getenv("VAPI_PRIVATE_KEY")
    VAPI_PUBLIC_KEY = os.getenv("VAPI_PUBLIC_KEY")
    VAPI_PHONE_NUMBER_ID = os.getenv("VAPI_PHONE_NUMBER_ID")
    VAPI_BASE_URL = os.getenv("VAPI_BASE_URL", "https://api.vapi.ai")
    # "managed" creates the assistant server-side, "inline" hands the config to the browser
    VOICE_PROVIDER = (os.getenv("VOICE_PROVIDER", "managed") or "managed").strip().lower()
    TRANSCRIPT_IDLE_SECONDS = float(os.getenv("TRANSCRIPT_IDLE_SECONDS", "2.0"))
    # public URL of this service; when set the voice platform posts call events back here
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")

    # ----------------------------------------------------------------------
    # Object storage (ImageKit)
    # ----------------------------------------------------------------------
    IMAGEKIT_PUBLIC_KEY = os.getenv("IMAGEKIT_URL_PUBLIC_KEY")
    IMAGEKIT_PRIVATE_KEY = os.getenv("IMAGEKIT_URL_PRIVATE_KEY")
    IMAGEKIT_URL_ENDPOINT = os.getenv("IMAGEKIT_URL_ENDPOINT")
    IMAGEKIT_UPLOAD_URL = os.getenv("IMAGEKIT_UPLOAD_URL", "https://upload.imagekit.io/api/v1/files/upload")

    # ----------------------------------------------------------------------
    # Database Settings
    # ----------------------------------------------------------------------
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB = os.getenv("MONGO_DB", "interview_prep")
    DRAFT_TTL_SECONDS = int(os.getenv("DRAFT_TTL_SECONDS", "3600"))

    # ----------------------------------------------------------------------
    # Outbound HTTP
    # ----------------------------------------------------------------------
    HTTP_TIMEOUT = int(os.getenv("HTTP_TIMEOUT", "60"))
