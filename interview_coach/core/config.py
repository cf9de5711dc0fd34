from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from dotenv import load_dotenv


# Get the path to the .env file
CONFIG_DIR = Path(__file__).resolve().parent
# .env lives in the project root (two levels up from interview_coach/core)
PROJECT_ROOT = CONFIG_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT / '.env'

# Load environment variables from .env file
load_dotenv(ENV_FILE_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding='utf-8',
        extra='ignore'
    )

    DEBUG_MODE: bool = False

    # Active provider, resolved once at process start
    AI_PROVIDER: Literal["gemini", "openai"] = "gemini"

    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"

    # Timeout Configuration (seconds)
    REQUEST_TIMEOUT_SECONDS: float = 60.0

    # Retry Configuration: 2 retries => 3 attempts, delays 2s then 4s
    RETRY_MAX_RETRIES: int = 2
    RETRY_BACKOFF_BASE: float = 2.0

    # Frame capture
    FRAME_JPEG_QUALITY: int = 85

    # File Upload Limits
    MAX_FILE_SIZE_MB: int = 10

    # Logging
    LOG_JSON: bool = False


settings = Settings()
