"""
Tacna Transit Navigator — Configuration
Environment-driven settings (a local .env file is honoured).
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root
load_dotenv(Path(__file__).resolve().parents[1] / ".env")


class Settings:
    # LLM
    ANTHROPIC_API_KEY: Optional[str] = os.getenv("ANTHROPIC_API_KEY")
    ANTHROPIC_MODEL:   str           = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-latest")
    LLM_MAX_TOKENS:    int           = int(os.getenv("LLM_MAX_TOKENS", "1500"))

    # External HTTP services
    OSRM_URL:       str   = os.getenv("OSRM_URL", "http://router.project-osrm.org")
    NOMINATIM_URL:  str   = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org")
    HTTP_TIMEOUT_S: float = float(os.getenv("HTTP_TIMEOUT_S", "30"))
    USER_AGENT:     str   = os.getenv("USER_AGENT", "tacna-transit-navigator/1.0")

    # Persistence — unset means in-memory storage
    ROUTES_STORAGE_DIR: Optional[str] = os.getenv("ROUTES_STORAGE_DIR")

    # Logging / serving
    LOG_DIR:   str = os.getenv("LOG_DIR", str(Path(__file__).resolve().parents[1] / "logs"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    API_HOST:  str = os.getenv("API_HOST", "0.0.0.0")
    PORT:      int = int(os.getenv("PORT", "8001"))


settings = Settings()
