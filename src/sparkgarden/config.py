"""Configuration loaded from environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


# Paths
DATA_DIR: Path = Path(os.getenv("DATA_DIR", "./data"))

# API keys
GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

# Models
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-3-flash-preview")
IMAGE_MODEL: str = os.getenv("IMAGE_MODEL", "gemini-3-pro-image-preview")
MAPS_MODEL: str = os.getenv("MAPS_MODEL", "gemini-2.5-flash")
THINKING_BUDGET: int = int(os.getenv("THINKING_BUDGET", "2048"))

# Server
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Derived paths
SQLITE_PATH: Path = Path(os.getenv("SQLITE_PATH", str(DATA_DIR / "sparkgarden.db")))
LEGACY_IDEAS_PATH: Path = DATA_DIR / "sparkgarden_ideas_v2.json"
