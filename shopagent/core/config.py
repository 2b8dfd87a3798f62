"""
Runtime configuration for the action pipeline and its collaborators.
All values come from environment variables; entry scripts load .env first.
"""

import os
from pathlib import Path

# Debug flag (also exposes /docs)
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# History store configuration
HISTORY_BACKEND = os.getenv("HISTORY_BACKEND", "sqlite")  # sqlite|memory
HISTORY_DB_PATH = os.getenv("HISTORY_DB_PATH", "./data/action_history.db")
HISTORY_MAX_ENTRIES = int(os.getenv("HISTORY_MAX_ENTRIES", "0"))  # 0 = keep everything

# Shopify Admin REST API
SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2024-10")
SHOPIFY_REQUEST_TIMEOUT_SEC = float(os.getenv("SHOPIFY_REQUEST_TIMEOUT_SEC", "30"))
SHOPIFY_DEFAULT_RETRY_AFTER_SEC = float(os.getenv("SHOPIFY_DEFAULT_RETRY_AFTER_SEC", "2"))
SHOPIFY_LIST_LIMIT = int(os.getenv("SHOPIFY_LIST_LIMIT", "50"))

# Action generator (local Ollama model)
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.1:8b")
GENERATOR_TEMPERATURE = float(os.getenv("GENERATOR_TEMPERATURE", "0.7"))

# Image acquisition for create_product (Hugging Face text-to-image)
IMAGE_GENERATION_ENABLED = os.getenv("IMAGE_GENERATION_ENABLED", "true").lower() == "true"
HF_TOKEN = os.getenv("HF_TOKEN")
HF_IMAGE_MODEL = os.getenv("HF_IMAGE_MODEL", "stabilityai/stable-diffusion-xl-base-1.0")
HF_MAX_WAIT_SEC = float(os.getenv("HF_MAX_WAIT_SEC", "60"))

# Web UI origins allowed by CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if origin.strip()
]

# Version string
VERSION = "1.0.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the history database directory exists."""
    Path(db_path or HISTORY_DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def get_history_backend():
    """Get history backend (sqlite|memory)."""
    return HISTORY_BACKEND


def is_image_generation_enabled():
    """Image generation runs only when enabled; without HF_TOKEN it falls back to placeholders."""
    return IMAGE_GENERATION_ENABLED


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if HISTORY_BACKEND not in ["sqlite", "memory"]:
        issues.append(f"Invalid HISTORY_BACKEND: {HISTORY_BACKEND}")

    if HISTORY_MAX_ENTRIES < 0:
        issues.append("HISTORY_MAX_ENTRIES must be >= 0")

    if SHOPIFY_REQUEST_TIMEOUT_SEC <= 0:
        issues.append("SHOPIFY_REQUEST_TIMEOUT_SEC must be > 0")

    if not 0.0 <= GENERATOR_TEMPERATURE <= 2.0:
        issues.append("GENERATOR_TEMPERATURE must be between 0.0 and 2.0")

    if IMAGE_GENERATION_ENABLED and not HF_TOKEN:
        issues.append("HF_TOKEN not set - product images will use placeholder URLs")

    return issues
