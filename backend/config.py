# config.py
import os

def _csv_env(name: str, default: str = "") -> list[str]:
    val = os.getenv(name, default)
    # split only if non-empty; strip whitespace
    return [x.strip() for x in val.split(",")] if val else []

RESPONSE_STYLES = ("text", "json")
UI_VARIANTS = ("classic", "compact")

class BaseConfig:
    DEBUG = False
    TESTING = False
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10 MB
    PREFERRED_URL_SCHEME = "https"

    # CORS
    CORS_ORIGINS = _csv_env("CORS_ORIGINS", "http://localhost:3000,http://localhost:8000")

    # Uploads
    ALLOWED_IMAGE_EXTS = {"png", "jpg", "jpeg", "bmp", "webp"}

    # Chat gateway (key and base URL are read lazily by llm_client)
    LLM_MODEL = os.getenv("LLM_MODEL", "google/gemini-2.5-flash")
    LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    APP_TITLE = os.getenv("APP_TITLE", "Interview Helper")

    # Question generation
    QA_TARGET_COUNT = int(os.getenv("QA_TARGET_COUNT", "10"))
    RESPONSE_STYLE = os.getenv("RESPONSE_STYLE", "text")
    UI_VARIANT = os.getenv("UI_VARIANT", "classic")

    # OCR (credentials are read lazily by ocr_client)
    TENCENT_REGION = os.getenv("TENCENT_REGION", "ap-beijing")
    OCR_RELAY_URL = os.getenv("OCR_RELAY_URL", "")

class DevConfig(BaseConfig):
    DEBUG = True

class ProdConfig(BaseConfig):
    pass

def validate_config(cfg) -> None:
    if cfg.get("RESPONSE_STYLE") not in RESPONSE_STYLES:
        raise RuntimeError(f"RESPONSE_STYLE must be one of {RESPONSE_STYLES}, got {cfg.get('RESPONSE_STYLE')!r}")
    if cfg.get("UI_VARIANT") not in UI_VARIANTS:
        raise RuntimeError(f"UI_VARIANT must be one of {UI_VARIANTS}, got {cfg.get('UI_VARIANT')!r}")
    if int(cfg.get("QA_TARGET_COUNT", 0)) < 0:
        raise RuntimeError("QA_TARGET_COUNT must not be negative")
