import os
import logging
from dotenv import load_dotenv


dotenv_path_explicit = os.path.join(os.path.dirname(__file__), '..', '.env')
if os.path.exists(dotenv_path_explicit):
    load_dotenv(dotenv_path=dotenv_path_explicit)
else:
    load_dotenv() # Fallback

logger = logging.getLogger(__name__)

# --- Inference service (only needed once real integration is wired in) ---
ML_API_KEY = os.getenv("ML_API_KEY")
ML_API_ENDPOINT = os.getenv("ML_API_ENDPOINT")
ML_MODEL = os.getenv("ML_MODEL", "llava")
ML_TIMEOUT_SECONDS = float(os.getenv("ML_TIMEOUT_SECONDS", "30"))

# Stub stays on until an endpoint is configured, unless forced either way.
_use_stub_env = os.getenv("USE_STUB_ANALYZER")
if _use_stub_env is None:
    USE_STUB_ANALYZER = not ML_API_ENDPOINT
else:
    USE_STUB_ANALYZER = _use_stub_env.strip().lower() in ("1", "true", "yes", "on")

# --- Upload policy ---
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]


def log_configuration() -> None:
    logger.info(f"Analyzer mode: {'stub' if USE_STUB_ANALYZER else 'inference'}")
    logger.info(f"Max upload size: {MAX_UPLOAD_BYTES} bytes")
    logger.debug(f"ML_API_ENDPOINT configured: {bool(ML_API_ENDPOINT)}")
    logger.debug(f"ML_API_KEY configured: {bool(ML_API_KEY)}")
