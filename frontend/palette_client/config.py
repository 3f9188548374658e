import os
from dotenv import load_dotenv


dotenv_path_explicit = os.path.join(os.path.dirname(__file__), '..', '.env')
if os.path.exists(dotenv_path_explicit):
    load_dotenv(dotenv_path=dotenv_path_explicit)
else:
    load_dotenv() # Fallback

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
ANALYZE_ENDPOINT = f"{API_BASE_URL}/api/analyze"

REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})
