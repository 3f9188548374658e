import base64
import json
import logging

import openai
from pydantic import ValidationError

from . import config
from .schemas import AnalysisResult

logger = logging.getLogger(__name__)

# --- Configuration ---
# Set to False (or configure ML_API_ENDPOINT) to use the inference service.
USE_STUB_ANALYZER = config.USE_STUB_ANALYZER

GENERIC_ERROR_MESSAGE = "Failed to process image"


# --- Errors ---

class ImageProcessingError(Exception):
    """Base error for a failed analysis. `message` is safe to show users."""
    status_code = 500
    message = GENERIC_ERROR_MESSAGE

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.message)
        self.detail = detail


class MissingImageError(ImageProcessingError):
    pass


class ImageTooLargeError(ImageProcessingError):
    status_code = 413
    message = "Image exceeds the upload size limit"


class UnsupportedImageTypeError(ImageProcessingError):
    status_code = 415
    message = "Unsupported image type"


class InferenceServiceError(ImageProcessingError):
    """Raised when the external inference service fails or replies with garbage."""
    pass


# --- Inference client (OpenAI-compatible API) ---

inference_client = None
if not USE_STUB_ANALYZER:
    if not config.ML_API_ENDPOINT:
        logger.error(
            "USE_STUB_ANALYZER is off but ML_API_ENDPOINT is missing. "
            "Inference integration will not work."
        )
    else:
        try:
            inference_client = openai.OpenAI(
                base_url=config.ML_API_ENDPOINT,
                api_key=config.ML_API_KEY or "not-set", # Some local servers ignore the key
                timeout=config.ML_TIMEOUT_SECONDS,
            )
            logger.info(f"Inference client initialized: base_url='{config.ML_API_ENDPOINT}', model='{config.ML_MODEL}'")
        except Exception as e:
            logger.error(f"Failed to initialize inference client: {e}", exc_info=True)
            inference_client = None


ANALYSIS_PROMPT = (
    "You are a professional color analyst. Look at the person in this photo and "
    "recommend clothing and makeup colors that flatter them. Reply with JSON only, "
    "using exactly this shape:\n"
    '{"colors": [{"name": str, "hex": "#rrggbb", "usage": str, "confidence": number between 0 and 1}], '
    '"skinTone": "warm" | "cool" | "neutral", '
    '"season": "spring" | "summer" | "autumn" | "winter"}\n'
    "List between three and six colors, best match first."
)

# --- Stub Implementation ---

STUB_RESULT = {
    "colors": [
        {
            "name": "Warm Terracotta",
            "hex": "#c77743",
            "usage": "Perfect for autumn outfits and evening wear",
            "confidence": 0.95,
        }
    ],
    "skinTone": "warm",
    "season": "autumn",
}


def validate_upload(content: bytes, content_type: str | None) -> None:
    """
    Enforces the upload policy: whitelisted image MIME type, non-empty,
    at most config.MAX_UPLOAD_BYTES.
    """
    if content_type not in config.ALLOWED_IMAGE_TYPES:
        raise UnsupportedImageTypeError(f"Content type '{content_type}' is not allowed")
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise ImageTooLargeError(f"Upload of {len(content)} bytes exceeds {config.MAX_UPLOAD_BYTES}")
    if not content:
        raise ImageProcessingError("Uploaded image is empty")


def _analyze_stub(image_bytes: bytes) -> dict:
    """Ignores the image and returns the canned palette."""
    logger.debug(f"STUB: Returning canned palette for {len(image_bytes)} bytes of image data.")
    return STUB_RESULT


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def _query_inference_service(client: openai.OpenAI | None, model_name: str, image_bytes: bytes, content_type: str) -> dict:
    """
    Sends the image as a base64 data URI to an OpenAI-compatible vision model
    and returns the decoded JSON reply.
    """
    if client is None:
        raise InferenceServiceError("Inference client is not initialized")

    image_b64 = base64.b64encode(image_bytes).decode("utf-8")
    logger.debug(f"INFERENCE Query: Model='{model_name}', ImageBytes={len(image_bytes)}, ContentType='{content_type}'")

    try:
        completion = client.chat.completions.create(
            model=model_name,
            messages=[
                {"role": "system", "content": ANALYSIS_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": "Analyze this photo."},
                        {"type": "image_url", "image_url": {"url": f"data:{content_type};base64,{image_b64}"}},
                    ],
                },
            ],
            response_format={"type": "json_object"},
            max_tokens=600,
            temperature=0.2
        )
    except openai.APIConnectionError as e:
        logger.error(f"Inference API Connection Error (model {model_name}): {e}. Is the service running at {config.ML_API_ENDPOINT}?", exc_info=True)
        raise InferenceServiceError("Could not connect to inference service") from e
    except openai.APIError as e:
        logger.error(f"Inference API Error (model {model_name}): {e}", exc_info=True)
        raise InferenceServiceError("Inference service returned an error") from e

    if not completion.choices:
        raise InferenceServiceError("Inference service returned no choices")
    content = completion.choices[0].message.content
    if not content:
        raise InferenceServiceError("Inference service returned an empty reply")

    try:
        return json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as e:
        logger.error(f"Inference reply is not JSON: {content[:200]!r}")
        raise InferenceServiceError("Inference reply is not JSON") from e


def analyze_image(image_bytes: bytes, content_type: str) -> AnalysisResult:
    """
    Produces a palette recommendation for one image.
    Raises ImageProcessingError (or a subclass) on failure.
    """
    if USE_STUB_ANALYZER:
        logger.info("--- Using STUB analyzer ---")
        raw = _analyze_stub(image_bytes)
    else:
        logger.info(f"--- Attempting inference call (Model: {config.ML_MODEL}) ---")
        raw = _query_inference_service(inference_client, config.ML_MODEL, image_bytes, content_type)

    try:
        return AnalysisResult.model_validate(raw)
    except ValidationError as e:
        logger.error(f"Analyzer output does not match AnalysisResult: {e}")
        raise InferenceServiceError("Analyzer output failed validation") from e
