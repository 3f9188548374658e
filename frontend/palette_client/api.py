import base64
import logging

import requests
from pydantic import ValidationError

from . import config
from .models import AnalysisResult, ErrorKind, UploadedImage

logger = logging.getLogger(__name__)


# --- Errors ---

class AnalysisClientError(Exception):
    """Base class for every failure the Upload Client knows how to show."""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(AnalysisClientError):
    kind = ErrorKind.INVALID_INPUT


class NetworkFailureError(AnalysisClientError):
    kind = ErrorKind.NETWORK_FAILURE


class ServerError(AnalysisClientError):
    kind = ErrorKind.SERVER_ERROR

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(AnalysisClientError):
    kind = ErrorKind.MALFORMED_RESPONSE


# --- Helper Functions ---

def validate_image(image: UploadedImage | None) -> None:
    """
    Client-side guard run before any network call.
    """
    if image is None:
        raise InvalidInputError("Please choose a photo to analyze.")
    if image.content_type not in config.ALLOWED_IMAGE_TYPES:
        raise InvalidInputError(f"'{image.filename}' is not a supported image (JPEG, PNG, WebP or GIF).")
    if image.size == 0:
        raise InvalidInputError(f"'{image.filename}' is empty.")
    if image.size > config.MAX_UPLOAD_BYTES:
        limit_mb = config.MAX_UPLOAD_BYTES / (1024 * 1024)
        raise InvalidInputError(f"'{image.filename}' is larger than {limit_mb:.0f} MB.")


def encode_preview(image: UploadedImage) -> str:
    """Returns a data URI suitable for an <img> tag or st.image."""
    encoded = base64.b64encode(image.content).decode("ascii")
    return f"data:{image.content_type};base64,{encoded}"


def request_analysis(image: UploadedImage, endpoint: str | None = None, timeout: float | None = None) -> AnalysisResult:
    """
    POSTs the image as multipart field `image` and parses the palette.
    Raises an AnalysisClientError subclass on any failure; never retries.
    """
    endpoint = endpoint or config.ANALYZE_ENDPOINT
    timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT_SECONDS
    files = {"image": (image.filename, image.content, image.content_type)}

    logger.debug(f"Sending POST to: {endpoint} ({image.size} bytes, {image.content_type})")
    try:
        response = requests.post(endpoint, files=files, timeout=timeout)
    except requests.exceptions.Timeout as e:
        raise NetworkFailureError(f"The analysis service did not answer within {timeout:g} seconds.") from e
    except requests.exceptions.RequestException as e:
        raise NetworkFailureError(f"Could not reach the analysis service. ({e})") from e

    if not response.ok:
        try:
            detail = response.json().get("error", "Unknown error from API.")
        except (requests.exceptions.JSONDecodeError, AttributeError):
            detail = response.text or "Unknown error from API."
        raise ServerError(response.status_code, f"API Error ({response.status_code}): {detail}")

    try:
        return AnalysisResult.model_validate_json(response.content)
    except ValidationError as e:
        raise MalformedResponseError(f"The analysis service sent an unexpected reply. ({e.error_count()} problems)") from e
