from fastapi import FastAPI, File, Request, UploadFile, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from typing import Optional
import logging


from . import ai_core, config, schemas

app = FastAPI(
    title="Palette Advisor API",
    description="Analyzes an uploaded photo and recommends a flattering color palette.",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# --- Error Handling ---
@app.exception_handler(ai_core.ImageProcessingError)
async def handle_image_processing_error(request: Request, exc: ai_core.ImageProcessingError):
    """
    Turns analysis failures into `{"error": ...}` bodies.
    Only the class-level user-safe message leaves the server.
    """
    logger.warning(f"{request.method} {request.url.path} failed ({exc.status_code}): {exc.detail or exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


ANALYZE_PATH = "/api/analyze"


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    """
    A malformed upload (e.g. `image` sent as text) is a processing failure,
    not a 422 that echoes the input back. Other routes keep FastAPI's default.
    """
    if request.url.path != ANALYZE_PATH:
        return await request_validation_exception_handler(request, exc)
    logger.warning(f"{request.method} {request.url.path} rejected malformed form: {len(exc.errors())} validation errors")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": ai_core.GENERIC_ERROR_MESSAGE}
    )


# --- Application Lifecycle Events ---
@app.on_event("startup")
async def on_startup():
    logger.info("Application startup: Palette Advisor API")
    config.log_configuration()


# --- API Endpoints ---

@app.get("/", summary="Root Endpoint", description="A simple welcome message for the API.")
async def root():
    """
    Root endpoint to check if the API is running.
    """
    return {"message": "Welcome to Palette Advisor API!"}


@app.get("/health", response_model=schemas.HealthResponse, summary="Health Check")
async def health():
    return schemas.HealthResponse(
        status="ok",
        analyzer="stub" if ai_core.USE_STUB_ANALYZER else "inference"
    )


@app.post(
    ANALYZE_PATH,
    response_model=schemas.AnalysisResult,
    status_code=status.HTTP_200_OK,
    responses={
        413: {"model": schemas.ErrorResponse},
        415: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
    },
    summary="Analyze Photo",
    description="Takes one uploaded image and returns a recommended color palette."
)
async def handle_analyze_request(
    image: Optional[UploadFile] = File(None, description="Photo to analyze")
):
    """
    - **image**: multipart field holding the image bytes.
    - Returns the palette, detected skin tone and season.
    """
    if image is None:
        raise ai_core.MissingImageError("Request has no 'image' field")

    logger.info(f"POST /api/analyze - File: '{image.filename}', Content-Type: '{image.content_type}'")
    try:
        # One byte past the limit is enough to know it is too big.
        content = await image.read(config.MAX_UPLOAD_BYTES + 1)
        ai_core.validate_upload(content, image.content_type)
        # The inference call is blocking; keep it off the event loop.
        result = await run_in_threadpool(ai_core.analyze_image, content, image.content_type)
    except ai_core.ImageProcessingError:
        raise
    except Exception as e:
        logger.error(f"Error during image analysis: {e}", exc_info=True)
        raise ai_core.ImageProcessingError(str(e)) from e
    finally:
        await image.close()

    logger.info(f"Analysis complete: {len(result.colors)} colors, skinTone='{result.skin_tone}', season='{result.season}'")
    return result
