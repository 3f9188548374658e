"""
Client side of Palette Advisor: upload a photo, get a palette back.

`UploadClient` (in uploader.py) is the entry point used by the Streamlit
page; states.py holds the lifecycle reducer and api.py the HTTP call.
"""


from .models import AnalysisResult, ClientError, ColorRecommendation, ErrorKind, UploadedImage
from .uploader import UploadClient


__all__ = [
    "AnalysisResult",
    "ClientError",
    "ColorRecommendation",
    "ErrorKind",
    "UploadClient",
    "UploadedImage",
]
