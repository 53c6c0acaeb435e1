"""photodrop: a small FastAPI server that validates and stores image uploads."""

from .config import Settings, get_settings
from .errors import ErrorKind, StorageIOError, TemplateLoadError, UploadError
from .handler import UploadHandler
from .server import create_app, main

__all__ = [
    "Settings",
    "get_settings",
    "ErrorKind",
    "UploadError",
    "StorageIOError",
    "TemplateLoadError",
    "UploadHandler",
    "create_app",
    "main",
]
__version__ = "0.1.0"
