"""Gemini REST client: request dispatch, streaming and file upload."""

from .client import GeminiClient, GeminiClientBuilder
from .files import FileUpload, guess_mime_type, upload_file

__all__ = ["FileUpload", "GeminiClient", "GeminiClientBuilder", "guess_mime_type", "upload_file"]
