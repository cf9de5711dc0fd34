"""Resume upload tools for the resume checker."""
from .extractors import file_text_extractor
from .file_validator import FileValidator

__all__ = [
    "file_text_extractor",
    "FileValidator",
]
