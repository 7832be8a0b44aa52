"""
Input validation utilities for the study portal.
"""
import os
from typing import Tuple, Optional, Any


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal attacks.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename safe for logging and storage metadata
    """
    if not filename:
        raise ValueError("Filename cannot be empty")

    # Remove directory separators and path components
    filename = os.path.basename(filename.replace("\\", "/"))

    # Keep alphanumeric, dots, dashes, underscores
    safe_chars = []
    for char in filename:
        if char.isalnum() or char in "._-":
            safe_chars.append(char)
        else:
            safe_chars.append("_")

    sanitized = "".join(safe_chars)

    if len(sanitized) > 255:
        sanitized = sanitized[:255]

    if not sanitized.strip("._"):
        raise ValueError("Filename became empty after sanitization")

    return sanitized


def validate_image_content_type(content_type: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that a declared content type is an image type.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not content_type:
        return False, "File has no content type"
    if not content_type.lower().startswith("image/"):
        return False, f"File must be an image (got {content_type})"
    return True, None


def validate_file_size(file_size: int, max_size_bytes: int) -> Tuple[bool, Optional[str]]:
    """
    Validate file size.

    Args:
        file_size: File size in bytes
        max_size_bytes: Maximum allowed size in bytes

    Returns:
        Tuple of (is_valid, error_message)
    """
    if file_size <= 0:
        return False, "File is empty"

    if file_size > max_size_bytes:
        max_size_mb = max_size_bytes / (1024 * 1024)
        actual_size_mb = file_size / (1024 * 1024)
        return False, f"File too large: {actual_size_mb:.2f}MB (max: {max_size_mb:.2f}MB)"

    return True, None


def parse_week(value: Any, max_week: int) -> Tuple[Optional[int], Optional[str]]:
    """
    Parse a week parameter into an integer in [1, max_week].

    Returns:
        Tuple of (week, error_message)
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None, "Week parameter is required"
    if isinstance(value, bool):
        return None, f"Week must be a number between 1 and {max_week}"
    try:
        week = int(str(value).strip())
    except (TypeError, ValueError):
        return None, f"Week must be a number between 1 and {max_week}"
    if week < 1 or week > max_week:
        return None, f"Week must be a number between 1 and {max_week}"
    return week, None
