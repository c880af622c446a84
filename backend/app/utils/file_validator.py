"""
File Validation Utilities Module for Tubely

Checks applied to an upload before anything is staged:
- Parsing of the declared Content-Type of a multipart part
- Membership of the media type in the endpoint's accepted set
- Size ceilings, both on the declared Content-Length and on streamed bytes

Validators return a result dictionary in the same shape so callers can log
the details and decide which error to raise.
"""

from typing import Any


# =============================================================================
# CONSTANTS - Size Limits
# =============================================================================

# Bytes in a kilobyte (for size conversions and comparisons)
BYTES_PER_KB: int = 1024


# =============================================================================
# MEDIA TYPE VALIDATION
# =============================================================================


def parse_media_type(content_type: str | None) -> str | None:
    """
    Parse a Content-Type header value down to its bare media type.

    Parameters (``; charset=...``) are dropped and the result is lowercased.

    Args:
        content_type: Raw header value, e.g. ``"image/PNG; q=1"``

    Returns:
        The media type (``"image/png"``) or None when the value is missing
        or not of the form ``type/subtype``.

    Example:
        >>> parse_media_type("video/mp4; codecs=avc1")
        'video/mp4'
        >>> parse_media_type("garbage") is None
        True
    """
    if not content_type:
        return None

    media_type = content_type.split(";", 1)[0].strip().lower()
    main_type, sep, subtype = media_type.partition("/")
    if not sep or not main_type or not subtype or "/" in subtype:
        return None
    if any(ch.isspace() for ch in media_type):
        return None

    return media_type


def validate_content_type(
    content_type: str | None, accepted: frozenset[str] | set[str]
) -> dict[str, Any]:
    """
    Validate a declared content type against an accepted set.

    Args:
        content_type: Raw Content-Type header of the uploaded part
        accepted: Media types the endpoint accepts

    Returns:
        Dictionary with validation results:
        - is_valid: True if the parsed type is accepted
        - media_type: Parsed media type or None
        - error: Human-readable error message or None if valid
    """
    media_type = parse_media_type(content_type)
    result: dict[str, Any] = {"is_valid": True, "media_type": media_type, "error": None}

    if media_type is None:
        result["is_valid"] = False
        result["error"] = "Invalid Content-Type"
        return result

    if media_type not in accepted:
        result["is_valid"] = False
        result["error"] = (
            f"Invalid file type '{media_type}'. Allowed: {', '.join(sorted(accepted))}"
        )

    return result


# =============================================================================
# SIZE VALIDATION
# =============================================================================


def validate_file_size(file_size: int | None, max_size: int) -> dict[str, Any]:
    """
    Validate a (declared or observed) size against a ceiling.

    A missing size is accepted here; the streaming copy enforces the ceiling
    on the bytes actually received.

    Args:
        file_size: Size in bytes, or None when unknown
        max_size: Maximum size in bytes

    Returns:
        Dictionary with validation results:
        - is_valid: True if size is within limit, False otherwise
        - error: Human-readable error message or None if valid
        - file_size: The size that was validated
        - max_size: The maximum size that was used for validation
    """
    result: dict[str, Any] = {
        "is_valid": True,
        "error": None,
        "file_size": file_size,
        "max_size": max_size,
    }

    if file_size is None:
        return result

    if file_size < 0:
        result["is_valid"] = False
        result["error"] = "Invalid file size: cannot be negative"
        return result

    if file_size > max_size:
        result["is_valid"] = False
        result["error"] = (
            f"Upload ({format_file_size(file_size)}) exceeds maximum allowed size "
            f"({format_file_size(max_size)})"
        )

    return result


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human-readable size string (e.g., "1.50 MB", "256 B")

    Example:
        >>> format_file_size(1536)
        '1.50 KB'
        >>> format_file_size(1048576)
        '1.00 MB'
    """
    if size_bytes < 0:
        return "Invalid size"

    bytes_per_mb = BYTES_PER_KB * BYTES_PER_KB
    bytes_per_gb = bytes_per_mb * BYTES_PER_KB

    if size_bytes < BYTES_PER_KB:
        return f"{size_bytes} B"
    if size_bytes < bytes_per_mb:
        return f"{size_bytes / BYTES_PER_KB:.2f} KB"
    if size_bytes < bytes_per_gb:
        return f"{size_bytes / bytes_per_mb:.2f} MB"
    return f"{size_bytes / bytes_per_gb:.2f} GB"
