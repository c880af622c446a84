"""
Utilities Package for the Tubely Backend Application.

Modules:
--------
file_validator:
    Declared content type parsing and size ceiling checks.

logger:
    JSON/text log formatting, application-wide setup and per-upload
    context via LoggerAdapter.

security:
    Unguessable asset identities, JWT helpers and bearer header parsing.
"""

from app.utils.file_validator import (
    format_file_size,
    parse_media_type,
    validate_content_type,
    validate_file_size,
)
from app.utils.logger import add_log_context, setup_logging
from app.utils.security import (
    extract_token_from_header,
    generate_asset_identity,
    generate_jwt_token,
    media_type_to_ext,
    validate_jwt_token,
)


__all__ = [
    "add_log_context",
    "extract_token_from_header",
    "format_file_size",
    "generate_asset_identity",
    "generate_jwt_token",
    "media_type_to_ext",
    "parse_media_type",
    "setup_logging",
    "validate_content_type",
    "validate_file_size",
    "validate_jwt_token",
]
