"""
Media server access for CleanStream.

Handles listing, nickname lookups, and file transfers.
"""

from .client import (
    MediaClient,
    MediaClientConfig,
    RemoteError,
    AuthExpiredError,
    MediaNotFoundError,
    normalize_base_url,
)
from .transfer import MediaTransfer, TransferResult, partial_path

__all__ = [
    "MediaClient",
    "MediaClientConfig",
    "RemoteError",
    "AuthExpiredError",
    "MediaNotFoundError",
    "normalize_base_url",
    "MediaTransfer",
    "TransferResult",
    "partial_path",
]
