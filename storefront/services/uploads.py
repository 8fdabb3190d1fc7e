"""Image upload storage.

Files land flat under ``UPLOAD_DIR`` as ``<epoch-ms>-<random><ext>`` and
are referenced as ``/uploads/<name>``.
"""

from __future__ import annotations

import os
import random
import time
from pathlib import Path
from typing import Any, List, Optional, Sequence

from storefront.config import UploadConfig, get_settings
from storefront.exceptions import ValidationError
from storefront.logging_config import get_logger

logger = get_logger(__name__)

UPLOAD_URL_PREFIX = "/uploads/"


def _config(config: Optional[UploadConfig]) -> UploadConfig:
    return config or get_settings().uploads


def generate_filename(original: Optional[str]) -> str:
    ext = Path(original or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{random.randint(0, 999_999_999)}{ext}"


def validate_image(upload: Any, size: int, config: Optional[UploadConfig] = None) -> None:
    """Reject non-image content types and oversized files.

    Raises:
        ValidationError: If the file is not an allowed image or is too large.
    """
    cfg = _config(config)
    content_type = (getattr(upload, "content_type", None) or "").lower()
    if content_type not in cfg.allowed_content_types:
        raise ValidationError("Only images allowed", file=getattr(upload, "filename", None))
    if size > cfg.max_upload_bytes:
        limit_mb = cfg.max_upload_bytes // (1024 * 1024)
        raise ValidationError(f"File too large. Maximum size is {limit_mb}MB")


def upload_path(url: str, config: Optional[UploadConfig] = None) -> Optional[Path]:
    """Filesystem path for an ``/uploads/...`` URL, or None for remote URLs."""
    if not url or url.startswith(("http://", "https://")):
        return None
    name = url.replace("\\", "/")
    if name.startswith(UPLOAD_URL_PREFIX):
        name = name[len(UPLOAD_URL_PREFIX):]
    elif name.startswith("uploads/"):
        name = name[len("uploads/"):]
    return _config(config).upload_dir / name.lstrip("/")


async def save_upload(upload: Any, config: Optional[UploadConfig] = None) -> str:
    """Validate and persist one uploaded image; returns its ``/uploads/`` URL."""
    cfg = _config(config)
    content = await upload.read()
    validate_image(upload, len(content), cfg)

    cfg.upload_dir.mkdir(parents=True, exist_ok=True)
    name = generate_filename(getattr(upload, "filename", None))
    (cfg.upload_dir / name).write_bytes(content)

    logger.debug("Saved upload", extra={"upload_name": name, "bytes": len(content)})
    return f"{UPLOAD_URL_PREFIX}{name}"


async def save_uploads(uploads: Sequence[Any], config: Optional[UploadConfig] = None) -> List[str]:
    """Save several images; already written files are removed if one fails."""
    saved: List[str] = []
    try:
        for upload in uploads:
            if upload is None or not getattr(upload, "filename", None):
                continue
            saved.append(await save_upload(upload, config))
    except Exception:
        for url in saved:
            remove_upload(url, config)
        raise
    return saved


def remove_upload(url: str, config: Optional[UploadConfig] = None) -> bool:
    path = upload_path(url, config)
    if path is None or not path.is_file():
        return False
    try:
        os.remove(path)
    except OSError as e:
        logger.warning(f"Could not remove upload {path}: {e}")
        return False
    return True
