"""
Document storage backed by Django's ``default_storage``.

Any ``OSError`` from the backend surfaces as :class:`StorageError` so the
API answers 502 instead of 500.
"""
from __future__ import annotations

import hashlib
import logging
import os
import re
import uuid

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

from onboarding.exceptions import StorageError

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r'[^A-Za-z0-9._-]+')


def checksum(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def sanitize_file_name(name: str) -> str:
    base = os.path.basename(name or '') or 'file'
    base = _UNSAFE.sub('_', base).strip('._') or 'file'
    return base[:120]


def save(content: bytes, category: str, filename: str) -> tuple[str, str]:
    """Persist ``content`` and return ``(storage_name, url)``."""
    target = f"{category}/{uuid.uuid4().hex}_{sanitize_file_name(filename)}"
    try:
        name = default_storage.save(target, ContentFile(content))
        return name, default_storage.url(name)
    except OSError as exc:
        logger.exception('storage save failed for %s', target)
        raise StorageError() from exc


def delete(name: str) -> None:
    if not name:
        return
    try:
        default_storage.delete(name)
    except OSError as exc:
        logger.exception('storage delete failed for %s', name)
        raise StorageError() from exc
