"""
Application documents: upload, verification and removal.

After every change the DOCUMENTS checklist items are re-derived from the
set of verified documents.
"""
from __future__ import annotations

import logging

import bleach
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from onboarding.exceptions import InvalidStateError
from onboarding.models import Application, Document
from onboarding.services import broadcast, storage
from onboarding.services.audit import safe_log_action
from onboarding.services.checklist import sync_document_checklist

logger = logging.getLogger(__name__)


def validate_upload(uploaded) -> None:
    max_bytes = settings.UPLOAD_MAX_MB * 1024 * 1024
    if uploaded.size > max_bytes:
        raise ValidationError({'file': f'File exceeds the {settings.UPLOAD_MAX_MB}MB limit.'})
    content_type = (getattr(uploaded, 'content_type', '') or '').lower()
    if not any(content_type.startswith(prefix.strip()) for prefix in settings.ALLOWED_UPLOAD_TYPES if prefix.strip()):
        raise ValidationError({'file': f'File type {content_type or "unknown"} is not allowed.'})


def upload_document(application: Application, uploaded, *, document_type: str, name: str = '',
                    expiry_date=None, uploader=None) -> Document:
    if application.is_terminal:
        raise InvalidStateError(f'Cannot add documents to a {application.status} application.')
    validate_upload(uploaded)
    content = uploaded.read()
    digest = storage.checksum(content)
    storage_name, url = storage.save(content, f'applications/{application.id}', uploaded.name)
    try:
        with transaction.atomic():
            document = Document.objects.create(
                application=application,
                document_type=document_type,
                name=bleach.clean(name or uploaded.name, tags=[], strip=True)[:255],
                original_file_name=uploaded.name[:255],
                storage_name=storage_name,
                file_url=url,
                mime_type=getattr(uploaded, 'content_type', '') or 'application/octet-stream',
                size=len(content),
                checksum=digest,
                expiry_date=expiry_date,
                uploaded_by=uploader if getattr(uploader, 'pk', None) else None,
            )
            sync_document_checklist(application)
    except Exception:
        # Do not leave orphaned bytes behind a failed insert.
        storage.delete(storage_name)
        raise
    safe_log_action(user=uploader, action='document_upload', object_type='document', object_id=document.id,
                    detail={'application': application.application_number, 'type': document_type, 'checksum': digest})
    broadcast.publish(application, 'document.uploaded', documentId=document.id, documentType=document_type)
    return document


def verify_document(document: Document, *, verified: bool = True, verifier=None, notes: str = '') -> Document:
    with transaction.atomic():
        document = Document.objects.select_for_update().select_related('application').get(pk=document.pk)
        document.is_verified = verified
        document.verified_by = verifier if verified and getattr(verifier, 'pk', None) else None
        document.verified_at = timezone.now() if verified else None
        document.verification_notes = bleach.clean(notes or '', tags=[], strip=True)
        document.save(update_fields=['is_verified', 'verified_by', 'verified_at', 'verification_notes'])
        sync_document_checklist(document.application)
    safe_log_action(user=verifier, action='document_verify', object_type='document', object_id=document.id,
                    detail={'verified': verified})
    broadcast.publish(document.application, 'document.verified', documentId=document.id, verified=verified)
    return document


def delete_document(document: Document, *, actor=None) -> None:
    application = document.application
    document_id = document.id
    storage.delete(document.storage_name)
    with transaction.atomic():
        document.delete()
        sync_document_checklist(application)
    safe_log_action(user=actor, action='document_delete', object_type='document', object_id=document_id,
                    detail={'application': application.application_number})
    broadcast.publish(application, 'document.deleted', documentId=document_id)
