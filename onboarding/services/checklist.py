"""
Onboarding checklist.

Every application gets the same twelve items at submission.  Items in the
DOCUMENTS category are derived from verified documents and cannot be
toggled by hand; the others are completed by staff, either one at a time
or per :class:`~onboarding.models.Stage` through ``STAGE_ITEMS``.
"""
from __future__ import annotations

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from onboarding.exceptions import PreconditionError
from onboarding.models import Application, ChecklistItem, Hospital, Stage
from onboarding.services import broadcast
from onboarding.services.audit import safe_log_action

DOCUMENTS = ChecklistItem.CATEGORY_DOCUMENTS
VERIFICATION = ChecklistItem.CATEGORY_VERIFICATION
CONTRACT = ChecklistItem.CATEGORY_CONTRACT
SETUP = ChecklistItem.CATEGORY_SETUP

# (code, category, label, description, document type, required)
# Document items are required when their type is in ONBOARDING['REQUIRED_DOCUMENT_TYPES'].
CHECKLIST_TEMPLATE = (
    ('medical_license', DOCUMENTS, 'Medical License', 'Valid facility operating license', 'LICENSE', None),
    ('cac_registration', DOCUMENTS, 'CAC Registration Certificate', 'Corporate Affairs Commission registration', 'REGISTRATION', None),
    ('tax_clearance', DOCUMENTS, 'Tax Clearance Certificate', 'Current tax clearance', 'TAX_CERTIFICATE', None),
    ('facility_photos', DOCUMENTS, 'Facility Photos', 'Photos of the premises and key facilities', 'FACILITY_PHOTOS', None),
    ('insurance_certificate', DOCUMENTS, 'Insurance Certificate', 'Professional indemnity insurance', 'INSURANCE', None),
    ('site_inspection', VERIFICATION, 'Site Inspection', 'Physical inspection of the facility', '', True),
    ('reference_check', VERIFICATION, 'Reference Check', 'References from partners and regulators', '', True),
    ('contract_review', CONTRACT, 'Contract Review', 'Agreement reviewed and sent for signature', '', True),
    ('contract_signing', CONTRACT, 'Contract Signing', 'Agreement signed by both parties', '', True),
    ('system_access', SETUP, 'System Access', 'Accounts provisioned on the platform', '', True),
    ('staff_training', SETUP, 'Staff Training', 'Hospital staff trained on the platform', '', True),
    ('go_live_preparation', SETUP, 'Go-Live Preparation', 'Final readiness review', '', True),
)

# Items each stage completes when marked done by staff.
STAGE_ITEMS: dict[Stage, tuple[str, ...]] = {
    Stage.EVALUATION: ('site_inspection', 'reference_check'),
    Stage.CONTRACT_NEGOTIATION: ('contract_review',),
    Stage.CONTRACT_SIGNING: ('contract_signing',),
    Stage.SYSTEM_SETUP: ('system_access',),
    Stage.TRAINING: ('staff_training',),
    Stage.GO_LIVE: ('go_live_preparation',),
}

# Stages that only make sense once the hospital is live.
POST_ACTIVATION_STAGES = (Stage.SYSTEM_SETUP, Stage.TRAINING, Stage.GO_LIVE)


def seed_checklist(application: Application) -> list[ChecklistItem]:
    required_docs = set(required_document_types())
    return ChecklistItem.objects.bulk_create([
        ChecklistItem(
            application=application,
            code=code,
            category=category,
            label=label,
            description=description,
            document_type=doc_type,
            is_required=(doc_type in required_docs) if category == DOCUMENTS else required,
            order_index=index,
        )
        for index, (code, category, label, description, doc_type, required) in enumerate(CHECKLIST_TEMPLATE, start=1)
    ])


def required_document_types() -> list[str]:
    return list(settings.ONBOARDING['REQUIRED_DOCUMENT_TYPES'])


def sync_document_checklist(application: Application) -> None:
    """Complete each DOCUMENTS item iff a verified document of its type exists."""
    verified = set(
        application.documents.filter(is_verified=True).values_list('document_type', flat=True)
    )
    now = timezone.now()
    for item in application.checklist.filter(category=DOCUMENTS):
        done = item.document_type in verified
        if done == item.is_completed:
            continue
        item.is_completed = done
        item.completed_at = now if done else None
        if not done:
            item.completed_by = None
        item.save(update_fields=['is_completed', 'completed_at', 'completed_by'])


def _category_complete(items, category: str | None = None) -> bool:
    return all(
        i.is_completed for i in items
        if i.is_required and (category is None or i.category == category)
    )


def documents_complete(application: Application) -> bool:
    return _category_complete(application.checklist.all(), DOCUMENTS)


def fully_onboarded(application: Application) -> bool:
    return _category_complete(application.checklist.all())


def mark_items(application: Application, codes, *, actor=None, completed: bool = True, notes: str = '') -> int:
    now = timezone.now()
    changed = 0
    for item in application.checklist.filter(code__in=codes):
        if item.is_completed == completed:
            continue
        item.is_completed = completed
        item.completed_at = now if completed else None
        item.completed_by = actor if completed and getattr(actor, 'pk', None) else None
        if notes:
            item.notes = notes
        item.save(update_fields=['is_completed', 'completed_at', 'completed_by', 'notes'])
        changed += 1
    return changed


def update_checklist_item(item: ChecklistItem, *, completed: bool, actor=None, notes: str = '') -> ChecklistItem:
    if item.category == DOCUMENTS:
        raise PreconditionError('Document items complete automatically when the document is verified.')
    with transaction.atomic():
        item = ChecklistItem.objects.select_for_update().get(pk=item.pk)
        item.is_completed = completed
        item.completed_at = timezone.now() if completed else None
        item.completed_by = actor if completed and getattr(actor, 'pk', None) else None
        if notes:
            item.notes = notes
        item.save(update_fields=['is_completed', 'completed_at', 'completed_by', 'notes'])
    safe_log_action(user=actor, action='checklist_update', object_type='checklist_item', object_id=item.id,
                    detail={'code': item.code, 'completed': completed})
    broadcast.publish(item.application, 'checklist.updated', itemId=item.id, code=item.code, completed=completed)
    return item


def complete_stage(application: Application, stage: Stage | str, *, actor=None, notes: str = '') -> list[ChecklistItem]:
    try:
        stage = Stage(stage)
    except ValueError:
        raise ValidationError({'stage': f'Unknown stage {stage!r}.'}) from None
    codes = STAGE_ITEMS.get(stage)
    if not codes:
        raise ValidationError({'stage': f'{stage.value} has no checklist items to complete.'})
    if stage in POST_ACTIVATION_STAGES:
        hospital = Hospital.objects.filter(application=application).first()
        if hospital is None or hospital.status != Hospital.STATUS_ACTIVE:
            raise PreconditionError(f'{stage.label} requires an active hospital.')
    with transaction.atomic():
        mark_items(application, codes, actor=actor, notes=notes)
    safe_log_action(user=actor, action='stage_complete', object_type='application', object_id=application.id,
                    detail={'stage': stage.value, 'items': list(codes)})
    broadcast.publish(application, 'stage.completed', stage=stage.value)
    return list(application.checklist.filter(code__in=codes))
