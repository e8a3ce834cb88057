"""
Read-only onboarding progress, recomputed from current data on every call.
"""
from __future__ import annotations

from collections import OrderedDict

from onboarding.models import Application, Contract, Hospital, Stage
from onboarding.services.checklist import required_document_types

STEPS = (
    'application_submitted',
    'documents_uploaded',
    'evaluation_completed',
    'contract_generated',
    'contract_signed',
    'onboarding_complete',
)

# Display checkpoint per stage.  Not used for any decision.
STAGE_CHECKPOINTS = {
    Stage.APPLICATION: 12,
    Stage.DOCUMENT_SUBMISSION: 25,
    Stage.EVALUATION: 37,
    Stage.CONTRACT_NEGOTIATION: 50,
    Stage.CONTRACT_SIGNING: 62,
    Stage.SYSTEM_SETUP: 75,
    Stage.TRAINING: 87,
    Stage.GO_LIVE: 95,
    Stage.COMPLETED: 100,
}

NEXT_ITEMS_LIMIT = 3


def _contract(application: Application) -> Contract | None:
    return Contract.objects.filter(application=application).first()


def _hospital(application: Application) -> Hospital | None:
    return Hospital.objects.filter(application=application).first()


def step_states(application: Application) -> OrderedDict:
    verified = set(application.documents.filter(is_verified=True).values_list('document_type', flat=True))
    contract = _contract(application)
    hospital = _hospital(application)
    return OrderedDict([
        ('application_submitted', application.submitted_at is not None),
        ('documents_uploaded', set(required_document_types()) <= verified),
        ('evaluation_completed', application.evaluation_score is not None),
        ('contract_generated', contract is not None),
        ('contract_signed', contract is not None
         and contract.status in (Contract.STATUS_SIGNED, Contract.STATUS_ACTIVE)),
        ('onboarding_complete', hospital is not None and hospital.status == Hospital.STATUS_ACTIVE),
    ])


def current_stage(application: Application, steps: dict | None = None) -> Stage:
    steps = steps or step_states(application)
    if steps['onboarding_complete']:
        items = {i.code: i.is_completed for i in application.checklist.all()}
        if items.get('go_live_preparation'):
            return Stage.COMPLETED
        if items.get('staff_training'):
            return Stage.GO_LIVE
        if items.get('system_access'):
            return Stage.TRAINING
        return Stage.SYSTEM_SETUP
    if steps['contract_generated']:
        contract = _contract(application)
        if contract.status == Contract.STATUS_DRAFT:
            return Stage.CONTRACT_NEGOTIATION
        return Stage.CONTRACT_SIGNING
    if steps['evaluation_completed'] or application.status == Application.STATUS_UNDER_REVIEW:
        return Stage.EVALUATION
    if application.documents.exists():
        return Stage.DOCUMENT_SUBMISSION
    return Stage.APPLICATION


def checklist_summary(application: Application) -> dict:
    items = list(application.checklist.all())
    by_category: dict[str, dict] = OrderedDict()
    for item in items:
        group = by_category.setdefault(item.category, {'completed': 0, 'total': 0})
        group['total'] += 1
        group['completed'] += int(item.is_completed)
    pending = [i for i in items if not i.is_completed and i.is_required]
    return {
        'completed': sum(1 for i in items if i.is_completed),
        'total': len(items),
        'byCategory': by_category,
        'nextItems': [{'id': i.id, 'code': i.code, 'label': i.label, 'category': i.category}
                      for i in pending[:NEXT_ITEMS_LIMIT]],
    }


def get_progress(application: Application) -> dict:
    steps = step_states(application)
    completed = sum(1 for done in steps.values() if done)
    stage = current_stage(application, steps)
    return {
        'applicationId': application.id,
        'applicationNumber': application.application_number,
        'status': application.status,
        'steps': [{'key': key, 'completed': done} for key, done in steps.items()],
        'completedSteps': completed,
        'totalSteps': len(STEPS),
        'percentage': round(completed / len(STEPS) * 100, 2),
        'stage': stage.value,
        'stageLabel': stage.label,
        'stageCheckpoint': STAGE_CHECKPOINTS[stage],
        'checklist': checklist_summary(application),
    }
