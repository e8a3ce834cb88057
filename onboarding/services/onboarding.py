"""
Application lifecycle: submission, status transitions and evaluation.

Status machine::

    DRAFT -> SUBMITTED -> UNDER_REVIEW -> APPROVED | REJECTED
    SUBMITTED | UNDER_REVIEW -> WITHDRAWN

REJECTED and WITHDRAWN are terminal.  Transitions run on a locked row.
Notifications and realtime events are sent after the write and never
fail the operation.
"""
from __future__ import annotations

import logging
from statistics import mean

import bleach
from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from onboarding.exceptions import Conflict, InvalidStateError, PreconditionError
from onboarding.models import Application, EvaluationScore, Stage
from onboarding.services import broadcast, numbering, notifications, progress, scoring
from onboarding.services.audit import safe_log_action
from onboarding.services.checklist import seed_checklist

logger = logging.getLogger(__name__)

METRICS_CACHE_KEY = 'onboarding:metrics'

TRANSITIONS = {
    Application.STATUS_DRAFT: (Application.STATUS_SUBMITTED,),
    Application.STATUS_SUBMITTED: (Application.STATUS_UNDER_REVIEW, Application.STATUS_WITHDRAWN),
    Application.STATUS_UNDER_REVIEW: (
        Application.STATUS_APPROVED,
        Application.STATUS_REJECTED,
        Application.STATUS_WITHDRAWN,
    ),
    Application.STATUS_APPROVED: (),
    Application.STATUS_REJECTED: (),
    Application.STATUS_WITHDRAWN: (),
}

EVALUABLE_STATUSES = (Application.STATUS_SUBMITTED, Application.STATUS_UNDER_REVIEW)

AUTO_REJECT_REASON = 'Automatic evaluation score {score} is below the review threshold.'
MORE_DOCUMENTS_REASON = (
    'Automatic evaluation score {score} needs a manual review. '
    'Please upload any outstanding documents.'
)


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, ())


def _clean(text: str | None) -> str:
    return bleach.clean(text or '', tags=[], strip=True).strip()


def _active_for_email(email: str):
    return Application.objects.filter(contact_email__iexact=email).exclude(status__in=Application.TERMINAL_STATUSES)


def _after_change(application: Application, event: str, **payload) -> None:
    cache.delete(METRICS_CACHE_KEY)
    broadcast.publish(application, event, **payload)


# ---------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------
def submit_application(data: dict, *, actor=None) -> Application:
    """Create a SUBMITTED application from validated data and seed its checklist."""
    fields = dict(data)
    fields['contact_email'] = fields['contact_email'].strip().lower()
    for name in ('business_plan',):
        if name in fields:
            fields[name] = _clean(fields[name])
    email = fields['contact_email']

    if _active_for_email(email).exists():
        raise Conflict('An active application already exists for this e-mail address.')

    application = None
    for attempt in range(numbering.MAX_ATTEMPTS):
        number = numbering.application_number()
        try:
            with transaction.atomic():
                application = Application.objects.create(
                    application_number=number,
                    status=Application.STATUS_SUBMITTED,
                    submitted_at=timezone.now(),
                    **fields,
                )
                seed_checklist(application)
            break
        except IntegrityError:
            if _active_for_email(email).exists():
                raise Conflict('An active application already exists for this e-mail address.')
            logger.warning('application number %s already taken (attempt %s)', number, attempt + 1)
    if application is None:
        raise Conflict('Could not allocate an application number, please retry.')

    safe_log_action(user=actor, action='application_submit', object_type='application', object_id=application.id,
                    detail={'number': application.application_number, 'email': email})
    notifications.send_application_confirmation(application)
    _after_change(application, 'application.submitted')
    return application


# ---------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------
def _apply_transition(application: Application, new_status: str, actor=None, reason: str = '') -> None:
    """Mutate and save a row that the caller has locked."""
    if not can_transition(application.status, new_status):
        raise InvalidStateError(f'Cannot move application from {application.status} to {new_status}.')
    now = timezone.now()
    old_status = application.status
    application.status = new_status
    changed = ['status', 'updated_at']
    decider = actor if getattr(actor, 'pk', None) else None

    if new_status == Application.STATUS_SUBMITTED:
        application.submitted_at = now
        changed.append('submitted_at')
    elif new_status == Application.STATUS_UNDER_REVIEW:
        application.reviewed_at = now
        application.reviewed_by = decider
        changed += ['reviewed_at', 'reviewed_by']
    elif new_status == Application.STATUS_APPROVED:
        application.approved_at = now
        application.decided_by = decider
        application.decision = Application.STATUS_APPROVED
        changed += ['approved_at', 'decided_by', 'decision']
    elif new_status == Application.STATUS_REJECTED:
        application.rejected_at = now
        application.decided_by = decider
        application.decision = Application.STATUS_REJECTED
        application.rejection_reason = reason
        changed += ['rejected_at', 'decided_by', 'decision', 'rejection_reason']
    elif new_status == Application.STATUS_WITHDRAWN:
        application.withdrawn_at = now
        changed.append('withdrawn_at')

    application.save(update_fields=changed)
    safe_log_action(user=actor, action='application_status', object_type='application', object_id=application.id,
                    detail={'from': old_status, 'to': new_status, 'reason': reason})


def update_status(application: Application, new_status: str, *, actor=None, reason: str | None = None) -> Application:
    valid = dict(Application.STATUS_CHOICES)
    if new_status not in valid:
        raise ValidationError({'status': f'Unknown status {new_status!r}.'})
    reason = _clean(reason)
    if new_status == Application.STATUS_REJECTED and not reason:
        raise ValidationError({'reason': 'A reason is required to reject an application.'})

    with transaction.atomic():
        locked = Application.objects.select_for_update().get(pk=application.pk)
        _apply_transition(locked, new_status, actor, reason)

    notifications.send_status_update(locked, new_status, reason)
    _after_change(locked, 'application.status', reason=reason)
    return locked


# ---------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------
def _require_evaluable(application: Application) -> None:
    if application.status not in EVALUABLE_STATUSES:
        raise PreconditionError(f'Applications in {application.status} cannot be evaluated.')


def refresh_average_score(application: Application) -> float | None:
    totals = list(application.evaluations.values_list('total_score', flat=True))
    application.evaluation_score = round(mean(totals), 2) if totals else None
    application.save(update_fields=['evaluation_score', 'updated_at'])
    return application.evaluation_score


def record_manual_evaluation(application: Application, scores: dict, *, evaluator=None,
                             recommendation: str | None = None, notes: dict | None = None,
                             general_notes: str = '', risk_assessment: str = '') -> EvaluationScore:
    """Store a reviewer's scores.  Never changes the application's status."""
    _require_evaluable(application)
    total, computed = scoring.score_manual(scores)
    with transaction.atomic():
        locked = Application.objects.select_for_update().get(pk=application.pk)
        _require_evaluable(locked)
        evaluation = EvaluationScore.objects.create(
            application=locked,
            evaluator=evaluator if getattr(evaluator, 'pk', None) else None,
            **{f'{c}_score': float(scores[c]) for c in scoring.CATEGORIES},
            notes={k: _clean(v) for k, v in (notes or {}).items()},
            total_score=total,
            recommendation=recommendation or computed,
            is_auto_generated=False,
            general_notes=_clean(general_notes),
            risk_assessment=_clean(risk_assessment),
        )
        refresh_average_score(locked)
    application.evaluation_score = locked.evaluation_score
    safe_log_action(user=evaluator, action='application_evaluate', object_type='application', object_id=application.id,
                    detail={'total': total, 'recommendation': evaluation.recommendation, 'auto': False})
    _after_change(locked, 'application.evaluated', score=locked.evaluation_score)
    return evaluation


def auto_evaluate(application: Application, *, evaluator=None) -> EvaluationScore:
    """Score the application from its facts and act on the recommendation.

    APPROVE and REJECT move the application (through UNDER_REVIEW) to the
    decision; PENDING_REVIEW leaves it UNDER_REVIEW and asks the applicant
    for more documents.
    """
    _require_evaluable(application)
    notify_status = None
    reason = ''
    with transaction.atomic():
        locked = Application.objects.select_for_update().get(pk=application.pk)
        _require_evaluable(locked)
        result = scoring.evaluate(scoring.snapshot_from_application(locked))
        evaluation = EvaluationScore.objects.create(
            application=locked,
            evaluator=evaluator if getattr(evaluator, 'pk', None) else None,
            **{f'{c}_score': result.criteria[c] for c in scoring.CATEGORIES},
            notes=result.notes,
            total_score=result.total_score,
            recommendation=result.recommendation,
            is_auto_generated=True,
            general_notes=result.summary,
            risk_assessment=f"{result.risk['level']} ({result.risk['score']})",
        )
        refresh_average_score(locked)

        if locked.status == Application.STATUS_SUBMITTED:
            _apply_transition(locked, Application.STATUS_UNDER_REVIEW, evaluator)
        if result.recommendation == scoring.APPROVE:
            _apply_transition(locked, Application.STATUS_APPROVED, evaluator)
            notify_status = Application.STATUS_APPROVED
        elif result.recommendation == scoring.REJECT:
            reason = AUTO_REJECT_REASON.format(score=result.total_score)
            _apply_transition(locked, Application.STATUS_REJECTED, evaluator, reason)
            notify_status = Application.STATUS_REJECTED
        else:
            reason = MORE_DOCUMENTS_REASON.format(score=result.total_score)
            notify_status = Application.STATUS_UNDER_REVIEW

    safe_log_action(user=evaluator, action='application_evaluate', object_type='application', object_id=locked.id,
                    detail={'total': result.total_score, 'recommendation': result.recommendation, 'auto': True})
    notifications.send_status_update(locked, notify_status, reason)
    _after_change(locked, 'application.evaluated', score=locked.evaluation_score)
    return evaluation


def evaluate(application: Application, *, evaluator=None, scores: dict | None = None, **manual) -> EvaluationScore:
    """Manual evaluation when ``scores`` are given, automatic otherwise."""
    if scores is None:
        return auto_evaluate(application, evaluator=evaluator)
    return record_manual_evaluation(application, scores, evaluator=evaluator, **manual)


# ---------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------
def lookup_status(application_number: str, email: str) -> Application | None:
    """Public status check; both the number and the contact e-mail must match."""
    return (
        Application.objects.filter(application_number=application_number, contact_email__iexact=(email or '').strip())
        .select_related('contract')
        .first()
    )


# ---------------------------------------------------------------------
# Lists and metrics
# ---------------------------------------------------------------------
SORT_FIELDS = {
    'createdAt': 'created_at',
    'submittedAt': 'submitted_at',
    'hospitalName': 'hospital_name',
    'score': 'evaluation_score',
    'status': 'status',
    'state': 'state',
}


def list_applications(*, status: str | None = None, state: str | None = None, facility_type: str | None = None,
                      q: str | None = None, sort: str | None = None, page: int = 1, page_size: int = 20):
    """Filtered, sorted page of applications and the total match count.

    ``sort`` is a key of ``SORT_FIELDS``, prefixed with ``-`` for descending.
    """
    qs = Application.objects.all()
    if status:
        qs = qs.filter(status=status)
    if state:
        qs = qs.filter(state=state)
    if facility_type:
        qs = qs.filter(facility_type=facility_type)
    if q:
        qs = qs.filter(
            Q(hospital_name__icontains=q) | Q(application_number__icontains=q)
            | Q(contact_email__icontains=q) | Q(contact_name__icontains=q) | Q(city__icontains=q)
        )

    order = '-created_at'
    if sort:
        descending = sort.startswith('-')
        field = SORT_FIELDS.get(sort.lstrip('-'))
        if field:
            order = f"-{field}" if descending else field

    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(100, max(1, int(page_size or 20)))
    start = (page - 1) * page_size
    items = list(qs.select_related('contract').order_by(order, '-id')[start:start + page_size])
    return items, total


def average_processing_days(queryset=None) -> float | None:
    """Mean days from submission to decision over decided applications."""
    qs = (queryset if queryset is not None else Application.objects.all()).filter(submitted_at__isnull=False)
    durations = []
    for submitted, approved, rejected in qs.filter(
        status__in=(Application.STATUS_APPROVED, Application.STATUS_REJECTED)
    ).values_list('submitted_at', 'approved_at', 'rejected_at'):
        decided = approved or rejected
        if decided:
            durations.append((decided - submitted).total_seconds() / 86400)
    return round(mean(durations), 2) if durations else None


def _compute_metrics(state: str | None = None) -> dict:
    qs = Application.objects.all()
    if state:
        qs = qs.filter(state=state)
    by_status = {code: 0 for code, _ in Application.STATUS_CHOICES}
    for row in qs.values('status').annotate(n=Count('id')):
        by_status[row['status']] = row['n']
    total = sum(by_status.values())
    approved = by_status[Application.STATUS_APPROVED]
    rejected = by_status[Application.STATUS_REJECTED]
    decided = approved + rejected

    by_state = {row['state']: row['n'] for row in qs.values('state').annotate(n=Count('id')).order_by('state')}
    by_stage = {stage.value: 0 for stage in Stage}
    for application in qs.exclude(status__in=Application.TERMINAL_STATUSES):
        by_stage[progress.current_stage(application).value] += 1
    avg_score = qs.filter(evaluation_score__isnull=False).aggregate(v=Avg('evaluation_score'))['v']

    return {
        'total': total,
        'approved': approved,
        'rejected': rejected,
        'pending': by_status[Application.STATUS_SUBMITTED] + by_status[Application.STATUS_UNDER_REVIEW],
        'withdrawn': by_status[Application.STATUS_WITHDRAWN],
        'approvalRate': round(approved / decided * 100, 2) if decided else 0.0,
        'averageScore': round(avg_score, 2) if avg_score is not None else None,
        'averageProcessingDays': average_processing_days(qs),
        'byStatus': by_status,
        'byState': by_state,
        'byStage': by_stage,
        'generatedAt': timezone.now().isoformat(),
    }


def onboarding_metrics(*, state: str | None = None, refresh: bool = False) -> dict:
    """Dashboard metrics.  The unfiltered result is cached."""
    if state:
        return _compute_metrics(state)
    if not refresh:
        cached = cache.get(METRICS_CACHE_KEY)
        if cached:
            return cached
    data = _compute_metrics()
    cache.set(METRICS_CACHE_KEY, data, settings.ONBOARDING['METRICS_CACHE_SECONDS'])
    return data
