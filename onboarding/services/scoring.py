"""
Deterministic scoring of onboarding applications.

Every function here is pure: it looks only at its arguments (and the
``ONBOARDING`` policy in settings) and never touches the database.  Each
category scorer returns a value in ``[0, 100]``; :func:`weighted_total`
combines them with the configured weights.

One weight set and one pair of thresholds is used everywhere, for the
automatic pre-screen and for reviewer scores alike.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

CATEGORIES = (
    'facility',
    'staffing',
    'equipment',
    'compliance',
    'financial',
    'location',
    'services',
    'reputation',
)

APPROVE = 'APPROVE'
REJECT = 'REJECT'
PENDING_REVIEW = 'PENDING_REVIEW'  # automatic pre-screen
REVIEW = 'REVIEW'  # human reviewer

ESSENTIAL_SERVICES = (
    'Emergency Care',
    'Outpatient Services',
    'Inpatient Services',
    'Laboratory Services',
    'Pharmacy Services',
)
SPECIALIZED_SERVICES = (
    'Surgery',
    'Pediatrics',
    'Obstetrics',
    'Radiology',
    'ICU',
    'Dialysis',
    'Oncology',
    'Cardiology',
)

DEFAULT_REPUTATION_SCORE = 50.0


@dataclass(frozen=True)
class ApplicationSnapshot:
    """The observable facts the scorers look at."""
    bed_capacity: int = 0
    staff_count: int = 0
    has_emergency: bool = False
    has_pharmacy: bool = False
    has_laboratory: bool = False
    has_radiology: bool = False
    state: str = ''
    is_urban: bool = True
    has_parking: bool = False
    has_public_transport: bool = False
    services_offered: Sequence[str] = ()
    specializations: Sequence[str] = ()
    estimated_revenue: float | None = None
    has_insurance_partnerships: bool = False
    has_hmo_partnerships: bool = False
    has_government_contracts: bool = False
    years_in_operation: int = 0
    verified_document_types: Sequence[str] = ()


@dataclass
class Evaluation:
    criteria: dict[str, float]
    notes: dict[str, str]
    total_score: float
    recommendation: str
    summary: str = ''
    risk: dict = field(default_factory=dict)


def _policy() -> Mapping:
    return settings.ONBOARDING


def _cap(value: float) -> float:
    return float(max(0.0, min(value, 100.0)))


def _tier(value: float, tiers: Sequence[tuple[float, float]], default: float) -> float:
    for minimum, points in tiers:
        if value >= minimum:
            return points
    return default


# ---------------------------------------------------------------------
# Category scorers
# ---------------------------------------------------------------------
def score_facility(bed_capacity: int, *, has_emergency=False, has_pharmacy=False,
                   has_laboratory=False, has_radiology=False) -> float:
    score = _tier(bed_capacity or 0, ((200, 40), (100, 35), (50, 30), (25, 20), (10, 15)), 10)
    score += 15 * sum(bool(f) for f in (has_emergency, has_pharmacy, has_laboratory, has_radiology))
    return _cap(score)


def score_staffing(staff_count: int, bed_capacity: int, *, has_specialists: bool = False) -> float:
    staff_count = staff_count or 0
    score = _tier(staff_count, ((100, 30), (50, 25), (25, 20), (10, 15)), 10)
    ratio = staff_count / bed_capacity if bed_capacity else 0
    score += _tier(ratio, ((3, 30), (2, 25), (1.5, 20), (1, 15)), 10)
    if staff_count > 0:
        # Declared staff is taken to include both doctors and nurses.
        score += 15 + 15
    if has_specialists:
        score += 10
    return _cap(score)


def score_equipment(*, has_emergency=False, has_pharmacy=False,
                    has_laboratory=False, has_radiology=False) -> float:
    score = 0
    if has_emergency:
        score += 25
    if has_pharmacy:
        score += 20
    if has_laboratory:
        score += 25
    if has_radiology:
        score += 30
    return _cap(score)


def score_compliance(verified_types: Iterable[str], required_types: Sequence[str] | None = None) -> float:
    verified = list(verified_types)
    if not verified:
        return 0.0
    required = list(required_types if required_types is not None else _policy()['REQUIRED_DOCUMENT_TYPES'])
    present = sum(1 for t in required if t in verified)
    score = (present / len(required)) * 80 if required else 80
    extra = max(len(verified) - present, 0)
    score += min(extra, 5) * 4
    return _cap(score)


def score_location(state: str, *, is_urban: bool = True, has_parking: bool = False,
                   has_public_transport: bool = False) -> float:
    policy = _policy()
    if state in policy['PRIORITY_STATES']:
        score = 50
    elif state in policy['MODERATE_PRIORITY_STATES']:
        score = 40
    else:
        score = 30
    score += 10 if is_urban else 20
    if has_parking:
        score += 15
    if has_public_transport:
        score += 15
    return _cap(score)


def _matches(offered: Iterable[str], catalogue: Sequence[str]) -> int:
    lowered = [s.lower() for s in offered if s]
    return sum(1 for item in catalogue if any(item.lower() in s for s in lowered))


def score_services(services_offered: Sequence[str], specializations: Sequence[str] = ()) -> float:
    services_offered = list(services_offered or ())
    score = _matches(services_offered, ESSENTIAL_SERVICES) / len(ESSENTIAL_SERVICES) * 50
    score += min(_matches(services_offered, SPECIALIZED_SERVICES) * 5, 30)
    score += min(len(specializations or ()) * 5, 20)
    return _cap(score)


def score_financial(estimated_revenue: float | Decimal | None, *, has_insurance=False, has_hmo=False,
                    has_government=False, years_in_operation: int = 0) -> float:
    if estimated_revenue is None:
        score = 20
    else:
        score = _tier(float(estimated_revenue), (
            (100_000_000, 40), (50_000_000, 35), (25_000_000, 30), (10_000_000, 25), (5_000_000, 20),
        ), 15)
    if has_insurance:
        score += 15
    if has_hmo:
        score += 15
    if has_government:
        score += 20
    score += _tier(years_in_operation or 0, ((10, 10), (5, 8), (3, 6), (1, 4)), 2)
    return _cap(score)


def score_reputation() -> float:
    return DEFAULT_REPUTATION_SCORE


# ---------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------
def weighted_total(scores: Mapping[str, float], weights: Mapping[str, float] | None = None) -> float:
    weights = weights or _policy()['EVALUATION_WEIGHTS']
    return round(sum(float(scores[c]) * weights[c] for c in CATEGORIES), 2)


def recommend(total: float, *, review_label: str = PENDING_REVIEW) -> str:
    policy = _policy()
    if total >= policy['APPROVE_THRESHOLD']:
        return APPROVE
    if total >= policy['REVIEW_THRESHOLD']:
        return review_label
    return REJECT


def score_manual(scores: Mapping[str, float]) -> tuple[float, str]:
    """Total and recommendation for reviewer-entered category scores."""
    total = weighted_total(scores)
    return total, recommend(total, review_label=REVIEW)


def summarize(criteria: Mapping[str, float], total: float, recommendation: str) -> str:
    strengths = [c for c in CATEGORIES if criteria[c] >= 70]
    weaknesses = [c for c in CATEGORIES if criteria[c] < 50]
    lines = [f"Overall Score: {total}/100", f"Recommendation: {recommendation.replace('_', ' ')}", '']
    if strengths:
        lines.append('Strengths:')
        lines.extend(f"- Strong {c} capabilities" for c in strengths)
        lines.append('')
    if weaknesses:
        lines.append('Areas for Improvement:')
        lines.extend(f"- {c} needs enhancement" for c in weaknesses)
    return '\n'.join(lines).strip()


def risk_assessment(compliance: float, financial: float, reputation: float) -> dict:
    score = round(100 - (compliance + financial + reputation) / 3, 2)
    if score <= 20:
        level = 'LOW'
    elif score <= 40:
        level = 'MODERATE'
    elif score <= 60:
        level = 'HIGH'
    else:
        level = 'CRITICAL'
    return {'score': score, 'level': level}


def evaluate(snapshot: ApplicationSnapshot) -> Evaluation:
    """Score every category for ``snapshot`` and recommend an outcome."""
    s = snapshot
    flags = dict(
        has_emergency=s.has_emergency, has_pharmacy=s.has_pharmacy,
        has_laboratory=s.has_laboratory, has_radiology=s.has_radiology,
    )
    criteria = {
        'facility': score_facility(s.bed_capacity, **flags),
        'staffing': score_staffing(s.staff_count, s.bed_capacity, has_specialists=bool(s.specializations)),
        'equipment': score_equipment(**flags),
        'compliance': score_compliance(s.verified_document_types),
        'financial': score_financial(
            s.estimated_revenue,
            has_insurance=s.has_insurance_partnerships,
            has_hmo=s.has_hmo_partnerships,
            has_government=s.has_government_contracts,
            years_in_operation=s.years_in_operation,
        ),
        'location': score_location(
            s.state, is_urban=s.is_urban, has_parking=s.has_parking,
            has_public_transport=s.has_public_transport,
        ),
        'services': score_services(s.services_offered, s.specializations),
        'reputation': score_reputation(),
    }
    notes = {
        'facility': f"{s.bed_capacity} beds, {sum(bool(v) for v in flags.values())} of 4 core facilities",
        'staffing': f"{s.staff_count} staff for {s.bed_capacity} beds",
        'equipment': 'Based on available facilities',
        'compliance': f"{len(s.verified_document_types)} verified document(s)",
        'financial': 'Revenue not declared' if s.estimated_revenue is None else 'Based on declared revenue',
        'location': f"{s.state}, {'urban' if s.is_urban else 'rural'}",
        'services': f"{len(s.services_offered)} service(s), {len(s.specializations)} specialization(s)",
        'reputation': 'Pending reference checks',
    }
    total = weighted_total(criteria)
    recommendation = recommend(total)
    return Evaluation(
        criteria=criteria,
        notes=notes,
        total_score=total,
        recommendation=recommendation,
        summary=summarize(criteria, total, recommendation),
        risk=risk_assessment(criteria['compliance'], criteria['financial'], criteria['reputation']),
    )


def snapshot_from_application(application, verified_document_types: Sequence[str] | None = None) -> ApplicationSnapshot:
    """Build a snapshot from an ``Application`` row.

    ``verified_document_types`` may be passed to avoid a query; otherwise
    the application's verified documents are read.
    """
    if verified_document_types is None:
        verified_document_types = list(
            application.documents.filter(is_verified=True).values_list('document_type', flat=True)
        )
    revenue = application.estimated_revenue
    return ApplicationSnapshot(
        bed_capacity=application.bed_capacity,
        staff_count=application.staff_count,
        has_emergency=application.has_emergency,
        has_pharmacy=application.has_pharmacy,
        has_laboratory=application.has_laboratory,
        has_radiology=application.has_radiology,
        state=application.state,
        is_urban=application.is_urban,
        has_parking=application.has_parking,
        has_public_transport=application.has_public_transport,
        services_offered=tuple(application.services_offered or ()),
        specializations=tuple(application.specializations or ()),
        estimated_revenue=float(revenue) if revenue is not None else None,
        has_insurance_partnerships=application.has_insurance_partnerships,
        has_hmo_partnerships=application.has_hmo_partnerships,
        has_government_contracts=application.has_government_contracts,
        years_in_operation=application.years_in_operation,
        verified_document_types=tuple(verified_document_types),
    )


def validate_policy(weights: Mapping[str, float], *, approve: float, review: float) -> None:
    """Raise ``ImproperlyConfigured`` unless the scoring policy is coherent."""
    missing = set(CATEGORIES) - set(weights)
    unknown = set(weights) - set(CATEGORIES)
    if missing or unknown:
        raise ImproperlyConfigured(
            f"ONBOARDING['EVALUATION_WEIGHTS'] must cover exactly {', '.join(CATEGORIES)} "
            f"(missing: {sorted(missing)}, unknown: {sorted(unknown)})"
        )
    if any(w < 0 for w in weights.values()):
        raise ImproperlyConfigured("ONBOARDING['EVALUATION_WEIGHTS'] must not be negative")
    total = sum(weights.values())
    if not math.isclose(total, 1.0, rel_tol=0, abs_tol=1e-9):
        raise ImproperlyConfigured(f"ONBOARDING['EVALUATION_WEIGHTS'] must sum to 1.0, got {total}")
    if not (0 <= review < approve <= 100):
        raise ImproperlyConfigured(
            f"ONBOARDING thresholds must satisfy 0 <= review < approve <= 100 (got review={review}, approve={approve})"
        )
