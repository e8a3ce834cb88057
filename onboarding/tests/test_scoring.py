import dataclasses

import pytest
from django.core.exceptions import ImproperlyConfigured

from onboarding.services import scoring
from onboarding.services.scoring import ApplicationSnapshot

STRONG = ApplicationSnapshot(
    bed_capacity=80,
    staff_count=60,
    has_emergency=True,
    has_pharmacy=True,
    has_laboratory=True,
    has_radiology=True,
    state='Borno',
    is_urban=False,
    has_parking=True,
    services_offered=(
        'Emergency Care', 'Outpatient Services', 'Inpatient Services',
        'Laboratory Services', 'Pharmacy Services', 'Surgery',
    ),
    specializations=('Surgery', 'Pediatrics'),
    has_insurance_partnerships=True,
    has_hmo_partnerships=True,
    years_in_operation=5,
    verified_document_types=('LICENSE', 'REGISTRATION', 'TAX_CERTIFICATE'),
)

WEAK = ApplicationSnapshot(
    bed_capacity=8,
    staff_count=0,
    state='Lagos',
    is_urban=True,
    services_offered=('Outpatient Services',),
)


def uniform(value):
    return {c: value for c in scoring.CATEGORIES}


def test_strong_profile_is_approved():
    result = scoring.evaluate(STRONG)
    assert result.criteria == {
        'facility': 90.0,
        'staffing': 75.0,
        'equipment': 100.0,
        'compliance': 80.0,
        'financial': 58.0,
        'location': 85.0,
        'services': 65.0,
        'reputation': 50.0,
    }
    assert result.total_score == pytest.approx(79.05)
    assert result.recommendation == scoring.APPROVE
    assert result.risk == {'score': pytest.approx(37.33), 'level': 'MODERATE'}
    assert 'Overall Score: 79.05/100' in result.summary


def test_weak_profile_is_rejected():
    result = scoring.evaluate(WEAK)
    assert result.total_score == pytest.approx(14.2)
    assert result.recommendation == scoring.REJECT
    assert result.criteria['compliance'] == 0
    assert result.risk['level'] == 'CRITICAL'
    assert 'compliance needs enhancement' in result.summary


def test_evaluation_is_deterministic():
    assert scoring.evaluate(STRONG) == scoring.evaluate(STRONG)


def test_missing_documents_drop_strong_profile_into_review():
    result = scoring.evaluate(dataclasses.replace(STRONG, verified_document_types=()))
    assert result.total_score == pytest.approx(63.05)
    assert result.recommendation == scoring.PENDING_REVIEW


@pytest.mark.parametrize('total,expected', [
    (100, scoring.APPROVE),
    (70.0, scoring.APPROVE),
    (69.99, scoring.PENDING_REVIEW),
    (50.0, scoring.PENDING_REVIEW),
    (49.99, scoring.REJECT),
    (0, scoring.REJECT),
])
def test_threshold_boundaries(total, expected):
    assert scoring.recommend(total) == expected


def test_manual_scores_use_reviewer_label():
    assert scoring.score_manual(uniform(70)) == (70.0, scoring.APPROVE)
    assert scoring.score_manual(uniform(69.99)) == (69.99, scoring.REVIEW)
    assert scoring.score_manual(uniform(49.99)) == (49.99, scoring.REJECT)


def test_weighted_total_uses_configured_weights():
    scores = uniform(0)
    scores['compliance'] = 100
    assert scoring.weighted_total(scores) == 20.0


def test_compliance_bonus_is_clamped():
    verified = ['LICENSE', 'REGISTRATION', 'TAX_CERTIFICATE'] + ['OTHER'] * 10
    assert scoring.score_compliance(verified) == 100.0
    assert scoring.score_compliance(['LICENSE']) == pytest.approx(80 / 3)
    assert scoring.score_compliance([]) == 0.0


def test_location_priorities():
    assert scoring.score_location('Yobe', is_urban=True) == 60
    assert scoring.score_location('Kwara', is_urban=False) == 60
    assert scoring.score_location('Lagos', has_parking=True, has_public_transport=True) == 70


def test_services_match_catalogue_entries_once():
    offered = ['General Surgery', 'Surgery', 'ICU', 'Emergency Care']
    # one essential (10) + two specialised (10)
    assert scoring.score_services(offered) == 20


def test_financial_tiers():
    assert scoring.score_financial(120_000_000, years_in_operation=12) == 50
    assert scoring.score_financial(1_000, has_government=True) == 37
    assert scoring.score_financial(None) == 22


def test_staffing_without_staff():
    assert scoring.score_staffing(0, 50) == 20


def test_snapshot_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        STRONG.bed_capacity = 1


def test_policy_in_settings_is_valid(settings):
    policy = settings.ONBOARDING
    scoring.validate_policy(
        policy['EVALUATION_WEIGHTS'], approve=policy['APPROVE_THRESHOLD'], review=policy['REVIEW_THRESHOLD']
    )


@pytest.mark.parametrize('weights,approve,review', [
    ({c: 1 / 7 for c in scoring.CATEGORIES[:-1]}, 70, 50),
    ({**{c: 0.125 for c in scoring.CATEGORIES}, 'facility': 0.2}, 70, 50),
    ({**{c: 0.125 for c in scoring.CATEGORIES}, 'bogus': 0}, 70, 50),
    ({c: 0.125 for c in scoring.CATEGORIES}, 50, 70),
    ({c: 0.125 for c in scoring.CATEGORIES}, 120, 50),
])
def test_incoherent_policy_is_rejected(weights, approve, review):
    with pytest.raises(ImproperlyConfigured):
        scoring.validate_policy(weights, approve=approve, review=review)
