import hashlib
import smtplib

import pytest
from rest_framework.exceptions import ValidationError

from onboarding.exceptions import Conflict, InvalidStateError, PreconditionError
from onboarding.models import Application, AuditEvent, ChecklistItem, Contract, Document, Stage
from onboarding.services import checklist, contracts, documents, notifications, onboarding, scoring

from .factories import WEAK_PROFILE, pdf_upload

pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------
def test_submit_creates_submitted_application_with_checklist(make_application, mailoutbox):
    app = make_application(contact_email='Admin@Maiduguri-Hospital.ng')
    assert app.status == Application.STATUS_SUBMITTED
    assert app.application_number.startswith('APP-')
    assert app.submitted_at is not None
    assert app.contact_email == 'admin@maiduguri-hospital.ng'

    items = list(app.checklist.all())
    assert len(items) == 12
    required_docs = {i.document_type for i in items if i.category == ChecklistItem.CATEGORY_DOCUMENTS and i.is_required}
    assert required_docs == {'LICENSE', 'REGISTRATION', 'TAX_CERTIFICATE'}
    assert not any(i.is_completed for i in items)

    assert len(mailoutbox) == 1
    assert app.application_number in mailoutbox[0].subject
    assert AuditEvent.objects.filter(action='application_submit', object_id=app.id).exists()


def test_second_active_application_for_email_conflicts(make_application):
    make_application(contact_email='owner@example.ng')
    with pytest.raises(Conflict):
        make_application(contact_email='OWNER@example.ng')
    assert Application.objects.count() == 1


def test_resubmission_allowed_after_rejection(make_application, admin_user):
    first = make_application(contact_email='retry@example.ng')
    onboarding.update_status(first, Application.STATUS_UNDER_REVIEW, actor=admin_user)
    onboarding.update_status(first, Application.STATUS_REJECTED, actor=admin_user, reason='Incomplete licence')

    second = make_application(contact_email='retry@example.ng')
    assert second.pk != first.pk
    assert second.application_number != first.application_number


def test_submission_survives_mail_failure(make_application, monkeypatch):
    def broken(*args, **kwargs):
        raise smtplib.SMTPException('relay down')

    monkeypatch.setattr(notifications, 'send_mail', broken)
    app = make_application()
    assert Application.objects.filter(pk=app.pk, status=Application.STATUS_SUBMITTED).exists()


def test_business_plan_markup_is_stripped(make_application):
    app = make_application(business_plan='<script>alert(1)</script>Grow <b>outpatient</b> care')
    assert '<' not in app.business_plan
    assert 'outpatient' in app.business_plan


# ---------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------
def test_submitted_cannot_jump_to_approved(make_application, admin_user):
    app = make_application()
    with pytest.raises(InvalidStateError):
        onboarding.update_status(app, Application.STATUS_APPROVED, actor=admin_user)
    app.refresh_from_db()
    assert app.status == Application.STATUS_SUBMITTED


def test_reject_requires_reason(make_application, admin_user):
    app = make_application()
    onboarding.update_status(app, Application.STATUS_UNDER_REVIEW, actor=admin_user)
    with pytest.raises(ValidationError):
        onboarding.update_status(app, Application.STATUS_REJECTED, actor=admin_user, reason='  ')

    app = onboarding.update_status(app, Application.STATUS_REJECTED, actor=admin_user, reason='Expired licence')
    assert app.decision == Application.STATUS_REJECTED
    assert app.rejection_reason == 'Expired licence'
    assert app.rejected_at is not None
    assert app.decided_by == admin_user


def test_approval_records_reviewer_and_decider(make_application, admin_user):
    app = make_application()
    app = onboarding.update_status(app, Application.STATUS_UNDER_REVIEW, actor=admin_user)
    assert app.reviewed_by == admin_user and app.reviewed_at is not None
    app = onboarding.update_status(app, Application.STATUS_APPROVED, actor=admin_user)
    assert app.decision == Application.STATUS_APPROVED
    assert app.approved_at is not None


@pytest.mark.parametrize('terminal', [Application.STATUS_WITHDRAWN, Application.STATUS_REJECTED])
def test_terminal_statuses_are_final(make_application, admin_user, terminal):
    app = make_application()
    onboarding.update_status(app, Application.STATUS_UNDER_REVIEW, actor=admin_user)
    onboarding.update_status(app, terminal, actor=admin_user, reason='Closed by applicant')
    for target in (Application.STATUS_UNDER_REVIEW, Application.STATUS_APPROVED, Application.STATUS_SUBMITTED):
        with pytest.raises(InvalidStateError):
            onboarding.update_status(app, target, actor=admin_user, reason='again')


def test_unknown_status_is_a_validation_error(make_application):
    app = make_application()
    with pytest.raises(ValidationError):
        onboarding.update_status(app, 'ARCHIVED')


def test_transition_table():
    assert onboarding.can_transition('DRAFT', 'SUBMITTED')
    assert onboarding.can_transition('SUBMITTED', 'WITHDRAWN')
    assert not onboarding.can_transition('APPROVED', 'REJECTED')
    assert not onboarding.can_transition('SUBMITTED', 'REJECTED')


# ---------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------
def test_auto_evaluation_approves_strong_application(make_application, verify_required, admin_user, mailoutbox):
    app = make_application()
    verify_required(app)
    evaluation = onboarding.auto_evaluate(app, evaluator=admin_user)

    app.refresh_from_db()
    assert evaluation.is_auto_generated
    assert evaluation.total_score == pytest.approx(79.05)
    assert evaluation.recommendation == scoring.APPROVE
    assert evaluation.compliance_score == 80
    assert app.status == Application.STATUS_APPROVED
    assert app.reviewed_at is not None
    assert app.evaluation_score == pytest.approx(79.05)
    assert 'Approved' in mailoutbox[-1].subject


def test_auto_evaluation_rejects_weak_application(make_application):
    app = make_application(WEAK_PROFILE)
    evaluation = onboarding.auto_evaluate(app)

    app.refresh_from_db()
    assert evaluation.total_score == pytest.approx(14.2)
    assert evaluation.recommendation == scoring.REJECT
    assert app.status == Application.STATUS_REJECTED
    assert '14.2' in app.rejection_reason

    with pytest.raises(PreconditionError):
        contracts.generate_contract(app, {})
    assert not Contract.objects.filter(application=app).exists()


def test_auto_evaluation_in_the_middle_band_waits_for_review(make_application):
    app = make_application()
    evaluation = onboarding.auto_evaluate(app)

    app.refresh_from_db()
    assert evaluation.total_score == pytest.approx(63.05)
    assert evaluation.recommendation == scoring.PENDING_REVIEW
    assert app.status == Application.STATUS_UNDER_REVIEW


def test_manual_evaluation_never_changes_status(make_application, admin_user):
    app = make_application()
    scores = {c: 90 for c in scoring.CATEGORIES}
    evaluation = onboarding.evaluate(app, evaluator=admin_user, scores=scores, general_notes='Site visit went well')

    app.refresh_from_db()
    assert not evaluation.is_auto_generated
    assert evaluation.total_score == 90.0
    assert evaluation.recommendation == scoring.APPROVE
    assert evaluation.evaluator == admin_user
    assert app.status == Application.STATUS_SUBMITTED


def test_application_score_is_mean_of_evaluations(make_application, admin_user):
    app = make_application()
    onboarding.evaluate(app, evaluator=admin_user, scores={c: 60 for c in scoring.CATEGORIES})
    second = onboarding.evaluate(app, evaluator=admin_user, scores={c: 40 for c in scoring.CATEGORIES},
                                 recommendation='REJECT')
    app.refresh_from_db()
    assert second.recommendation == 'REJECT'
    assert app.evaluation_score == 50.0
    assert app.evaluations.count() == 2


def test_decided_applications_cannot_be_evaluated(approved_application):
    with pytest.raises(PreconditionError):
        onboarding.auto_evaluate(approved_application)
    with pytest.raises(PreconditionError):
        onboarding.evaluate(approved_application, scores={c: 50 for c in scoring.CATEGORIES})


def test_manual_evaluation_rechecks_status_under_lock(make_application, admin_user):
    app = make_application()
    stale = Application.objects.get(pk=app.pk)
    app = onboarding.update_status(app, Application.STATUS_UNDER_REVIEW, actor=admin_user)
    onboarding.update_status(app, Application.STATUS_REJECTED, actor=admin_user, reason='Incomplete licence')

    assert stale.status == Application.STATUS_SUBMITTED
    with pytest.raises(PreconditionError):
        onboarding.record_manual_evaluation(stale, {c: 80 for c in scoring.CATEGORIES}, evaluator=admin_user)
    assert not app.evaluations.exists()


def test_lookup_requires_matching_email(make_application):
    app = make_application(contact_email='status@example.ng')
    assert onboarding.lookup_status(app.application_number, 'STATUS@example.ng') == app
    assert onboarding.lookup_status(app.application_number, 'other@example.ng') is None
    assert onboarding.lookup_status(app.application_number, '') is None


# ---------------------------------------------------------------------
# Documents and checklist
# ---------------------------------------------------------------------
def test_upload_stores_checksum_and_metadata(make_application, admin_user):
    app = make_application()
    body = b'%PDF-1.4 operating licence'
    doc = documents.upload_document(app, pdf_upload('licence 2026.pdf', body), document_type='LICENSE',
                                    name='Operating <b>licence</b>', uploader=admin_user)
    assert doc.checksum == hashlib.sha256(body).hexdigest()
    assert doc.size == len(body)
    assert doc.mime_type == 'application/pdf'
    assert doc.name == 'Operating licence'
    assert doc.storage_name.startswith(f'applications/{app.id}/')
    assert not doc.is_verified


def test_upload_rejects_disallowed_type(make_application):
    from django.core.files.uploadedfile import SimpleUploadedFile

    app = make_application()
    upload = SimpleUploadedFile('run.sh', b'#!/bin/sh', content_type='application/x-sh')
    with pytest.raises(ValidationError):
        documents.upload_document(app, upload, document_type='OTHER')
    assert not Document.objects.exists()


def test_upload_to_closed_application_is_refused(make_application, admin_user):
    app = make_application()
    onboarding.update_status(app, Application.STATUS_WITHDRAWN, actor=admin_user)
    app.refresh_from_db()
    with pytest.raises(InvalidStateError):
        documents.upload_document(app, pdf_upload(), document_type='LICENSE')


def test_document_checklist_follows_verification(make_application, admin_user):
    app = make_application()
    doc = documents.upload_document(app, pdf_upload(), document_type='LICENSE')
    item = app.checklist.get(code='medical_license')
    assert not item.is_completed

    documents.verify_document(doc, verifier=admin_user)
    item.refresh_from_db()
    assert item.is_completed

    documents.verify_document(doc, verified=False, verifier=admin_user, notes='Blurred scan')
    item.refresh_from_db()
    assert not item.is_completed

    documents.verify_document(doc, verifier=admin_user)
    documents.delete_document(doc, actor=admin_user)
    item.refresh_from_db()
    assert not item.is_completed


def test_documents_complete_after_required_types(make_application, verify_required):
    app = make_application()
    assert not checklist.documents_complete(app)
    verify_required(app, types=('LICENSE', 'REGISTRATION'))
    assert not checklist.documents_complete(app)
    verify_required(app, types=('TAX_CERTIFICATE',))
    assert checklist.documents_complete(app)
    assert not checklist.fully_onboarded(app)


def test_document_items_cannot_be_toggled_by_hand(make_application, admin_user):
    app = make_application()
    item = app.checklist.get(code='medical_license')
    with pytest.raises(PreconditionError):
        checklist.update_checklist_item(item, completed=True, actor=admin_user)


def test_manual_checklist_update(make_application, admin_user):
    app = make_application()
    item = app.checklist.get(code='site_inspection')
    item = checklist.update_checklist_item(item, completed=True, actor=admin_user, notes='Visited 12 Oct')
    assert item.is_completed and item.completed_by == admin_user
    assert item.notes == 'Visited 12 Oct'

    item = checklist.update_checklist_item(item, completed=False, actor=admin_user)
    assert not item.is_completed and item.completed_at is None


def test_complete_stage_marks_its_items(make_application, admin_user):
    app = make_application()
    items = checklist.complete_stage(app, Stage.EVALUATION, actor=admin_user)
    assert {i.code for i in items} == {'site_inspection', 'reference_check'}
    assert all(i.is_completed for i in items)


def test_setup_stages_need_an_active_hospital(make_application, admin_user):
    app = make_application()
    with pytest.raises(PreconditionError):
        checklist.complete_stage(app, 'SYSTEM_SETUP', actor=admin_user)


@pytest.mark.parametrize('stage', ['APPLICATION', 'LAUNCH'])
def test_stage_without_items_is_invalid(make_application, stage):
    app = make_application()
    with pytest.raises(ValidationError):
        checklist.complete_stage(app, stage)


# ---------------------------------------------------------------------
# Lists and metrics
# ---------------------------------------------------------------------
def test_list_filters_sorts_and_paginates(make_application):
    make_application(hospital_name='Zaria General', state='Kaduna')
    make_application(hospital_name='Aba Clinic', state='Abia')
    make_application(WEAK_PROFILE, contact_email='weak@example.ng')

    items, total = onboarding.list_applications(sort='hospitalName', page_size=2)
    assert total == 3
    assert [a.hospital_name for a in items] == ['Aba Clinic', 'Ikeja Family Clinic']

    items, total = onboarding.list_applications(state='Kaduna')
    assert total == 1 and items[0].hospital_name == 'Zaria General'

    items, total = onboarding.list_applications(q='ikeja')
    assert total == 1

    items, total = onboarding.list_applications(sort='-hospitalName', page=2, page_size=2)
    assert [a.hospital_name for a in items] == ['Aba Clinic']


def test_metrics_counts_and_caches(make_application, admin_user):
    app = make_application()
    onboarding.update_status(app, Application.STATUS_UNDER_REVIEW, actor=admin_user)
    onboarding.update_status(app, Application.STATUS_APPROVED, actor=admin_user)
    make_application(WEAK_PROFILE, contact_email='weak@example.ng')

    data = onboarding.onboarding_metrics()
    assert data['total'] == 2
    assert data['approved'] == 1
    assert data['pending'] == 1
    assert data['approvalRate'] == 100.0
    assert data['byState'] == {'Borno': 1, 'Lagos': 1}
    assert data['byStage']['APPLICATION'] == 2
    assert data['averageProcessingDays'] is not None

    # a new submission invalidates the cached figures
    make_application(contact_email='third@example.ng')
    assert onboarding.onboarding_metrics()['total'] == 3
    assert onboarding.onboarding_metrics(state='Lagos')['total'] == 1
