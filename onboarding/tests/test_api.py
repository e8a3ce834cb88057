"""
API tests: authentication, role checks, the public applicant surface and
the contract signing endpoints.
"""
import pytest

from onboarding.models import Application, Contract, Document, User
from onboarding.services import contracts, onboarding

from .factories import pdf_upload

pytestmark = pytest.mark.django_db

SUBMISSION = {
    'hospitalName': 'Gombe Community Hospital',
    'registrationNumber': 'RC-556677',
    'facilityType': 'General Hospital',
    'contactName': 'Musa Abdullahi',
    'contactEmail': 'musa@gombe-community.ng',
    'contactPhone': '0803 123 4567',
    'address': '7 Bauchi Road',
    'city': 'Gombe',
    'state': 'Gombe',
    'lga': 'Gombe',
    'bedCapacity': 40,
    'staffCount': 35,
    'servicesOffered': ['Emergency Care', 'Outpatient Services'],
    'hasEmergency': True,
}


def login(client, username, password='P@ssw0rd1'):
    return client.post('/api/auth/login', {'username': username, 'password': password}, format='json')


# ---------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------
def test_login_returns_jwt_and_legacy_token(api, make_user):
    user = make_user(User.ROLE_ADMIN, username='ops1')
    r = login(api, 'ops1')
    assert r.status_code == 200
    data = r.data['data']
    assert data['token'] and data['jwtAccess'] and data['jwtRefresh']
    assert data['expiresIn'] > 0
    assert data['user']['role'] == User.ROLE_ADMIN
    assert data['user']['id'] == user.id

    api.credentials(HTTP_AUTHORIZATION=f"Bearer {data['jwtAccess']}")
    assert api.get('/api/applications').status_code == 200

    api.credentials(HTTP_AUTHORIZATION=f"Token {data['token']}")
    assert api.get('/api/applications').status_code == 200


def test_login_rejects_bad_password(api, make_user):
    make_user(User.ROLE_ADMIN, username='ops2')
    r = login(api, 'ops2', 'wrong')
    assert r.status_code == 401
    assert r.data['ok'] is False


def test_login_ignores_role_in_payload(api, make_user):
    user = make_user(User.ROLE_NURSE, username='nurse9')
    r = api.post('/api/auth/login', {'username': 'nurse9', 'password': 'P@ssw0rd1', 'role': 'SUPER_ADMIN'},
                 format='json')
    assert r.status_code == 200
    user.refresh_from_db()
    assert user.role == User.ROLE_NURSE


def test_refresh_and_logout(api, make_user):
    make_user(User.ROLE_ADMIN, username='ops3')
    tokens = login(api, 'ops3').data['data']

    r = api.post('/api/auth/refresh', {'refresh': tokens['jwtRefresh']}, format='json')
    assert r.status_code == 200 and r.data['data']['jwtAccess']

    api.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['jwtAccess']}")
    r = api.post('/api/auth/logout', {}, format='json')
    assert r.status_code == 200
    assert r.data['data']['blacklisted'] >= 1

    api.credentials()
    r = api.post('/api/auth/refresh', {'refresh': tokens['jwtRefresh']}, format='json')
    assert r.status_code == 401


def test_healthz(api):
    r = api.get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}


# ---------------------------------------------------------------------
# Public applicant surface
# ---------------------------------------------------------------------
def test_public_submission(api, mailoutbox):
    r = api.post('/api/applications', SUBMISSION, format='json')
    assert r.status_code == 201, r.data
    data = r.data['data']
    assert data['status'] == Application.STATUS_SUBMITTED
    assert data['applicationNumber'].startswith('APP-')
    assert data['legalName'] == 'Gombe Community Hospital'
    assert data['contactPhone'] == '08031234567'
    assert len(mailoutbox) == 1

    r = api.post('/api/applications', SUBMISSION, format='json')
    assert r.status_code == 409
    assert r.data['error']['code'] == 'conflict'


@pytest.mark.parametrize('field,value', [
    ('contactPhone', '+14155550100'),
    ('state', 'Texas'),
    ('bedCapacity', 0),
    ('servicesOffered', []),
    ('hospitalName', 'AB'),
])
def test_submission_validation(api, field, value):
    r = api.post('/api/applications', {**SUBMISSION, field: value}, format='json')
    assert r.status_code == 400
    assert r.data['ok'] is False
    assert field in r.data['error']['message']
    assert not Application.objects.exists()


def test_public_status_lookup_needs_matching_email(api, make_application):
    app = make_application(contact_email='lookup@example.ng')
    url = f'/api/applications/status/{app.application_number}'

    assert api.get(url).status_code == 400
    assert api.get(url, {'email': 'someone@example.ng'}).status_code == 404

    r = api.get(url, {'email': 'Lookup@example.ng'})
    assert r.status_code == 200
    assert r.data['data'] == {
        'applicationNumber': app.application_number,
        'hospitalName': app.hospital_name,
        'status': Application.STATUS_SUBMITTED,
        'submittedAt': app.submitted_at.isoformat(),
        'reviewedAt': None,
        'decision': '',
        'rejectionReason': '',
        'contractStatus': None,
    }


def test_applicant_uploads_with_contact_email(api, make_application):
    app = make_application(contact_email='docs@example.ng')
    url = f'/api/applications/{app.id}/documents'

    r = api.post(url, {'file': pdf_upload(), 'documentType': 'LICENSE', 'email': 'intruder@example.ng'},
                 format='multipart')
    assert r.status_code == 403

    r = api.post(url, {'file': pdf_upload(), 'documentType': 'LICENSE', 'email': 'DOCS@example.ng'},
                 format='multipart')
    assert r.status_code == 201
    assert r.data['data']['documentType'] == 'LICENSE'
    assert r.data['data']['isVerified'] is False

    assert api.get(url).status_code == 401


def test_anonymous_cannot_list(api):
    assert api.get('/api/applications').status_code == 401


# ---------------------------------------------------------------------
# Role checks
# ---------------------------------------------------------------------
def test_nurse_cannot_read_or_evaluate(client_for, make_user, make_application):
    app = make_application()
    nurse = client_for(make_user(User.ROLE_NURSE))
    assert nurse.get('/api/applications').status_code == 403
    assert nurse.get(f'/api/applications/{app.id}').status_code == 403
    assert nurse.post(f'/api/applications/{app.id}/evaluate', {}, format='json').status_code == 403
    assert not app.evaluations.exists()


def test_hospital_admin_reads_but_cannot_decide(client_for, make_user, make_application):
    app = make_application()
    client = client_for(make_user(User.ROLE_HOSPITAL_ADMIN))
    r = client.get(f'/api/applications/{app.id}')
    assert r.status_code == 200
    assert r.data['data']['progress']['stage'] == 'APPLICATION'
    r = client.patch(f'/api/applications/{app.id}/status', {'status': 'UNDER_REVIEW'}, format='json')
    assert r.status_code == 403


def test_admin_evaluates(client_for, admin_user, make_application):
    app = make_application()
    client = client_for(admin_user)

    r = client.post(f'/api/applications/{app.id}/evaluate', {}, format='json')
    assert r.status_code == 201
    assert r.data['data']['evaluation']['recommendation'] == 'PENDING_REVIEW'
    assert r.data['data']['application']['status'] == Application.STATUS_UNDER_REVIEW

    scores = {c: 75 for c in ('facility', 'staffing', 'equipment', 'compliance',
                              'financial', 'location', 'services', 'reputation')}
    r = client.post(f'/api/applications/{app.id}/evaluate',
                    {'scores': scores, 'generalNotes': 'Good site visit'}, format='json')
    assert r.status_code == 201
    assert r.data['data']['evaluation']['recommendation'] == 'APPROVE'
    assert r.data['data']['evaluation']['isAutoGenerated'] is False

    r = client.get(f'/api/applications/{app.id}/evaluate')
    assert len(r.data['data']) == 2
    assert r.data['meta']['averageScore'] == pytest.approx((63.05 + 75) / 2, abs=0.01)


def test_super_admin_can_do_everything(client_for, make_user, make_application):
    app = make_application()
    client = client_for(make_user(User.ROLE_SUPER_ADMIN))

    r = client.get('/api/applications', {'state': 'Borno', 'sort': '-createdAt'})
    assert r.status_code == 200
    assert r.data['pagination'] == {'total': 1, 'page': 1, 'pageSize': 20}

    r = client.patch(f'/api/applications/{app.id}/status', {'status': 'UNDER_REVIEW'}, format='json')
    assert r.status_code == 200

    r = client.post(f'/api/applications/{app.id}/documents', {'file': pdf_upload(), 'documentType': 'LICENSE'},
                    format='multipart')
    assert r.status_code == 201
    doc_id = r.data['data']['id']
    r = client.patch(f'/api/documents/{doc_id}/verify', {'notes': 'Checked with MDCN'}, format='json')
    assert r.status_code == 200 and r.data['data']['isVerified'] is True

    r = client.get(f'/api/applications/{app.id}/checklist')
    assert r.status_code == 200
    assert r.data['meta'] == {'documentsComplete': False, 'fullyOnboarded': False}

    assert client.delete(f'/api/documents/{doc_id}').status_code == 200
    assert not Document.objects.filter(pk=doc_id).exists()


def test_reject_without_reason_is_400(client_for, admin_user, make_application):
    app = make_application()
    client = client_for(admin_user)
    client.patch(f'/api/applications/{app.id}/status', {'status': 'UNDER_REVIEW'}, format='json')
    r = client.patch(f'/api/applications/{app.id}/status', {'status': 'REJECTED'}, format='json')
    assert r.status_code == 400
    r = client.patch(f'/api/applications/{app.id}/status', {'status': 'APPROVED', 'reason': ''}, format='json')
    assert r.status_code == 200
    r = client.patch(f'/api/applications/{app.id}/status', {'status': 'UNDER_REVIEW'}, format='json')
    assert r.status_code == 409


def test_checklist_and_stage_endpoints(client_for, admin_user, make_application):
    app = make_application()
    client = client_for(admin_user)
    item = app.checklist.get(code='reference_check')
    r = client.patch(f'/api/checklist/{item.id}', {'completed': True}, format='json')
    assert r.status_code == 200 and r.data['data']['isCompleted'] is True

    document_item = app.checklist.get(code='medical_license')
    r = client.patch(f'/api/checklist/{document_item.id}', {'completed': True}, format='json')
    assert r.status_code == 409

    r = client.post(f'/api/applications/{app.id}/stages', {'stage': 'TRAINING'}, format='json')
    assert r.status_code == 409
    r = client.post(f'/api/applications/{app.id}/stages', {'stage': 'EVALUATION'}, format='json')
    assert r.status_code == 200
    assert {i['code'] for i in r.data['data']['items']} == {'site_inspection', 'reference_check'}


# ---------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------
def test_contract_signing_over_the_api(client_for, make_user, admin_user, approved_application):
    staff = client_for(admin_user)
    r = staff.post('/api/contracts', {
        'applicationId': approved_application.id,
        'monthlyFee': '150000.00',
        'revenueSharePercentage': '5',
        'specialClauses': ['Quarterly performance reviews'],
    }, format='json')
    assert r.status_code == 201, r.data
    contract_id = r.data['data']['id']
    assert r.data['data']['status'] == Contract.STATUS_DRAFT

    assert staff.post(f'/api/contracts/{contract_id}/send').status_code == 200

    stranger = client_for(make_user(User.ROLE_HOSPITAL_ADMIN))
    assert stranger.post(f'/api/contracts/{contract_id}/sign/hospital', {}, format='json').status_code == 403

    nurse = client_for(make_user(User.ROLE_NURSE))
    assert nurse.post(f'/api/contracts/{contract_id}/sign/operator', {}, format='json').status_code == 403

    owner = make_user(User.ROLE_HOSPITAL_ADMIN, email=approved_application.contact_email)
    r = client_for(owner).post(f'/api/contracts/{contract_id}/sign/hospital',
                               {'name': 'Aisha Bello', 'signature': 'AB'}, format='json')
    assert r.status_code == 200
    assert r.data['meta'] == {'activated': False}
    assert r.data['data']['status'] == Contract.STATUS_SIGNED

    r = staff.post(f'/api/contracts/{contract_id}/sign/operator', {}, format='json')
    assert r.status_code == 200
    assert r.data['meta'] == {'activated': True}
    assert r.data['data']['status'] == Contract.STATUS_ACTIVE
    assert len(r.data['data']['documentHash']) == 32

    r = staff.get(f'/api/applications/{approved_application.id}/contract')
    assert r.status_code == 200 and r.data['data']['id'] == contract_id

    r = staff.post(f'/api/contracts/{contract_id}/terminate', {'reason': 'Testing'}, format='json')
    assert r.status_code == 409


def test_contract_create_validation(client_for, admin_user, approved_application, make_application):
    staff = client_for(admin_user)
    assert staff.post('/api/contracts', {'monthlyFee': '1.00'}, format='json').status_code == 400
    r = staff.post('/api/contracts', {
        'applicationId': approved_application.id, 'startDate': '2026-11-01', 'endDate': '2026-10-01',
    }, format='json')
    assert r.status_code == 400
    r = staff.post('/api/contracts', {
        'applicationId': approved_application.id, 'autoRenew': True,
    }, format='json')
    assert r.status_code == 400

    pending = make_application()
    assert staff.post('/api/contracts', {'applicationId': pending.id}, format='json').status_code == 409


def test_contract_patch_and_templates(client_for, admin_user, approved_application):
    staff = client_for(admin_user)
    contract = contracts.generate_contract(approved_application, {}, actor=admin_user)

    r = staff.patch(f'/api/contracts/{contract.id}', {'monthlyFee': '99000.00'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['version'] == 2
    r = staff.patch(f'/api/contracts/{contract.id}', {'applicationId': 1}, format='json')
    assert r.status_code == 400

    r = staff.post('/api/contract-templates', {'name': 'Broken', 'content': '{% if %}'}, format='json')
    assert r.status_code == 400
    r = staff.post('/api/contract-templates', {'name': 'Lean', 'content': 'Fee {{ contract.monthly_fee|naira }}'},
                   format='json')
    assert r.status_code == 201
    template_id = r.data['data']['id']
    r = staff.patch(f'/api/contract-templates/{template_id}', {'content': 'Fee: {{ contract.monthly_fee }}'},
                    format='json')
    assert r.data['data']['version'] == 2
    r = staff.get('/api/contract-templates', {'active': '1'})
    assert [t['id'] for t in r.data['data']] == [template_id]


# ---------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------
def test_metrics_endpoint(client_for, admin_user, make_application):
    make_application()
    r = client_for(admin_user).get('/api/onboarding/metrics', {'refresh': '1'})
    assert r.status_code == 200
    assert r.data['data']['total'] == 1
    assert r.data['data']['byStatus']['SUBMITTED'] == 1


def test_csv_export_guards_formulas(client_for, admin_user, make_application):
    make_application(hospital_name='=HYPERLINK("http://evil")')
    r = client_for(admin_user).get('/api/onboarding/export/csv')
    assert r.status_code == 200
    assert r['Content-Type'].startswith('text/csv')
    assert 'attachment;' in r['Content-Disposition']
    lines = r.content.decode('utf-8').splitlines()
    assert lines[0].startswith('Application Number,Hospital Name')
    assert '"\'=HYPERLINK(""http://evil"")"' in lines[1]


def test_pdf_export_and_unknown_format(client_for, admin_user, make_application):
    make_application()
    client = client_for(admin_user)
    r = client.get('/api/onboarding/export/pdf')
    assert r.status_code == 200
    assert r.content.startswith(b'%PDF')
    assert client.get('/api/onboarding/export/xlsx').status_code == 400


def test_export_requires_permission(client_for, make_user):
    client = client_for(make_user(User.ROLE_HOSPITAL_ADMIN))
    assert client.get('/api/onboarding/export/csv').status_code == 403
