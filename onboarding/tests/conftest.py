import itertools

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from onboarding.models import Application, User
from onboarding.services import documents, onboarding

from .factories import REQUIRED_TYPES, STRONG_PROFILE, pdf_upload

_seq = itertools.count(1)


@pytest.fixture(autouse=True)
def _isolated(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path / 'media')
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(role=User.ROLE_ADMIN, **kwargs):
        n = next(_seq)
        kwargs.setdefault('username', f'{role.lower()}{n}')
        kwargs.setdefault('email', f'{role.lower()}{n}@grandpro-hmso.ng')
        kwargs.setdefault('password', 'P@ssw0rd1')
        return User.objects.create_user(role=role, **kwargs)
    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user(User.ROLE_ADMIN)


@pytest.fixture
def make_application(db):
    """Submit an application through the service layer."""
    def _make(profile=None, **overrides):
        data = dict(STRONG_PROFILE if profile is None else profile)
        data.setdefault('contact_email', f'applicant{next(_seq)}@example.ng')
        data.update(overrides)
        return onboarding.submit_application(data)
    return _make


@pytest.fixture
def verify_required(admin_user):
    """Upload and verify the required documents for an application."""
    def _verify(application, types=REQUIRED_TYPES):
        uploaded = []
        for doc_type in types:
            doc = documents.upload_document(
                application, pdf_upload(f'{doc_type.lower()}.pdf'), document_type=doc_type, uploader=admin_user
            )
            uploaded.append(documents.verify_document(doc, verifier=admin_user))
        return uploaded
    return _verify


@pytest.fixture
def approved_application(make_application, admin_user):
    application = make_application()
    onboarding.update_status(application, Application.STATUS_UNDER_REVIEW, actor=admin_user)
    return onboarding.update_status(application, Application.STATUS_APPROVED, actor=admin_user)


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def client_for(db):
    def _client(user):
        c = APIClient()
        c.force_authenticate(user=user)
        return c
    return _client
