from io import StringIO

import pytest
from django.core.cache import cache
from django.core.management import call_command

from onboarding.models import ContractTemplate, User
from onboarding.services.onboarding import METRICS_CACHE_KEY

pytestmark = pytest.mark.django_db


def test_ensure_test_users_is_idempotent():
    out = StringIO()
    call_command('ensure_test_users', password='Start123!', stdout=out)
    assert User.objects.count() == 4
    assert 'All test users ensured.' in out.getvalue()

    nurse = User.objects.get(username='nurse1')
    nurse.role = User.ROLE_ADMIN
    nurse.is_active = False
    nurse.save()

    call_command('ensure_test_users', password='Other456!', stdout=StringIO())
    nurse.refresh_from_db()
    assert User.objects.count() == 4
    assert nurse.role == User.ROLE_NURSE and nurse.is_active
    assert nurse.check_password('Other456!')


def test_refresh_caches_warms_metrics(make_application):
    make_application()
    out = StringIO()
    call_command('refresh_caches', stdout=out)
    assert 'Refreshed 1 keys' in out.getvalue()
    assert cache.get(METRICS_CACHE_KEY)['total'] == 1


def test_seed_contract_templates():
    out = StringIO()
    call_command('seed_contract_templates', stdout=out)
    assert 'created: Standard Partnership Agreement' in out.getvalue()
    template = ContractTemplate.objects.get()
    assert '{% load' not in template.content
    assert template.is_active and template.template_type == 'PARTNERSHIP'
