"""
Outbound e-mail notifications.

Delivery is best effort: a failure is logged and reported as ``False``
but never propagates to the operation that triggered it.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _deliver(to: str, subject: str, template: str, context: dict) -> bool:
    if not to:
        return False
    ctx = {'operator_name': settings.ONBOARDING['OPERATOR_NAME'], **context}
    try:
        body = render_to_string(f"onboarding/emails/{template}.txt", ctx)
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [to], fail_silently=False)
        logger.info('sent %s notification to %s', template, to)
        return True
    except Exception:
        logger.exception('failed to send %s notification to %s', template, to)
        return False


def send_application_confirmation(application) -> bool:
    return _deliver(
        application.contact_email,
        f"Application received: {application.application_number}",
        'application_confirmation',
        {'application': application},
    )


def send_status_update(application, status: str, reason: str = '') -> bool:
    return _deliver(
        application.contact_email,
        f"Application {application.application_number}: {status.replace('_', ' ').title()}",
        'status_update',
        {'application': application, 'status': status, 'reason': reason},
    )


def send_contract_for_signing(contract) -> bool:
    application = contract.application
    return _deliver(
        application.contact_email,
        f"Partnership agreement {contract.contract_number} ready for signature",
        'contract_for_signing',
        {'application': application, 'contract': contract},
    )
