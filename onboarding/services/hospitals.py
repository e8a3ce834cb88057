"""
Hospital records created from onboarding applications.

A hospital starts as a ``PENDING`` shell when its contract is generated
and is promoted to ``ACTIVE`` once the contract is fully signed.
"""
from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from onboarding.exceptions import PreconditionError
from onboarding.models import Application, Contract, Hospital
from onboarding.services import numbering
from onboarding.services.audit import safe_log_action

logger = logging.getLogger(__name__)

User = get_user_model()

PROFILE_FIELDS = (
    'legal_name', 'registration_number', 'tax_id', 'facility_type', 'website',
    'address', 'city', 'state', 'lga', 'bed_capacity', 'staff_count',
    'services_offered', 'specializations',
    'has_emergency', 'has_pharmacy', 'has_laboratory', 'has_radiology',
)


def _copy_profile(application: Application, hospital: Hospital) -> None:
    for name in PROFILE_FIELDS:
        setattr(hospital, name, getattr(application, name))
    hospital.name = application.hospital_name
    hospital.email = application.contact_email
    hospital.phone = application.contact_phone


def ensure_hospital_shell(application: Application) -> Hospital:
    """Return the application's hospital, creating a PENDING shell if needed."""
    hospital = Hospital.objects.filter(application=application).first()
    if hospital is not None:
        return hospital
    hospital = Hospital(application=application, code=numbering.hospital_code(application.state))
    _copy_profile(application, hospital)
    hospital.save()
    logger.info('created hospital shell %s for %s', hospital.code, application.application_number)
    return hospital


def promote_to_hospital(application: Application, *, actor=None) -> tuple[Hospital, bool]:
    """Activate the hospital for ``application``.

    Only allowed once the application's contract is ACTIVE.  Returns
    ``(hospital, promoted)``; ``promoted`` is False when the hospital was
    already active, in which case nothing is changed.
    """
    contract = Contract.objects.filter(application=application).first()
    if contract is None or contract.status != Contract.STATUS_ACTIVE:
        raise PreconditionError('The hospital can only be activated once its contract is active.')

    with transaction.atomic():
        hospital = Hospital.objects.select_for_update().filter(application=application).first()
        if hospital is None:
            hospital = ensure_hospital_shell(application)
            hospital = Hospital.objects.select_for_update().get(pk=hospital.pk)
        if hospital.status == Hospital.STATUS_ACTIVE:
            return hospital, False

        now = timezone.now()
        _copy_profile(application, hospital)
        hospital.status = Hospital.STATUS_ACTIVE
        hospital.is_verified = True
        hospital.verified_at = now
        hospital.activated_at = now
        owner = User.objects.filter(email__iexact=application.contact_email, is_active=True).order_by('id').first()
        if owner is not None:
            hospital.owner = owner
        hospital.save()

        if owner is not None and owner.primary_hospital_id is None:
            owner.primary_hospital = hospital
            owner.save(update_fields=['primary_hospital'])

    safe_log_action(user=actor, action='hospital_promote', object_type='hospital', object_id=hospital.id,
                    detail={'code': hospital.code, 'application': application.application_number})
    return hospital, True


def resolve_primary_hospital(user) -> Hospital | None:
    """The hospital a user acts for.

    Resolution order: the explicit ``primary_hospital``; otherwise the
    earliest-created hospital the user owns; otherwise ``None``.
    """
    if user is None or not getattr(user, 'pk', None):
        return None
    if user.primary_hospital_id:
        return user.primary_hospital
    return Hospital.objects.filter(owner=user).order_by('created_at', 'id').first()
