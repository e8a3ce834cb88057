"""
Partnership contracts: generation, sending, signing and termination.

Lifecycle::

    DRAFT -> SENT -> SIGNED (one party) -> ACTIVE (both parties)
    DRAFT | SENT | SIGNED -> TERMINATED

Signing runs on a locked contract row.  The transition to ACTIVE happens
at most once per contract and promotes the application's hospital in the
same transaction.
"""
from __future__ import annotations

import calendar
import datetime
import hashlib
import json
import logging

import bleach
from django.conf import settings
from django.db import IntegrityError, transaction
from django.template import Context, Template
from django.template.loader import render_to_string
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from onboarding.exceptions import Conflict, InvalidStateError, PreconditionError
from onboarding.models import Application, Contract, ContractTemplate
from onboarding.services import broadcast, notifications, numbering, pdf, storage
from onboarding.services.audit import safe_log_action
from onboarding.services.checklist import mark_items
from onboarding.services.hospitals import ensure_hospital_shell, promote_to_hospital

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = (Contract.STATUS_DRAFT, Contract.STATUS_SENT)
SIGNABLE_STATUSES = (Contract.STATUS_DRAFT, Contract.STATUS_SENT, Contract.STATUS_SIGNED, Contract.STATUS_ACTIVE)
TERMINABLE_STATUSES = (Contract.STATUS_DRAFT, Contract.STATUS_SENT, Contract.STATUS_SIGNED)

TERM_FIELDS = (
    'title', 'contract_type', 'start_date', 'end_date', 'auto_renew', 'renewal_period_months',
    'setup_fee', 'monthly_fee', 'revenue_share_percentage', 'currency', 'payment_terms', 'special_clauses',
)

DEFAULT_TEMPLATE = 'onboarding/contracts/default.txt'

# party -> (signed_at, signed_by, signer_email, signature)
PARTY_FIELDS = {
    Contract.PARTY_HOSPITAL: ('hospital_signed_at', 'hospital_signed_by', 'hospital_signer_email', 'hospital_signature'),
    Contract.PARTY_OPERATOR: ('operator_signed_at', 'operator_signed_by', 'operator_signer_email', 'operator_signature'),
}


def add_months(day: datetime.date, months: int) -> datetime.date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return datetime.date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _clean(text) -> str:
    return bleach.clean(text or '', tags=[], strip=True).strip()


def _actor(user):
    return user if getattr(user, 'pk', None) else None


# ---------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------
def active_template(template_type: str = 'PARTNERSHIP') -> ContractTemplate | None:
    return (
        ContractTemplate.objects.filter(is_active=True, template_type=template_type)
        .order_by('-version', '-updated_at')
        .first()
    )


def render_content(contract: Contract) -> str:
    """Render the contract body from its template, or the built-in one."""
    context = {
        'contract': contract,
        'application': contract.application,
        'hospital': contract.hospital,
        'operator_name': settings.ONBOARDING['OPERATOR_NAME'],
    }
    if contract.template_id:
        template = Template('{% load contract_filters %}' + contract.template.content)
        return template.render(Context(context, autoescape=False))
    return render_to_string(DEFAULT_TEMPLATE, context)


def document_hash(contract: Contract) -> str:
    """Verification hash printed on the executed contract."""
    payload = {
        'contractNumber': contract.contract_number,
        'hospitalName': contract.application.hospital_name,
        'startDate': contract.start_date.isoformat(),
        'endDate': contract.end_date.isoformat(),
        'hospitalSignedAt': contract.hospital_signed_at.isoformat() if contract.hospital_signed_at else None,
        'operatorSignedAt': contract.operator_signed_at.isoformat() if contract.operator_signed_at else None,
    }
    digest = hashlib.sha256(json.dumps(payload, sort_keys=True).encode('utf-8')).hexdigest()
    return digest[:32].upper()


# ---------------------------------------------------------------------
# Generation and editing
# ---------------------------------------------------------------------
def _apply_terms(contract: Contract, terms: dict) -> None:
    for name in TERM_FIELDS:
        if name in terms:
            setattr(contract, name, terms[name])
    contract.payment_terms = _clean(contract.payment_terms)
    contract.special_clauses = [_clean(c) for c in (contract.special_clauses or []) if _clean(c)]
    if not contract.auto_renew:
        contract.renewal_period_months = None


def generate_contract(application: Application, terms: dict, *, actor=None) -> Contract:
    """Create a DRAFT contract for an APPROVED application."""
    if application.status != Application.STATUS_APPROVED:
        raise PreconditionError('Contracts can only be generated for approved applications.')
    if Contract.objects.filter(application=application).exists():
        raise Conflict('A contract already exists for this application.')

    terms = dict(terms)
    start = terms.get('start_date') or timezone.localdate()
    terms['start_date'] = start
    terms['end_date'] = terms.get('end_date') or add_months(start, settings.ONBOARDING['CONTRACT_TERM_MONTHS'])
    if terms['end_date'] <= start:
        raise PreconditionError('The end date must be after the start date.')
    terms.setdefault('title', f"Partnership Agreement - {application.hospital_name}")
    template = terms.pop('template', None)
    if template is None:
        template = active_template(terms.get('contract_type', 'PARTNERSHIP'))

    contract = None
    for attempt in range(numbering.MAX_ATTEMPTS):
        number = numbering.contract_number()
        try:
            with transaction.atomic():
                hospital = ensure_hospital_shell(application)
                contract = Contract(
                    contract_number=number,
                    application=application,
                    hospital=hospital,
                    template=template,
                    created_by=_actor(actor),
                    status=Contract.STATUS_DRAFT,
                )
                _apply_terms(contract, terms)
                contract.content = render_content(contract)
                contract.save()
            break
        except IntegrityError:
            if Contract.objects.filter(application=application).exists():
                raise Conflict('A contract already exists for this application.')
            logger.warning('contract number %s already taken (attempt %s)', number, attempt + 1)
    if contract is None:
        raise Conflict('Could not allocate a contract number, please retry.')

    safe_log_action(user=actor, action='contract_generate', object_type='contract', object_id=contract.id,
                    detail={'number': contract.contract_number, 'application': application.application_number})
    broadcast.publish(application, 'contract.generated', contractId=contract.id,
                      contractNumber=contract.contract_number)
    return contract


def update_contract(contract: Contract, changes: dict, *, actor=None) -> Contract:
    """Change the terms of an unsigned contract; the result is a new DRAFT version."""
    with transaction.atomic():
        contract = Contract.objects.select_for_update().select_related('application', 'hospital').get(pk=contract.pk)
        if contract.status not in EDITABLE_STATUSES:
            raise InvalidStateError(f'A {contract.status} contract cannot be edited.')
        changes = dict(changes)
        if 'template' in changes:
            contract.template = changes.pop('template')
        _apply_terms(contract, changes)
        if contract.end_date <= contract.start_date:
            raise PreconditionError('The end date must be after the start date.')
        contract.version += 1
        contract.status = Contract.STATUS_DRAFT
        contract.content = render_content(contract)
        contract.save()
    safe_log_action(user=actor, action='contract_update', object_type='contract', object_id=contract.id,
                    detail={'version': contract.version, 'fields': sorted(changes)})
    broadcast.publish(contract.application, 'contract.updated', contractId=contract.id, version=contract.version)
    return contract


def send_contract(contract: Contract, *, actor=None) -> Contract:
    """Render the PDF, store it and send the contract to the hospital contact."""
    if contract.status not in EDITABLE_STATUSES:
        raise InvalidStateError(f'A {contract.status} contract cannot be sent.')
    content = pdf.render_contract(contract)
    name, url = storage.save(content, f'contracts/{contract.id}', f'{contract.contract_number}.pdf')
    previous = contract.document_name
    try:
        with transaction.atomic():
            contract = Contract.objects.select_for_update().select_related('application').get(pk=contract.pk)
            if contract.status not in EDITABLE_STATUSES:
                raise InvalidStateError(f'A {contract.status} contract cannot be sent.')
            contract.document_name = name
            contract.document_url = url
            contract.status = Contract.STATUS_SENT
            contract.sent_at = timezone.now()
            contract.save(update_fields=['document_name', 'document_url', 'status', 'sent_at', 'updated_at'])
            mark_items(contract.application, ['contract_review'], actor=actor)
    except Exception:
        storage.delete(name)
        raise
    if previous and previous != name:
        try:
            storage.delete(previous)
        except Exception:
            logger.warning('could not remove superseded contract document %s', previous)

    safe_log_action(user=actor, action='contract_send', object_type='contract', object_id=contract.id,
                    detail={'number': contract.contract_number, 'version': contract.version})
    notifications.send_contract_for_signing(contract)
    broadcast.publish(contract.application, 'contract.sent', contractId=contract.id)
    return contract


# ---------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------
def signing_party(contract: Contract, email: str) -> str:
    if (email or '').strip().lower() == contract.application.contact_email.strip().lower():
        return Contract.PARTY_HOSPITAL
    return Contract.PARTY_OPERATOR


def sign_contract(contract_id: int, *, signatory: dict, signature: str = '', expected_party: str | None = None,
                  actor=None) -> tuple[Contract, bool]:
    """Record one party's signature.

    ``signatory`` carries ``name`` and ``email``.  The party is decided by
    the e-mail: the application's contact signs for the hospital, anyone
    else for the operator.  Returns ``(contract, activated)`` where
    ``activated`` is True only for the call that made the contract ACTIVE.
    """
    email = (signatory.get('email') or '').strip()
    name = _clean(signatory.get('name'))
    activated = False
    with transaction.atomic():
        contract = Contract.objects.select_for_update().select_related('application').get(pk=contract_id)
        if contract.status not in SIGNABLE_STATUSES:
            raise InvalidStateError(f'A {contract.status} contract cannot be signed.')
        party = signing_party(contract, email)
        if expected_party and party != expected_party:
            raise PermissionDenied(f'This signatory cannot sign for the {expected_party.lower()} party.')

        signed_at_field, signed_by_field, email_field, signature_field = PARTY_FIELDS[party]
        now = timezone.now()
        # an ACTIVE contract keeps its signing times; they feed the verification hash
        if contract.status != Contract.STATUS_ACTIVE:
            setattr(contract, signed_at_field, now)
        setattr(contract, signed_by_field, name)
        setattr(contract, email_field, email)
        setattr(contract, signature_field, signature or '')

        if contract.status != Contract.STATUS_ACTIVE:
            if contract.fully_signed:
                contract.status = Contract.STATUS_ACTIVE
                contract.activated_at = now
                contract.document_hash = document_hash(contract)
                activated = True
            else:
                contract.status = Contract.STATUS_SIGNED
        contract.save()

        if activated:
            mark_items(contract.application, ['contract_signing'], actor=actor)
            promote_to_hospital(contract.application, actor=actor)
            transaction.on_commit(lambda: store_executed_copy(contract.pk))

    safe_log_action(user=actor, action='contract_sign', object_type='contract', object_id=contract.id,
                    detail={'party': party, 'email': email, 'activated': activated})
    broadcast.publish(contract.application, 'contract.activated' if activated else 'contract.signed',
                      contractId=contract.id, party=party)
    return contract, activated


def store_executed_copy(contract_id: int) -> None:
    """Render and store the executed PDF.  Failures are logged only."""
    try:
        contract = Contract.objects.select_related('application').get(pk=contract_id)
        content = pdf.render_contract(contract, executed=True, document_hash=contract.document_hash)
        name, url = storage.save(content, f'contracts/{contract.id}', f'{contract.contract_number}-signed.pdf')
        Contract.objects.filter(pk=contract.pk).update(signed_document_name=name, signed_document_url=url)
        logger.info('stored executed copy of %s', contract.contract_number)
    except Exception:
        logger.exception('could not store executed copy of contract %s', contract_id)


def terminate_contract(contract: Contract, *, reason: str, actor=None) -> Contract:
    reason = _clean(reason)
    if not reason:
        raise PreconditionError('A termination reason is required.')
    with transaction.atomic():
        contract = Contract.objects.select_for_update().select_related('application').get(pk=contract.pk)
        if contract.status not in TERMINABLE_STATUSES:
            raise InvalidStateError(f'A {contract.status} contract cannot be terminated.')
        contract.status = Contract.STATUS_TERMINATED
        contract.terminated_at = timezone.now()
        contract.termination_reason = reason
        contract.save(update_fields=['status', 'terminated_at', 'termination_reason', 'updated_at'])
    safe_log_action(user=actor, action='contract_terminate', object_type='contract', object_id=contract.id,
                    detail={'reason': reason})
    broadcast.publish(contract.application, 'contract.terminated', contractId=contract.id)
    return contract


# ---------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------
def create_template(data: dict, *, actor=None) -> ContractTemplate:
    template = ContractTemplate.objects.create(created_by=_actor(actor), **data)
    safe_log_action(user=actor, action='contract_template_create', object_type='contract_template',
                    object_id=template.id, detail={'name': template.name})
    return template


def update_template(template: ContractTemplate, changes: dict, *, actor=None) -> ContractTemplate:
    """Apply ``changes``; a change to the body bumps the version."""
    with transaction.atomic():
        template = ContractTemplate.objects.select_for_update().get(pk=template.pk)
        if 'content' in changes and changes['content'] != template.content:
            template.version += 1
        for name, value in changes.items():
            setattr(template, name, value)
        template.save()
    safe_log_action(user=actor, action='contract_template_update', object_type='contract_template',
                    object_id=template.id, detail={'version': template.version})
    return template
