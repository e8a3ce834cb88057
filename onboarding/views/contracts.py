"""
Contract and contract template endpoints.

The hospital side signs through ``sign/hospital`` with the account whose
e-mail is the application's contact e-mail; operator staff sign through
``sign/operator``.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from onboarding.models import Application, Contract, ContractTemplate
from onboarding.permissions import check, require
from onboarding.serializers.contracts import (
    ContractTemplateSerializer,
    ContractTermsSerializer,
    SignSerializer,
    TerminateSerializer,
    format_contract,
    format_template,
)
from onboarding.services import contracts


@api_view(['GET'])
@permission_classes([IsAuthenticated, require('onboarding', 'read')])
def application_contract(request, pk: int):
    application = get_object_or_404(Application, pk=pk)
    contract = Contract.objects.filter(application=application).first()
    if contract is None:
        raise NotFound('No contract has been generated for this application.')
    return Response({'ok': True, 'data': format_contract(contract)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, require('contracts', 'create')])
def contract_create(request):
    s = ContractTermsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    terms = dict(s.validated_data)
    application = get_object_or_404(Application, pk=terms.pop('applicationId'))
    contract = contracts.generate_contract(application, terms, actor=request.user)
    return Response({'ok': True, 'data': format_contract(contract)}, status=201)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def contract_detail(request, pk: int):
    contract = get_object_or_404(Contract, pk=pk)
    if request.method == 'GET':
        check(request, 'contracts', 'read')
        return Response({'ok': True, 'data': format_contract(contract)})

    check(request, 'contracts', 'update')
    s = ContractTermsSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    changes = dict(s.validated_data)
    if 'applicationId' in changes:
        raise ValidationError({'applicationId': 'A contract cannot be moved to another application.'})
    contract = contracts.update_contract(contract, changes, actor=request.user)
    return Response({'ok': True, 'data': format_contract(contract)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, require('contracts', 'send')])
def contract_send(request, pk: int):
    contract = get_object_or_404(Contract.objects.select_related('application'), pk=pk)
    contract = contracts.send_contract(contract, actor=request.user)
    return Response({'ok': True, 'data': format_contract(contract)})


def _sign(request, pk: int, party: str):
    get_object_or_404(Contract, pk=pk)
    s = SignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = request.user
    if not user.email:
        raise ValidationError({'email': 'The signing account has no e-mail address.'})
    signatory = {'name': s.validated_data.get('name') or user.get_full_name() or user.username, 'email': user.email}
    contract, activated = contracts.sign_contract(
        pk, signatory=signatory, signature=s.validated_data.get('signature', ''), expected_party=party, actor=user,
    )
    return Response({'ok': True, 'data': format_contract(contract), 'meta': {'activated': activated}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def contract_sign_hospital(request, pk: int):
    return _sign(request, pk, Contract.PARTY_HOSPITAL)


@api_view(['POST'])
@permission_classes([IsAuthenticated, require('contracts', 'sign')])
def contract_sign_operator(request, pk: int):
    return _sign(request, pk, Contract.PARTY_OPERATOR)


@api_view(['POST'])
@permission_classes([IsAuthenticated, require('contracts', 'update')])
def contract_terminate(request, pk: int):
    contract = get_object_or_404(Contract, pk=pk)
    s = TerminateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    contract = contracts.terminate_contract(contract, reason=s.validated_data['reason'], actor=request.user)
    return Response({'ok': True, 'data': format_contract(contract)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def contract_templates(request):
    if request.method == 'GET':
        check(request, 'contracts', 'read')
        qs = ContractTemplate.objects.all()
        if request.query_params.get('active') in ('1', 'true', 'True'):
            qs = qs.filter(is_active=True)
        return Response({'ok': True, 'data': [format_template(t) for t in qs]})

    check(request, 'contracts', 'manage')
    s = ContractTemplateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    template = contracts.create_template(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': format_template(template)}, status=201)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, require('contracts', 'manage')])
def contract_template_detail(request, pk: int):
    template = get_object_or_404(ContractTemplate, pk=pk)
    s = ContractTemplateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    template = contracts.update_template(template, dict(s.validated_data), actor=request.user)
    return Response({'ok': True, 'data': format_template(template)})
