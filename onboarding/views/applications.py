"""
Application endpoints: submission, listing, status, checklist and progress.

Submission and the public status lookup are open to anonymous callers;
everything else is gated by the ``onboarding`` permissions.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from onboarding.models import Application, ChecklistItem
from onboarding.permissions import check, require
from onboarding.serializers.applications import (
    ApplicationListQuerySerializer,
    ApplicationSubmitSerializer,
    ChecklistUpdateSerializer,
    StageCompleteSerializer,
    StatusUpdateSerializer,
    format_application,
    format_application_summary,
    format_checklist_item,
    format_public_status,
)
from onboarding.services import checklist, onboarding, progress
from onboarding.throttles import PublicSubmitThrottle


def _actor(request):
    user = getattr(request, 'user', None)
    return user if getattr(user, 'is_authenticated', False) else None


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
@throttle_classes([PublicSubmitThrottle, UserRateThrottle])
def applications(request):
    """
    POST: submit a partner application (public).
    GET: list applications (onboarding:read).
      - status, state, facilityType, q: filters
      - sort: createdAt | submittedAt | hospitalName | score | status | state, prefix ``-`` for descending
      - page, pageSize: pagination
    """
    if request.method == 'POST':
        s = ApplicationSubmitSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        application = onboarding.submit_application(s.validated_data, actor=_actor(request))
        return Response({'ok': True, 'data': format_application(application)}, status=201)

    check(request, 'onboarding', 'read')
    q = ApplicationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    page = vd.get('page') or 1
    page_size = vd.get('pageSize') or 20
    items, total = onboarding.list_applications(
        status=vd.get('status'),
        state=vd.get('state'),
        facility_type=vd.get('facilityType'),
        q=(vd.get('q') or '').strip() or None,
        sort=vd.get('sort'),
        page=page,
        page_size=page_size,
    )
    return Response({
        'ok': True,
        'data': [format_application_summary(a) for a in items],
        'pagination': {'total': total, 'page': page, 'pageSize': page_size},
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def application_status_lookup(request, application_number: str):
    """Public status check; the contact e-mail must be supplied as ``?email=``."""
    email = (request.query_params.get('email') or '').strip()
    if not email:
        raise ValidationError({'email': 'The contact e-mail is required.'})
    application = onboarding.lookup_status(application_number, email)
    if application is None:
        raise NotFound('No application matches this number and e-mail.')
    return Response({'ok': True, 'data': format_public_status(application)})

application_status_lookup.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated, require('onboarding', 'read')])
def application_detail(request, pk: int):
    application = get_object_or_404(Application, pk=pk)
    data = format_application(application)
    data['progress'] = progress.get_progress(application)
    return Response({'ok': True, 'data': data})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, require('onboarding', 'update')])
def application_status_update(request, pk: int):
    application = get_object_or_404(Application, pk=pk)
    s = StatusUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    application = onboarding.update_status(
        application, s.validated_data['status'], actor=request.user, reason=s.validated_data.get('reason')
    )
    return Response({'ok': True, 'data': format_application(application)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, require('onboarding', 'read')])
def application_progress(request, pk: int):
    application = get_object_or_404(Application, pk=pk)
    return Response({'ok': True, 'data': progress.get_progress(application)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, require('onboarding', 'read')])
def application_checklist(request, pk: int):
    application = get_object_or_404(Application, pk=pk)
    items = [format_checklist_item(i) for i in application.checklist.all()]
    return Response({
        'ok': True,
        'data': items,
        'meta': {
            'documentsComplete': checklist.documents_complete(application),
            'fullyOnboarded': checklist.fully_onboarded(application),
        },
    })


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, require('onboarding', 'update')])
def checklist_item_update(request, pk: int):
    item = get_object_or_404(ChecklistItem, pk=pk)
    s = ChecklistUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    item = checklist.update_checklist_item(
        item, completed=s.validated_data['completed'], actor=request.user, notes=s.validated_data.get('notes', '')
    )
    return Response({'ok': True, 'data': format_checklist_item(item)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, require('onboarding', 'update')])
def application_stage_complete(request, pk: int):
    application = get_object_or_404(Application, pk=pk)
    s = StageCompleteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    items = checklist.complete_stage(
        application, s.validated_data['stage'], actor=request.user, notes=s.validated_data.get('notes', '')
    )
    return Response({
        'ok': True,
        'data': {
            'items': [format_checklist_item(i) for i in items],
            'progress': progress.get_progress(application),
        },
    })
