from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from onboarding.models import Application, Document
from onboarding.permissions import authorize, check, require
from onboarding.serializers.applications import DocumentUploadSerializer, DocumentVerifySerializer, format_document
from onboarding.services import documents
from onboarding.throttles import PublicSubmitThrottle


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
@throttle_classes([PublicSubmitThrottle, UserRateThrottle])
def application_documents(request, pk: int):
    """
    GET: documents of an application (onboarding:read).
    POST (multipart): upload one document.  Staff need onboarding:update;
    the applicant may upload by sending the application's contact e-mail
    as ``email``.
    """
    application = get_object_or_404(Application, pk=pk)
    if request.method == 'GET':
        check(request, 'onboarding', 'read')
        return Response({'ok': True, 'data': [format_document(d) for d in application.documents.all()]})

    s = DocumentUploadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = getattr(request, 'user', None)
    if not authorize(user, 'onboarding', 'update'):
        email = (vd.get('email') or '').strip().lower()
        if not email or email != application.contact_email.lower():
            raise PermissionDenied('Only the applicant or onboarding staff may upload documents.')

    document = documents.upload_document(
        application,
        vd['file'],
        document_type=vd['document_type'],
        name=vd.get('name', ''),
        expiry_date=vd.get('expiry_date'),
        uploader=user if getattr(user, 'is_authenticated', False) else None,
    )
    return Response({'ok': True, 'data': format_document(document)}, status=201)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, require('onboarding', 'verify')])
def document_verify(request, pk: int):
    document = get_object_or_404(Document, pk=pk)
    s = DocumentVerifySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    document = documents.verify_document(
        document, verified=s.validated_data['verified'], verifier=request.user, notes=s.validated_data.get('notes', '')
    )
    return Response({'ok': True, 'data': format_document(document)})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, require('onboarding', 'delete')])
def document_delete(request, pk: int):
    document = get_object_or_404(Document.objects.select_related('application'), pk=pk)
    documents.delete_document(document, actor=request.user)
    return Response({'ok': True})
