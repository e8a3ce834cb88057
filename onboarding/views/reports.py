from __future__ import annotations

from django.http import HttpResponse
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from onboarding.models import Application
from onboarding.permissions import require
from onboarding.services import exports, onboarding


@api_view(['GET'])
@permission_classes([IsAuthenticated, require('onboarding', 'read')])
def onboarding_metrics(request):
    """
    Dashboard metrics, cached for a few minutes.
      - state: restrict to one state (not cached)
      - refresh: 1 to recompute
    """
    state = (request.query_params.get('state') or '').strip() or None
    refresh = request.query_params.get('refresh') in ('1', 'true', 'True')
    return Response({'ok': True, 'data': onboarding.onboarding_metrics(state=state, refresh=refresh)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, require('onboarding', 'export')])
def onboarding_export(request, fmt: str):
    """Export applications as ``csv`` or ``pdf``; accepts ``status`` and ``state`` filters."""
    qs = Application.objects.order_by('-created_at')
    if request.query_params.get('status'):
        qs = qs.filter(status=request.query_params['status'])
    if request.query_params.get('state'):
        qs = qs.filter(state=request.query_params['state'])

    stamp = timezone.localtime().strftime('%Y%m%d-%H%M')
    if fmt == 'csv':
        resp = HttpResponse(exports.export_csv(qs), content_type='text/csv; charset=utf-8')
    elif fmt == 'pdf':
        resp = HttpResponse(exports.export_pdf(qs), content_type='application/pdf')
    else:
        raise ValidationError({'format': 'Use csv or pdf.'})
    resp['Content-Disposition'] = f'attachment; filename="applications-{stamp}.{fmt}"'
    return resp
