from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from onboarding.models import Application
from onboarding.permissions import check
from onboarding.serializers.applications import EvaluationSerializer, format_application, format_evaluation
from onboarding.services import onboarding


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def application_evaluate(request, pk: int):
    """
    GET: evaluation history, newest first (onboarding:read).
    POST: evaluate (onboarding:evaluate).  With ``scores`` the reviewer's
    scores are recorded; without them the application is scored
    automatically and the result is acted on.
    """
    application = get_object_or_404(Application, pk=pk)
    if request.method == 'GET':
        check(request, 'onboarding', 'read')
        return Response({
            'ok': True,
            'data': [format_evaluation(e) for e in application.evaluations.all()],
            'meta': {'averageScore': application.evaluation_score},
        })

    check(request, 'onboarding', 'evaluate')
    s = EvaluationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    scores = vd.pop('scores', None)
    if scores is None:
        evaluation = onboarding.evaluate(application, evaluator=request.user)
    else:
        evaluation = onboarding.evaluate(application, evaluator=request.user, scores=scores, **vd)
    application.refresh_from_db()
    return Response({
        'ok': True,
        'data': {'evaluation': format_evaluation(evaluation), 'application': format_application(application)},
    }, status=201)
