"""
Authentication views.

Login returns both a JWT pair and an opaque DRF token.  These views are
kept apart from ``onboarding.authentication`` so that DRF can import the
authentication classes during settings initialisation without circular
imports.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from onboarding.serializers.auth import LoginSerializer
from onboarding.services.audit import safe_log_action
from onboarding.services.hospitals import resolve_primary_hospital


def _user_payload(user) -> dict:
    hospital = resolve_primary_hospital(user)
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'name': user.get_full_name() or user.username,
        'role': user.role,
        'primaryHospital': {'id': hospital.id, 'code': hospital.code, 'name': hospital.name} if hospital else None,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    ip = request.META.get('REMOTE_ADDR')

    user = authenticate(request, username=username, password=s.validated_data['password'])
    if not user:
        # only the username is recorded for failed attempts
        safe_log_action(user=None, action='login', object_type='user', object_id=None,
                        detail={'result': 'fail', 'username': username, 'ip': ip})
        raise AuthenticationFailed('Invalid username or password.')

    safe_log_action(user=user, action='login', object_type='user', object_id=user.id,
                    detail={'result': 'ok', 'ip': ip})
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    lifetime = jwt_settings.ACCESS_TOKEN_LIFETIME

    return Response({
        'ok': True,
        'data': {
            'token': token_obj.key,
            'jwtAccess': str(refresh.access_token),
            'jwtRefresh': str(refresh),
            'expiresIn': int(lifetime.total_seconds()),
            'user': _user_payload(user),
        },
    })

# ScopedRateThrottle reads throttle_scope from the generated view class
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token for a refresh token."""
    s = TokenRefreshSerializer(data={'refresh': request.data.get('refresh') or request.data.get('jwtRefresh')})
    try:
        s.is_valid(raise_exception=True)
    except TokenError as exc:
        raise AuthenticationFailed(str(exc)) from exc
    data = {'jwtAccess': s.validated_data['access']}
    if 'refresh' in s.validated_data:
        data['jwtRefresh'] = s.validated_data['refresh']
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist one refresh token, or all of the user's outstanding ones."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as exc:
            raise ValidationError({'refresh': str(exc)}) from exc
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    safe_log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
                    detail={'blacklisted': count})
    return Response({'ok': True, 'data': {'blacklisted': count}})
