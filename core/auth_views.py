"""
Authentication views and helper functions.

This module defines the login and registration endpoints used by the
front-end as well as JWT refresh/logout and a helper for retrieving the
user from a request.  By isolating these views from the authentication
class (see ``core.authentication``) we prevent circular imports when
Django REST framework initialises authentication classes.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from django.db import transaction
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from core.exceptions import ConflictError, DomainError
from core.serializers.auth import LoginSerializer, RegisterSerializer
from core.services.audit import log_action
from core.services.membership import get_next_level_requirement, loyalty_points

from .models import User

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> dict:
    data = {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'name': user.display_name,
        'phone': user.phone,
        'gender': user.gender,
        'dateOfBirth': user.date_of_birth.isoformat() if user.date_of_birth else None,
        'citizenId': user.citizen_id,
        'role': user.role,
    }
    if user.role == User.ROLE_CUSTOMER:
        data['membershipLevel'] = user.membership_level
        data['yearlySpending'] = user.yearly_spending
        data['loyaltyPoints'] = loyalty_points(user.yearly_spending)
        data['nextLevel'] = get_next_level_requirement(user.membership_level, user.yearly_spending)
    return data


def _issue_tokens(user: User) -> dict:
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return {
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
    }


def _find_account(account: str) -> User | None:
    if '@' in account:
        return User.objects.filter(email__iexact=account).order_by('id').first()
    return User.objects.filter(username=account).first()


# ---------------------------------------------------------------------
# Username / email login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Log in with a username or an email address.
    Accepts fields:
      - account, username or email
      - password
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    account = s.validated_data['account']
    password = s.validated_data['password']
    ip = request.META.get('REMOTE_ADDR')

    candidate = _find_account(account)
    if candidate is not None and not candidate.is_active and candidate.check_password(password):
        log_action(user=candidate, action='login', object_type='user', object_id=candidate.id,
                   detail={'result': 'inactive', 'ip': ip})
        return Response({'ok': False, 'detail': 'This account has been deactivated.'}, status=403)

    user = None
    if candidate is not None:
        user = authenticate(request, username=candidate.username, password=password)
    if not user:
        # only the submitted account name is recorded
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'account': account, 'ip': ip})
        logger.warning('failed login for %r from %s', account, ip)
        return Response({'ok': False, 'detail': 'Invalid username/email or password.'}, status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})

    payload: dict[str, object] = {
        'ok': True,
        **_issue_tokens(user),
        'role': user.role,
        'user': serialize_user(user),
    }
    return Response(payload, status=200)

# DRF ScopedRateThrottle uses throttle_scope on the view function
login_view.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    """Create a customer account at the Basic tier and log it in."""
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    with transaction.atomic():
        if User.objects.filter(username=v['username']).exists():
            raise ConflictError('Username already exists.')
        if User.objects.filter(email__iexact=v['email']).exists():
            raise ConflictError('Email already exists.')
        user = User.objects.create_user(
            username=v['username'],
            email=v['email'],
            password=v['password'],
            first_name=v.get('fullName', ''),
            phone=v.get('phone', ''),
            role=User.ROLE_CUSTOMER,
            membership_level=User.LEVEL_BASIC,
        )
        log_action(user=user, action='register', object_type='user', object_id=user.id,
                   detail={'ip': request.META.get('REMOTE_ADDR')})
    return Response({
        'ok': True,
        **_issue_tokens(user),
        'role': user.role,
        'user': serialize_user(user),
    }, status=201)

register_view.throttle_scope = 'register'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': serialize_user(request.user)})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if isinstance(resp, Response):
        data = dict(resp.data)
        if 'access' in data and 'jwt_access' not in data:
            data['jwt_access'] = data.pop('access')
        return Response(data, status=resp.status_code)
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist current user's refresh tokens (all or a given one)."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
            token.blacklist()
        except TokenError as e:
            raise DomainError(f'Invalid refresh token: {e}')
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
