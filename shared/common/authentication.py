# shared/common/authentication.py
"""
JWT Authentication
"""

import jwt
import logging
from datetime import timedelta
from typing import Optional, Dict, Any, Tuple
from django.conf import settings
from django.utils import timezone
from rest_framework import authentication, exceptions
from rest_framework.request import Request

logger = logging.getLogger(__name__)


class JWTAuthentication(authentication.BaseAuthentication):
    """
    JWT Token Authentication for API requests.
    Tokens are signed with JWT_SECRET_KEY using JWT_ALGORITHM (HS256 by default).
    """

    keyword = 'Bearer'

    def authenticate(self, request: Request) -> Optional[Tuple[Any, Dict]]:
        auth_header = authentication.get_authorization_header(request)

        if not auth_header:
            return None

        try:
            auth_parts = auth_header.decode('utf-8').split()
        except UnicodeDecodeError:
            raise exceptions.AuthenticationFailed('Invalid token header encoding')

        if len(auth_parts) != 2:
            raise exceptions.AuthenticationFailed('Invalid token header format')

        if auth_parts[0].lower() != self.keyword.lower():
            return None

        return self.authenticate_token(auth_parts[1])

    def authenticate_token(self, token: str) -> Tuple[Any, Dict]:
        """Validate and decode JWT token"""
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[getattr(settings, 'JWT_ALGORITHM', 'HS256')],
                options={'require': ['exp', 'sub']},
            )
        except jwt.ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            raise exceptions.AuthenticationFailed('Invalid token')

        return (TokenUser(payload), payload)

    def authenticate_header(self, request: Request) -> str:
        return self.keyword


class TokenUser:
    """
    User object created from JWT token payload.
    """

    def __init__(self, payload: Dict):
        self.payload = payload
        self.id = payload.get('sub')
        self.business_id = payload.get('business_id')
        self.roles = payload.get('roles', [])
        self.is_active = True
        self.is_authenticated = True
        self.is_anonymous = False

    def __str__(self) -> str:
        return f"TokenUser({self.id})"

    def has_role(self, role: str) -> bool:
        return role in self.roles


def generate_access_token(user_id: str, business_id: str = None, roles: list = None,
                          lifetime: timedelta = timedelta(hours=1)) -> str:
    """Issue a signed access token; used by service tooling and tests."""
    now = timezone.now()
    payload = {
        'sub': str(user_id),
        'business_id': str(business_id) if business_id else None,
        'roles': roles or [],
        'iat': now,
        'exp': now + lifetime,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET_KEY,
        algorithm=getattr(settings, 'JWT_ALGORITHM', 'HS256'),
    )
