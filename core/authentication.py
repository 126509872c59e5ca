"""
Token authentication for the PetCareX API.

Kept apart from the views so DRF can import it from settings without
pulling in any view module.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>``, the key issued at login and registration.

    Deactivated accounts get the same message as the login endpoint.
    """

    keyword = 'Token'

    def authenticate_credentials(self, key):
        model = self.get_model()
        token = model.objects.select_related('user').filter(key=key).first()
        if token is None:
            raise exceptions.AuthenticationFailed('Invalid token.')
        if not token.user.is_active:
            raise exceptions.AuthenticationFailed('This account has been deactivated.')
        return token.user, token
