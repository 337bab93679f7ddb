"""
Custom authentication backend for multi-field login.

Allows users to authenticate using any one of ``username``, ``email`` or
``phone_number`` together with their ``password``.  Registered in
``settings.AUTHENTICATION_BACKENDS`` ahead of Django's ``ModelBackend``.
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

logger = logging.getLogger(__name__)

User = get_user_model()


class MultiFieldAuthBackend(ModelBackend):
    """
    Resolve the user from the ``identifier`` keyword argument by checking
    all three unique login fields, then verify the password.
    """

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        if identifier is None or password is None:
            return None

        try:
            user = User.objects.select_related("role").get(
                Q(username=identifier)
                | Q(email__iexact=identifier)
                | Q(phone_number=identifier)
            )
        except User.DoesNotExist:
            # Run the default password hasher to mitigate timing attacks
            User().set_password(password)
            return None
        except User.MultipleObjectsReturned:
            logger.warning("Login identifier %r matched more than one user.", identifier)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
