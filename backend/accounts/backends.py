"""
Custom authentication backend for multi-field login.

Users authenticate with any one of ``username``, ``email``, ``cnic`` or
``phone_number`` together with their ``password``.  Registered first in
``settings.AUTHENTICATION_BACKENDS``.
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
    Resolve ``authenticate(identifier=..., password=...)`` calls against
    all four unique identity fields.
    """

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        """
        Parameters
        ----------
        request : HttpRequest | None
        identifier : str
            Username, email address, CNIC or phone number.
        password : str
            The raw password to verify.

        Returns
        -------
        User | None
            The authenticated user, or ``None`` on failure.
        """
        if identifier is None:
            identifier = kwargs.get(User.USERNAME_FIELD)
        if not identifier or password is None:
            return None

        try:
            user = User.objects.select_related("role").get(
                Q(username=identifier)
                | Q(email__iexact=identifier)
                | Q(cnic=identifier)
                | Q(phone_number=identifier)
            )
        except User.DoesNotExist:
            # Run the hasher anyway so response time does not leak existence.
            User().set_password(password)
            return None
        except User.MultipleObjectsReturned:
            logger.warning("Login identifier %r matched more than one user.", identifier)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
