"""
eligibility.py
--------------
Gate in front of class enrollment.

A business marks each client eligible or not (onboarding finished,
membership valid, ...). Ineligible clients are turned away before the
booking transaction starts, so they never hold a class seat, not even
for the length of a transaction.
"""

import logging

from ..models import ClientProfile
from .errors import ClientNotEligible, ClientNotFound

logger = logging.getLogger(__name__)


class EligibilityGate:
    def get_client(self, business, client_id):
        try:
            return ClientProfile.objects.get(pk=client_id, business=business)
        except (ClientProfile.DoesNotExist, ValueError, TypeError):
            raise ClientNotFound() from None

    def authorize(self, client, service) -> None:
        """
        Pass silently, or raise ClientNotEligible.
        Only class services (capacity > 1) are gated.
        """
        if not service.is_class:
            return
        if not client.is_eligible:
            logger.info("Client %s not eligible for class service %s", client.pk, service.pk)
            raise ClientNotEligible()

    def set_eligibility(self, business, client_id, is_eligible: bool):
        client = self.get_client(business, client_id)
        if client.is_eligible != is_eligible:
            client.is_eligible = is_eligible
            client.save(update_fields=["is_eligible"])
            logger.info("Client %s eligibility set to %s", client.pk, is_eligible)
        return client
