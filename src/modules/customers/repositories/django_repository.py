"""Django ORM implementation of the Customer repository."""

from __future__ import annotations

from typing import Any, Optional

import structlog

from django.core.exceptions import ValidationError
from django.db import transaction

from modules.customers.models import Customer
from modules.customers.repositories.interfaces import ICustomerRepository

logger = structlog.get_logger(__name__)


class CustomerDjangoRepository(ICustomerRepository):
    """Concrete Customer repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Customer]:
        try:
            return Customer.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_user(self, user: Any) -> Optional[Customer]:
        if user is None or not getattr(user, "pk", None):
            return None
        return Customer.objects.filter(user_id=user.pk, is_active=True).first()

    @transaction.atomic
    def save(self, entity: Customer) -> Customer:
        entity.save()
        logger.info("customer.saved", customer_id=str(entity.id))
        return entity
