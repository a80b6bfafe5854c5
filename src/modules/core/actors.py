"""Acting principal resolution.

Every order-line and upsell use-case receives an ``Actor`` instead of the
raw Django user, so the services stay free of request objects.  Staff
users act as ``admin``; everyone else acts as ``customer`` and is bound to
the ``Customer`` row linked to their user (if any).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from uuid import UUID


class ActorRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    customer_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def is_customer(self) -> bool:
        return self.role == ActorRole.CUSTOMER

    def owns(self, customer_id: Optional[UUID]) -> bool:
        """Admins own everything; customers only their own orders."""
        if self.is_admin:
            return True
        return self.customer_id is not None and self.customer_id == customer_id

    @classmethod
    def admin(cls) -> Actor:
        return cls(role=ActorRole.ADMIN)

    @classmethod
    def customer(cls, customer_id: Optional[UUID]) -> Actor:
        return cls(role=ActorRole.CUSTOMER, customer_id=customer_id)


def actor_from_user(user: Any) -> Actor:
    """Build the ``Actor`` for an authenticated Django user."""
    if getattr(user, "is_staff", False):
        return Actor.admin()

    from modules.customers.repositories.django_repository import (
        CustomerDjangoRepository,
    )

    customer = CustomerDjangoRepository().get_by_user(user)
    return Actor.customer(customer.id if customer else None)
