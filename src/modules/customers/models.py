"""Customer model.

Business rules implemented:
- CPF/CNPJ and email are unique in the system.
- ``document`` is stored with digits only and validated with *validate-docbr*.
- ``user`` links the customer to the Django auth user that logs into the
  self-service portal; order ownership checks go through it.
- Sensitive data (CPF/CNPJ) masked in ``__str__`` and logs.
"""

from __future__ import annotations

import re

import structlog
from validate_docbr import CNPJ, CPF

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class DocumentType(models.TextChoices):
    CPF = "CPF", "CPF"
    CNPJ = "CNPJ", "CNPJ"


class Customer(BaseModel):
    """Portal customer (pessoa física or jurídica)."""

    name = models.CharField(max_length=255)
    document = models.CharField(max_length=14, unique=True)
    document_type = models.CharField(max_length=4, choices=DocumentType.choices)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    is_active = models.BooleanField(default=True)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="customer",
    )

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]

    @staticmethod
    def _sanitize_document(value: str) -> str:
        """Strip all non-digit characters from a document string."""
        return re.sub(r"\D", "", value)

    def clean(self) -> None:
        super().clean()
        if self.document:
            self.document = self._sanitize_document(self.document)
        if self.document_type not in DocumentType.values:
            raise ValidationError({"document_type": "Invalid document type."})
        validator = CPF() if self.document_type == DocumentType.CPF else CNPJ()
        if not validator.validate(self.document):
            logger.warning(
                "customer.invalid_document",
                document_type=self.document_type,
                document_suffix=self.document[-4:] if self.document else "",
            )
            raise ValidationError({"document": f"Invalid {self.document_type} number."})

    def save(self, *args, **kwargs) -> None:
        if self.document:
            self.document = self._sanitize_document(self.document)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        suffix = self.document[-4:] if self.document else "????"
        return f"{self.name} ({self.document_type}: ***{suffix})"
