"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderLineDTO`` / ``UpdateOrderLineDTO``: line mutations.  For
  updates only the fields actually sent are applied (``model_fields_set``).
- ``OrderLineOutputDTO`` / ``LineSummaryDTO``: line-fill progress.
- ``UpsellOfferDTO`` / ``NextUpsellDTO`` / ``UpsellResponseDTO``: upsell
  negotiation results.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from modules.orders.models import OrderLine


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


def _stringify_ids(v: Optional[List[Any]]) -> Optional[List[str]]:
    if v is None:
        return None
    return [str(item) for item in v]


class CreateOrderLineDTO(BaseModel):
    """Immutable DTO for a line creation request.

    ``product_id`` is optional: pure portability lines carry no product.
    ``numero`` is validated and normalized by the service, which owns the
    error taxonomy.
    """

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    product_id: Optional[UUID] = None
    numero: Optional[str] = None
    operadora_atual: str = ""
    svas: List[str] = Field(default_factory=list)
    observacoes: str = ""

    @field_validator("svas", mode="before")
    @classmethod
    def stringify_svas(cls, v: Optional[List[Any]]) -> List[str]:
        return _stringify_ids(v) or []


class UpdateOrderLineDTO(BaseModel):
    """Immutable DTO for a partial line update."""

    model_config = ConfigDict(frozen=True)

    numero: Optional[str] = None
    operadora_atual: Optional[str] = None
    svas: Optional[List[str]] = None
    observacoes: Optional[str] = None
    status: Optional[str] = None

    @field_validator("svas", mode="before")
    @classmethod
    def stringify_svas(cls, v: Optional[List[Any]]) -> Optional[List[str]]:
        return _stringify_ids(v)

    def provided(self) -> Dict[str, Any]:
        """Fields explicitly sent by the caller."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderLineOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    order_id: UUID
    product_id: Optional[UUID]
    numero: str
    operadora_atual: str
    operadora_destino: str
    svas: List[str]
    status: str
    observacoes: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, line: OrderLine) -> OrderLineOutputDTO:
        return cls(
            id=line.id,
            order_id=line.order_id,
            product_id=line.product_id,
            numero=line.numero,
            operadora_atual=line.operadora_atual,
            operadora_destino=line.operadora_destino,
            svas=list(line.svas or []),
            status=line.status,
            observacoes=line.observacoes,
            created_at=line.created_at,
            updated_at=line.updated_at,
        )


class LineSummaryDTO(BaseModel):
    """Immutable DTO for the line-fill progress of an order."""

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    total_linhas_contratadas: int
    total_linhas_preenchidas: int
    linhas_restantes: int
    progresso: int
    sem_capacidade: bool
    produtos_disponiveis: List[Dict[str, Any]]
    svas_disponiveis: List[Dict[str, Any]]
    linhas: List[OrderLineOutputDTO]


class UpsellOfferDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    nome: str
    descricao: str
    preco: int
    momento: str


class NextUpsellDTO(BaseModel):
    """``upsell`` is ``None`` whenever ``reason`` explains why."""

    model_config = ConfigDict(frozen=True)

    upsell: Optional[UpsellOfferDTO] = None
    reason: Optional[str] = None


class UpsellResponseDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    accepted: bool
    item_added: bool = False
    new_total: Optional[int] = None
