"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches ``OrderDomainError`` and translates its
``kind`` into the HTTP status code:

- ``validation``: malformed or missing input (400).
- ``forbidden``: the actor may not perform the mutation (403).
- ``not_found``: an order, line or product id does not resolve (404).
- ``conflict``: the request is well formed but collides with current
  state, e.g. capacity reached or number bound elsewhere (409).

Messages are customer facing (pt-BR).
"""

from __future__ import annotations

VALIDATION = "validation"
CONFLICT = "conflict"
FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"


class OrderDomainError(Exception):
    """Base class for business-rule failures of the orders context."""

    kind: str = VALIDATION
    default_message: str = "Requisição inválida."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# not_found
# ---------------------------------------------------------------------------


class OrderNotFound(OrderDomainError):
    kind = NOT_FOUND
    default_message = "Pedido não encontrado."


class LineNotFound(OrderDomainError):
    kind = NOT_FOUND
    default_message = "Linha não encontrada."


class ProductNotFound(OrderDomainError):
    kind = NOT_FOUND
    default_message = "Produto não encontrado."


# ---------------------------------------------------------------------------
# validation
# ---------------------------------------------------------------------------


class MissingLineNumber(OrderDomainError):
    default_message = "Número da linha é obrigatório."


class InvalidLineNumber(OrderDomainError):
    default_message = "Número da linha deve conter DDD e ter 10 ou 11 dígitos."


class UnknownSva(OrderDomainError):
    """An SVA id that is not part of the order's purchased SVAs."""

    default_message = "SVA não faz parte deste pedido."


class MissingSvaId(OrderDomainError):
    default_message = "svaId é obrigatório."


class InvalidSvaId(OrderDomainError):
    default_message = "svaId inválido."


class InvalidStage(OrderDomainError):
    default_message = "Etapa inválida."


class InvalidLineStatus(OrderDomainError):
    default_message = "Status de linha inválido."


# ---------------------------------------------------------------------------
# conflict
# ---------------------------------------------------------------------------


class NumberAlreadyInUse(OrderDomainError):
    kind = CONFLICT
    default_message = (
        "Este número já está associado a outro pedido ativo. "
        "Aguarde o encerramento do outro pedido ou informe outro número."
    )


class LineLimitReached(OrderDomainError):
    kind = CONFLICT
    default_message = "Limite de linhas contratadas atingido para este pedido."


class DuplicateSvaOnLine(OrderDomainError):
    kind = CONFLICT
    default_message = "Este SVA já está selecionado nesta linha."


class SvaExhausted(OrderDomainError):
    kind = CONFLICT
    default_message = "Não há mais unidades disponíveis deste SVA."


class SlotLocked(OrderDomainError):
    """Saving a slot other than the one currently unlocked."""

    kind = CONFLICT
    default_message = "Preencha e salve a linha anterior antes de continuar."


# ---------------------------------------------------------------------------
# forbidden
# ---------------------------------------------------------------------------


class LineLocked(OrderDomainError):
    kind = FORBIDDEN
    default_message = (
        "Esta linha já entrou em processo operacional e não pode mais ser "
        "alterada. Entre em contato com o suporte."
    )


class OrderAccessDenied(OrderDomainError):
    kind = FORBIDDEN
    default_message = "Você não tem permissão para acessar este pedido."


class AdminOnly(OrderDomainError):
    kind = FORBIDDEN
    default_message = "Apenas administradores podem executar esta ação."
