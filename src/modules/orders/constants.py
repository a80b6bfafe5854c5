"""Order domain constants.

Stage (``etapa``) vocabulary of the admin console, order-line statuses,
and the limits of the upsell negotiation.
"""

from django.db import models


class OrderStage(models.TextChoices):
    NOVO_PEDIDO = "novo_pedido", "Novo pedido"
    EM_ANALISE = "em_analise", "Em análise"
    AJUSTE_SOLICITADO = "ajuste_solicitado", "Ajuste solicitado"
    APROVADO = "aprovado", "Aprovado"
    EM_PROCESSO = "em_processo", "Em processo"
    CONCLUIDO = "concluido", "Concluído"
    ENCERRADO = "encerrado", "Encerrado"
    REPROVADO = "reprovado", "Reprovado"
    CANCELADO = "cancelado", "Cancelado"


# A number bound to a line of an order in one of these stages is free again.
TERMINAL_STAGES: frozenset[str] = frozenset(
    {
        OrderStage.CANCELADO,
        OrderStage.REPROVADO,
        OrderStage.CONCLUIDO,
        OrderStage.ENCERRADO,
    }
)


class TipoContratacao(models.TextChoices):
    NOVO = "novo", "Linha nova"
    PORTABILIDADE = "portabilidade", "Portabilidade"


class LineStatus(models.TextChoices):
    INICIAL = "inicial", "Inicial"
    EM_ANALISE = "em_analise", "Em análise"
    APROVADO = "aprovado", "Aprovado"
    EM_PROCESSO = "em_processo", "Em processo"
    CONCLUIDO = "concluido", "Concluído"
    CANCELADO = "cancelado", "Cancelado"


# Only lines in this status may be edited or removed by the customer.
CUSTOMER_EDITABLE_LINE_STATUS = LineStatus.INICIAL

# Discarded lines keep their slot but give their SVAs back to the pool.
DISCARDED_LINE_STATUSES: frozenset[str] = frozenset({LineStatus.CANCELADO})

NUMERO_MIN_DIGITS = 10
NUMERO_MAX_DIGITS = 11

UPSELL_OFFER_LIMIT = 3


class UpsellMoment(models.TextChoices):
    CHECKOUT = "checkout", "Checkout"
    POS_CHECKOUT = "pos-checkout", "Pós-checkout"
    PAINEL = "painel", "Painel"


class UpsellReason(models.TextChoices):
    LIMIT_REACHED = "limit_reached", "Limite de ofertas atingido"
    NO_MORE_SVAS = "no_more_svas", "Nenhum SVA elegível"
    SVA_NOT_FOUND = "sva_not_found", "SVA não encontrado"


ORDER_CODE_MAX_RETRIES = 5
