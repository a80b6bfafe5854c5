"""Unit tests for number normalization and the uniqueness guard."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from modules.orders.constants import OrderStage
from modules.orders.exceptions import (
    InvalidLineNumber,
    MissingLineNumber,
    NumberAlreadyInUse,
)
from modules.orders.guards import NumberUniquenessGuard, mask_numero, normalize_numero

pytestmark = pytest.mark.unit


def _bound_line(line_id, etapa):
    return SimpleNamespace(id=line_id, order_id=f"order-{line_id}", order=SimpleNamespace(etapa=etapa))


class TestNormalizeNumero:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("11999990000", "11999990000"),
            ("(11) 99999-0000", "11999990000"),
            ("1133334444", "1133334444"),
            (" 11 3333 4444 ", "1133334444"),
        ],
    )
    def test_accepts_ddd_plus_number(self, raw, expected):
        assert normalize_numero(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw):
        with pytest.raises(MissingLineNumber):
            normalize_numero(raw)

    @pytest.mark.parametrize("raw", ["999990000", "119999900001", "abc"])
    def test_wrong_length(self, raw):
        with pytest.raises(InvalidLineNumber):
            normalize_numero(raw)


def test_mask_keeps_last_four_digits():
    assert mask_numero("11999990000") == "***0000"
    assert mask_numero("") == ""


class TestNumberUniquenessGuard:
    def test_free_number(self):
        repo = MagicMock()
        repo.list_by_numero.return_value = []

        NumberUniquenessGuard(repo).ensure_available("11988887777")

        repo.list_by_numero.assert_called_once_with("11988887777")

    def test_number_is_locked_before_lookup(self):
        repo = MagicMock()
        repo.list_by_numero.return_value = []

        NumberUniquenessGuard(repo).ensure_available("11988887777")

        assert [c[0] for c in repo.method_calls] == ["lock_numero", "list_by_numero"]
        repo.lock_numero.assert_called_once_with("11988887777")

    @pytest.mark.parametrize(
        "etapa",
        [OrderStage.CANCELADO, OrderStage.REPROVADO, OrderStage.CONCLUIDO, OrderStage.ENCERRADO],
    )
    def test_terminal_orders_release_the_number(self, etapa):
        repo = MagicMock()
        repo.list_by_numero.return_value = [_bound_line("l1", etapa)]

        NumberUniquenessGuard(repo).ensure_available("11988887777")

    @pytest.mark.parametrize(
        "etapa",
        [
            OrderStage.NOVO_PEDIDO,
            OrderStage.EM_ANALISE,
            OrderStage.AJUSTE_SOLICITADO,
            OrderStage.APROVADO,
            OrderStage.EM_PROCESSO,
        ],
    )
    def test_open_order_keeps_the_number(self, etapa):
        repo = MagicMock()
        repo.list_by_numero.return_value = [_bound_line("l1", etapa)]

        with pytest.raises(NumberAlreadyInUse):
            NumberUniquenessGuard(repo).ensure_available("11988887777")

    def test_any_open_binding_rejects(self):
        repo = MagicMock()
        repo.list_by_numero.return_value = [
            _bound_line("l1", OrderStage.CONCLUIDO),
            _bound_line("l2", OrderStage.NOVO_PEDIDO),
        ]

        with pytest.raises(NumberAlreadyInUse):
            NumberUniquenessGuard(repo).ensure_available("11988887777")

    def test_excluded_line_is_ignored(self):
        repo = MagicMock()
        repo.list_by_numero.return_value = [_bound_line("l1", OrderStage.NOVO_PEDIDO)]

        NumberUniquenessGuard(repo).ensure_available("11988887777", exclude_line_id="l1")
