import django_filters

from modules.orders.constants import OrderStage, TipoContratacao
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    etapa = django_filters.ChoiceFilter(choices=OrderStage.choices)
    tipo_contratacao = django_filters.ChoiceFilter(choices=TipoContratacao.choices)
    customer = django_filters.UUIDFilter(field_name="customer_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "etapa",
            "tipo_contratacao",
            "customer",
            "start_date",
            "end_date",
        ]
