from __future__ import annotations

import random

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.customers.models import Customer, DocumentType
from modules.orders.constants import OrderStage, TipoContratacao
from modules.orders.models import Order, OrderItem
from modules.products.models import Product


class Command(BaseCommand):
    help = "Seed database with a telecom catalog and orders waiting for line fill."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        customers = self._seed_customers()
        plans, svas = self._seed_products()
        orders_created = self._seed_orders(customers, plans, svas)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"customers={len(customers)}, "
                f"products={len(plans) + len(svas)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        for username in ("ana", "bruno"):
            if not User.objects.filter(username=username).exists():
                User.objects.create_user(username, password=f"{username}123")
                created += 1
        return created

    def _seed_customers(self) -> list[Customer]:
        self.stdout.write("Creating customers...")
        User = get_user_model()
        seed_customers = [
            ("ana", "Ana Souza", "39053344705", DocumentType.CPF, "ana@example.com"),
            ("bruno", "Bruno Lima", "11222333000181", DocumentType.CNPJ, "bruno@example.com"),
        ]
        customers: list[Customer] = []
        for username, name, document, doc_type, email in seed_customers:
            customer, _ = Customer.objects.get_or_create(
                document=document,
                defaults={
                    "name": name,
                    "document_type": doc_type,
                    "email": email,
                    "user": User.objects.filter(username=username).first(),
                },
            )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_products(self) -> tuple[list[Product], list[Product]]:
        self.stdout.write("Creating products...")
        sva_catalog = [
            ("Pacote Dados 10GB", "SVA Dados", 1990),
            ("Antivírus Móvel", "SVA Segurança", 990),
            ("Streaming Música", "SVA Entretenimento", 1490),
            ("Backup em Nuvem", "SVA Nuvem", 790),
            ("Gestor de Frota", "SVA Empresarial", 2490),
        ]
        svas = [
            Product.objects.get_or_create(
                nome=nome, defaults={"categoria": categoria, "preco": preco}
            )[0]
            for nome, categoria, preco in sva_catalog
        ]
        sva_ids = [str(sva.id) for sva in svas]

        plan_catalog = [
            ("Controle 20GB", "Plano Móvel", "VIVO", 4990),
            ("Empresa 50GB", "Plano Móvel", "TIM", 8990),
            ("Pós 100GB", "Plano Móvel", "CLARO", 12990),
        ]
        plans = []
        for nome, categoria, operadora, preco in plan_catalog:
            plan, _ = Product.objects.get_or_create(
                nome=nome,
                defaults={
                    "categoria": categoria,
                    "operadora": operadora,
                    "preco": preco,
                    "svas_upsell": random.sample(sva_ids, k=4),
                },
            )
            plans.append(plan)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return plans, svas

    def _seed_orders(
        self, customers: list[Customer], plans: list[Product], svas: list[Product]
    ) -> int:
        self.stdout.write("Creating orders...")
        if not customers or not plans:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers/products)."))
            return 0

        orders_created = 0
        for i, customer in enumerate(customers):
            if customer.orders.exists():
                continue
            order = Order.objects.create(
                customer=customer,
                tipo_contratacao=TipoContratacao.PORTABILIDADE,
                etapa=OrderStage.NOVO_PEDIDO,
                observacoes=f"Seed order {i + 1}",
            )
            total = 0
            plan_item = OrderItem.objects.create(
                order=order,
                product=random.choice(plans),
                quantidade=random.randint(1, 3),
                linhas_adicionais=random.randint(0, 1),
                preco_unitario=None,
            )
            total += plan_item.subtotal
            sva_item = OrderItem.objects.create(
                order=order,
                product=random.choice(svas),
                quantidade=2,
                preco_unitario=None,
            )
            total += sva_item.subtotal
            Order.objects.filter(id=order.id).update(total=total)
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
