"""Testes de integração para configuração do Celery."""

import pytest

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _celery_eager(settings):
    """Executa tasks de forma síncrona no processo de teste."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class TestCeleryConfig:
    """Verifica que o Celery carrega corretamente via Django."""

    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "portal_linhas"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "portal_linhas"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_outbox_task_is_registered(self):
        from config.celery import app

        app.loader.import_default_modules()
        assert "core.publish_outbox_events" in app.tasks


class TestPublishOutboxTask:
    def test_empty_outbox(self):
        from modules.core.tasks import publish_outbox_events

        result = publish_outbox_events.delay()

        assert result.successful()
        assert result.get() == {"published": 0, "failed": 0}
