import pytest

from fakes import FakeReadSource, InMemoryPublisher
from metrics_worker import main
from metrics_worker.application import queries as q
from metrics_worker.settings import Settings


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("RO_DATABASE_URL", "postgresql://ro@localhost/app")
    monkeypatch.setenv("RW_DATABASE_URL", "postgresql://rw@localhost/app")
    monkeypatch.setenv("UPLOAD_TYPES", '["Nft"]')
    monkeypatch.setenv("PIN_STATUSES", '["Pinned"]')
    return Settings()


def _wire(monkeypatch, read):
    publisher = InMemoryPublisher()

    async def make_read_source(_settings):
        return read

    async def make_metrics_repo(_settings):
        return publisher

    monkeypatch.setattr(main, "make_read_source", make_read_source)
    monkeypatch.setattr(main, "make_metrics_repo", make_metrics_repo)
    return publisher


@pytest.mark.asyncio
async def test_run_once_succeeds_and_closes_both_stores(monkeypatch, settings):
    read = FakeReadSource(default_total=1)
    publisher = _wire(monkeypatch, read)

    assert await main.run_once(settings) == 0
    assert "uploads_nft_total" in publisher.rows
    assert "pins_pinned_total" in publisher.rows
    assert read.closed and publisher.closed


@pytest.mark.asyncio
async def test_run_once_reports_failure_exit_code(monkeypatch, settings):
    read = FakeReadSource({q.COUNT_PIN_REQUESTS: []}, default_total=1)
    publisher = _wire(monkeypatch, read)

    assert await main.run_once(settings) == 1
    assert "pin_requests_total" not in publisher.rows
    assert read.closed and publisher.closed
