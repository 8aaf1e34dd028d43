import pytest

from shadowing.config import get_database_url, get_plan_batch_concurrency


def test_database_url_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError):
        get_database_url()


def test_test_mode_switches_database(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost:5432/practice_db")
    monkeypatch.setenv("TEST_MODE", "true")
    assert get_database_url() == "postgresql://u:p@localhost:5432/test_practice_db"

    monkeypatch.setenv("TEST_MODE", "false")
    assert get_database_url() == "postgresql://u:p@localhost:5432/practice_db"


def test_plan_batch_concurrency(monkeypatch):
    monkeypatch.delenv("PLAN_BATCH_CONCURRENCY", raising=False)
    assert get_plan_batch_concurrency() == 10

    monkeypatch.setenv("PLAN_BATCH_CONCURRENCY", "4")
    assert get_plan_batch_concurrency() == 4

    monkeypatch.setenv("PLAN_BATCH_CONCURRENCY", "0")
    assert get_plan_batch_concurrency() == 1

    monkeypatch.setenv("PLAN_BATCH_CONCURRENCY", "many")
    with pytest.raises(ValueError):
        get_plan_batch_concurrency()
