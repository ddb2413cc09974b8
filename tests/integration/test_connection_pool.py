"""
Integration tests for the database connection pool

Tests the PostgreSQL connection pool functionality using testcontainers.
"""
import pytest
from psycopg import OperationalError
from tenacity import wait_none

from appointment_etl.warehouse.connection import DatabaseConnectionPool


def test_password_required(monkeypatch):
    """A pool without any password is refused before connecting"""
    monkeypatch.delenv("DB_PASSWORD", raising=False)

    with pytest.raises(ValueError, match="password"):
        DatabaseConnectionPool(host="localhost")


def test_connection_used_before_open_rejected():
    pool = DatabaseConnectionPool(host="localhost", password="unused")

    with pytest.raises(RuntimeError, match="not open"):
        with pool.get_connection():
            pass


@pytest.mark.integration
def test_connection_pool_initialization(pool_factory):
    """Test that connection pool initializes correctly"""
    pool = pool_factory(min_size=2, max_size=5)

    pool.open()

    assert pool.is_open
    assert pool._pool.min_size == 2
    assert pool._pool.max_size == 5

    pool.close()
    assert not pool.is_open


@pytest.mark.integration
def test_rows_are_dicts(pool_factory):
    """Test getting a connection from the pool"""
    pool = pool_factory()
    pool.open()

    with pool.get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 as test")
            assert cur.fetchone()["test"] == 1

    assert pool.execute_query("SELECT 42 as answer") == [{"answer": 42}]
    pool.close()


@pytest.mark.integration
def test_execute_command(clean_db, pool_factory):
    """Test executing INSERT commands"""
    with pool_factory() as pool:
        rowcount = pool.execute_command(
            "INSERT INTO appointment (client_key, app_id, status) VALUES (%s, %s, %s)",
            (1, "A-1", "Booked"),
        )

        assert rowcount == 1
        rows = pool.execute_query("SELECT status FROM appointment WHERE app_id = %s", ("A-1",))
        assert rows == [{"status": "Booked"}]


@pytest.mark.integration
def test_unreachable_server_retried_then_raised():
    """Opening against a closed port fails after the bounded retries"""
    pool = DatabaseConnectionPool(host="127.0.0.1", port=1, password="unused", timeout=1)

    with pytest.raises(OperationalError):
        pool.open(attempts=2, wait=wait_none())

    assert not pool.is_open
