"""
Pytest configuration and fixtures for appointment-etl tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import os
from typing import Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from appointment_etl.core.models import (
    AppointmentRecord,
    ClientProfile,
    ClientSettings,
    LocalSourceConfig,
)
from appointment_etl.warehouse.connection import DatabaseConnectionPool


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

POSTGRES_USER = "test_etl"
POSTGRES_PASSWORD = "test_password"
POSTGRES_DB = "test_appointments"


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance with the warehouse schema applied
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username=POSTGRES_USER,
        password=POSTGRES_PASSWORD,
        dbname=POSTGRES_DB,
    ) as postgres:
        init_sql_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "docker",
            "init-db.sql"
        )

        with open(init_sql_path) as f:
            init_sql = f.read()

        with psycopg.connect(postgres.get_connection_url(driver=None)) as conn:
            with conn.cursor() as cur:
                cur.execute(init_sql)
            conn.commit()

        yield postgres


@pytest.fixture(scope="session")
def pool_factory(postgres_container):
    """
    Build unopened DatabaseConnectionPools pointed at the test container

    Returns:
        Callable taking extra DatabaseConnectionPool keyword arguments
    """
    def build(**kwargs) -> DatabaseConnectionPool:
        return DatabaseConnectionPool(
            host=postgres_container.get_container_host_ip(),
            port=int(postgres_container.get_exposed_port(5432)),
            database=POSTGRES_DB,
            user=POSTGRES_USER,
            password=POSTGRES_PASSWORD,
            **kwargs,
        )

    return build


@pytest.fixture(scope="function")
def db_pool(pool_factory):
    """
    Open a DatabaseConnectionPool against the test container

    Yields:
        Open DatabaseConnectionPool
    """
    pool = pool_factory()
    pool.open()
    yield pool
    pool.close()


@pytest.fixture(scope="function")
def clean_db(postgres_container) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a clean database by truncating all data tables before each test

    Yields:
        psycopg Connection object with clean database
    """
    with psycopg.connect(postgres_container.get_connection_url(driver=None)) as conn:
        with conn.cursor() as cur:
            cur.execute(
                "TRUNCATE TABLE appointment_status, appointment_type, location, practitioner, "
                "job, file_metadata, appointment"
            )
        conn.commit()
        yield conn
        conn.rollback()


# =======================
# RECORD FIXTURES
# =======================

def make_record(**overrides) -> AppointmentRecord:
    """Build a record that passes every validation rule unless overridden."""
    values = {
        "app_id": "A-1",
        "first_name": "John",
        "last_name": "Doe",
        "date_of_birth": "04151980",
        "app_date": "06012024",
        "app_time": "9:30AM",
        "app_type": "NP",
        "app_type_desc": "New Patient",
        "app_status": "Scheduled",
        "language": "eng",
        "provider_id": "123",
        "provider_name": "Jane Smith",
        "provider_first_name": "Jane",
        "provider_last_name": "Smith",
        "patient_primary_phone": "5551234567",
        "patient_identifier": "MRN0001",
        "location_id": "L1",
        "location_name": "Main Clinic",
    }
    values.update(overrides)
    return AppointmentRecord(**values)


@pytest.fixture(scope="session")
def record_factory():
    """Builder for records that pass every validation rule unless overridden."""
    return make_record


@pytest.fixture
def clean_batch() -> list[AppointmentRecord]:
    """Five records that pass every rule."""
    return [
        make_record(app_id=f"A-{i}", patient_identifier=f"MRN{i:04d}")
        for i in range(1, 6)
    ]


@pytest.fixture
def language_whitelist() -> frozenset[str]:
    return frozenset({"ENG", "SPA"})


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture
def local_profile(tmp_path) -> ClientProfile:
    """
    Client profile reading from a temporary local inbox

    Returns:
        ClientProfile with a local source under tmp_path/inbox
    """
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    return ClientProfile(
        client_id="local-test",
        client_key=1,
        transform="generic",
        date_format="%m/%d/%Y",
        source=LocalSourceConfig(directory=str(inbox), archive_directory="processed"),
        settings=ClientSettings(
            staging_bucket="staging",
            archive_bucket="archive",
            protocol_id=3,
        ),
    )
