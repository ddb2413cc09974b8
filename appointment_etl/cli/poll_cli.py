"""
Command-line interface for the appointment ETL pipeline.

Usage:
    python -m appointment_etl.cli.poll_cli poll --profiles config/clients.yaml [--client ID] [--interval SECONDS]
    python -m appointment_etl.cli.poll_cli process-file --client ID --input FILE
    python -m appointment_etl.cli.poll_cli schedule-job --client ID --protocol-rule-id N \
        --protocol-name NAME --patients FILE
"""

import argparse
import os
import signal
import sys
import threading
from pathlib import Path

import pandas as pd
import psycopg
from dotenv import load_dotenv

from appointment_etl.batch.object_store import create_s3_client
from appointment_etl.batch.pipeline import PipelineOrchestrator
from appointment_etl.batch.readers import build_source_reader
from appointment_etl.batch.writers import ArchiveStore
from appointment_etl.core.config import PipelineSettings, ProfileConfigLoader
from appointment_etl.core.errors import AppointmentEtlError
from appointment_etl.core.models import ClientProfile, ReminderPatient, normalize_header
from appointment_etl.jobs import JobService, SchedulerTrigger
from appointment_etl.observability.logger import get_logger
from appointment_etl.observability.metrics import start_metrics_server
from appointment_etl.transforms import StrategyRegistry
from appointment_etl.warehouse.connection import DatabaseConnectionPool
from appointment_etl.warehouse.repositories import (
    AppointmentStatusRepository,
    FileMetadataRepository,
    JobRepository,
    LanguageRepository,
)
from appointment_etl.warehouse.upsert import DimensionWriter

logger = get_logger(__name__)

DEFAULT_PROFILES_PATH = "config/clients.yaml"

shutdown_event = threading.Event()


def signal_handler(signum, frame):  # type: ignore[no-untyped-def]
    """
    Handle shutdown signals (SIGINT, SIGTERM).

    The current file always finishes; the cycle stops at the next file boundary.
    """
    signal_name = signal.Signals(signum).name
    logger.info(f"Received {signal_name} signal, stopping after the current file...")
    shutdown_event.set()


def create_pool(args) -> DatabaseConnectionPool:
    pool = DatabaseConnectionPool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
    )
    pool.open()
    return pool


def load_profiles(args) -> list[ClientProfile]:
    profiles = ProfileConfigLoader(args.profiles).load_profiles()
    if getattr(args, "client", None):
        profiles = [p for p in profiles if p.client_id.lower() == args.client.lower()]
        if not profiles:
            raise KeyError(f"Client {args.client} is not configured in {args.profiles}")
    return profiles


def build_job_service(profile: ClientProfile, pool: DatabaseConnectionPool,
                      settings: PipelineSettings, s3_client=None) -> JobService:
    s3_client = s3_client or create_s3_client(
        region=profile.settings.storage_region,
        endpoint_url=profile.settings.storage_endpoint_url,
    )
    trigger = SchedulerTrigger(settings.intake_url, timeout=settings.http_timeout_seconds)
    return JobService(JobRepository(pool), trigger, s3_client, settings.schedule_delay_minutes)


def build_orchestrator(
    profile: ClientProfile,
    pool: DatabaseConnectionPool,
    registry: StrategyRegistry,
    settings: PipelineSettings,
) -> PipelineOrchestrator:
    """
    Wire one client's pipeline from the shared pool and the profile's storage settings.
    """
    s3_client = create_s3_client(
        region=profile.settings.storage_region,
        endpoint_url=profile.settings.storage_endpoint_url,
    )
    return PipelineOrchestrator(
        profile=profile,
        source=build_source_reader(profile.source),
        registry=registry,
        dimension_writer=DimensionWriter(pool),
        job_service=build_job_service(profile, pool, settings, s3_client),
        archive_store=ArchiveStore(s3_client, profile.settings.archive_bucket),
        file_metadata=FileMetadataRepository(pool),
        languages=LanguageRepository(pool),
        settings=settings,
    )


def poll_interval(args, settings: PipelineSettings) -> int | None:
    """Seconds between poll cycles, or None for a single cycle; --interval wins over the environment."""
    if args.interval is not None:
        return args.interval
    return settings.poll_interval_seconds


def poll_command(args) -> int:
    """
    Run poll cycles for every enabled client profile.

    Returns:
        Exit code: 1 when a single-run cycle was aborted, else 0
    """
    settings = PipelineSettings.from_env()
    profiles = [p for p in load_profiles(args) if p.enabled]
    if not profiles:
        logger.warning("No enabled client profiles to poll", extra={"profiles": args.profiles})
        return 0

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    metrics_port = args.metrics_port or os.getenv("METRICS_PORT")
    if metrics_port:
        start_metrics_server(int(metrics_port))

    interval = poll_interval(args, settings)

    pool = create_pool(args)
    aborted = False
    try:
        registry = StrategyRegistry(status_sync=AppointmentStatusRepository(pool)).register_profiles(profiles)
        orchestrators = [build_orchestrator(p, pool, registry, settings) for p in profiles]

        while not shutdown_event.is_set():
            for orchestrator in orchestrators:
                if shutdown_event.is_set():
                    break
                summary = orchestrator.run_poll_cycle(shutdown_event)
                aborted = aborted or summary.aborted

            if interval is None:
                break
            logger.info("Waiting for next poll cycle", extra={"interval_seconds": interval})
            shutdown_event.wait(interval)
    finally:
        pool.close()

    logger.info("Polling stopped")
    return 1 if aborted and interval is None else 0


def process_file_command(args) -> int:
    """
    Run the pipeline for one local file; the file itself is left in place.
    """
    input_path = Path(args.input)
    if not input_path.is_file():
        logger.error(f"Input file not found: {args.input}")
        return 1

    settings = PipelineSettings.from_env()
    profile = load_profiles(args)[0]

    pool = create_pool(args)
    try:
        registry = StrategyRegistry(status_sync=AppointmentStatusRepository(pool)).register_profiles([profile])
        orchestrator = build_orchestrator(profile, pool, registry, settings)
        whitelist = orchestrator.languages.fetch_whitelist()
        outcome = orchestrator.process_payload(input_path.name, input_path.read_bytes(), whitelist)
    finally:
        pool.close()

    logger.info("=" * 60)
    logger.info(f"File: {outcome.file_name}")
    logger.info(f"Outcome: {outcome.state}")
    logger.info(f"Job: {outcome.job_id}")
    logger.info(f"Records parsed / loaded: {outcome.parsed_count} / {outcome.loaded_count}")
    for error in outcome.errors:
        logger.info(f"Error: {error}")
    logger.info("=" * 60)
    return 1 if outcome.state == "failed" else 0


def read_patients(path: Path) -> list[ReminderPatient]:
    """Read a patient CSV with PatientId and Language columns (headers matched loosely)."""
    frame = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    frame = frame.rename(columns=lambda column: normalize_header(str(column)))
    frame = frame.reindex(columns=["patientid", "language"], fill_value="")
    return [
        ReminderPatient(patient_id=patient_id.strip(), language=language.strip())
        for patient_id, language in frame.itertuples(index=False, name=None)
        if patient_id.strip()
    ]


def schedule_job_command(args) -> int:
    """
    Create a reminder scheduling job for a list of patients.
    """
    patients_path = Path(args.patients)
    if not patients_path.is_file():
        logger.error(f"Patient file not found: {args.patients}")
        return 1

    settings = PipelineSettings.from_env()
    profile = load_profiles(args)[0]
    patients = read_patients(patients_path)

    pool = create_pool(args)
    try:
        job = build_job_service(profile, pool, settings).create_reminder_job(
            args.protocol_rule_id, args.protocol_name, patients, profile
        )
    finally:
        pool.close()

    logger.info(f"Created reminder job {job.id} for {job.total_count} patients")
    return 0


def add_common_arguments(parser: argparse.ArgumentParser, client_required: bool) -> None:
    parser.add_argument(
        "--profiles",
        default=os.getenv("CLIENT_PROFILES", DEFAULT_PROFILES_PATH),
        help=f"Client profiles YAML file (default: {DEFAULT_PROFILES_PATH})"
    )
    parser.add_argument(
        "--client",
        required=client_required,
        help="Client identifier" + ("" if client_required else " (default: every enabled client)")
    )

    # Database connection arguments; defaults come from DB_* environment variables
    parser.add_argument("--db-host", default=None, help="Database host (env DB_HOST)")
    parser.add_argument("--db-port", type=int, default=None, help="Database port (env DB_PORT)")
    parser.add_argument("--db-name", default=None, help="Database name (env DB_NAME)")
    parser.add_argument("--db-user", default=None, help="Database user (env DB_USER)")
    parser.add_argument("--db-password", default=None, help="Database password (env DB_PASSWORD)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appointment-etl",
        description="Appointment file ingestion pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One poll cycle for every enabled client
  appointment-etl poll --profiles config/clients.yaml

  # Poll one client every 5 minutes until interrupted
  appointment-etl poll --client 61a04be0-c0a0-440b-a395-01c1ec49c882 --interval 300

  # Load a local file for a client
  appointment-etl process-file --client 61a04be0-c0a0-440b-a395-01c1ec49c882 --input appts.csv

  # Schedule reminders for a patient list
  appointment-etl schedule-job --client 61a04be0-c0a0-440b-a395-01c1ec49c882 \\
      --protocol-rule-id 12 --protocol-name "48h reminder" --patients patients.csv
        """
    )
    parser.add_argument("--env-file", default=".env", help="dotenv file loaded before anything else")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    poll_parser = subparsers.add_parser("poll", help="Poll client sources for new files")
    add_common_arguments(poll_parser, client_required=False)
    poll_parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between poll cycles (env POLL_INTERVAL_SECONDS); without either a single cycle runs"
    )
    poll_parser.add_argument("--metrics-port", type=int, default=None, help="Serve Prometheus metrics (env METRICS_PORT)")

    process_parser = subparsers.add_parser("process-file", help="Process one local file for a client")
    add_common_arguments(process_parser, client_required=True)
    process_parser.add_argument("--input", required=True, help="Path to the appointment file")

    schedule_parser = subparsers.add_parser("schedule-job", help="Create a reminder scheduling job")
    add_common_arguments(schedule_parser, client_required=True)
    schedule_parser.add_argument("--protocol-rule-id", type=int, required=True, help="Reminder protocol rule id")
    schedule_parser.add_argument("--protocol-name", required=True, help="Reminder protocol name")
    schedule_parser.add_argument("--patients", required=True, help="CSV with PatientId and Language columns")

    return parser


COMMANDS = {
    "poll": poll_command,
    "process-file": process_file_command,
    "schedule-job": schedule_job_command,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    load_dotenv(args.env_file)

    try:
        return COMMANDS[args.command](args)
    except (AppointmentEtlError, psycopg.Error, KeyError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
