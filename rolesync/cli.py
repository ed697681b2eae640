"""rolesync CLI: run the directory reconciliation and inspect encodings."""

import json
import logging
from typing import Optional

import typer
from sqlalchemy.engine import Engine

from rolesync.connectors.base import DirectoryReader
from rolesync.connectors.ldap import LDAPDirectoryReader
from rolesync.core.config import Settings, get_settings
from rolesync.core.exceptions import ConfigurationError, FATAL_ERRORS
from rolesync.core.logging import configure_logging
from rolesync.db.session import create_db_engine, create_session_factory, ping_database, init_schema
from rolesync.executor.engine import ReconciliationRunner
from rolesync.services.decoders import (
    parse_localized,
    pick_localized,
    decode_entitlement_ref,
    decode_dynamic_parm_vals,
)

logger = logging.getLogger("rolesync")

app = typer.Typer(name="rolesync", help="LDAP role/resource reconciliation")
db_app = typer.Typer(help="Database management commands")
decode_app = typer.Typer(help="Decode directory attribute values")
app.add_typer(db_app, name="db")
app.add_typer(decode_app, name="decode")


def build_reader(settings: Settings) -> DirectoryReader:
    return LDAPDirectoryReader.from_settings(settings)


def build_engine(settings: Settings) -> Engine:
    return create_db_engine(settings.database_url, echo=settings.DEBUG)


def _fail(message: str) -> None:
    logger.error(message)
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


@app.command("run")
def run(
    dry_run: Optional[bool] = typer.Option(
        None, "--dry-run/--no-dry-run", help="Only count directory entries (default: DRY_RUN)"
    ),
    purge_days: Optional[int] = typer.Option(
        None, "--purge-days", min=0, help="Retention window in days (default: PURGE_AGE_IN_DAYS)"
    ),
):
    """Synchronize roles, resources and associations from LDAP."""
    settings = get_settings()
    configure_logging(settings.DEBUG)
    dry_run = settings.DRY_RUN if dry_run is None else dry_run
    if purge_days is not None:
        settings.PURGE_AGE_IN_DAYS = purge_days

    try:
        settings.validate_required(dry_run=dry_run)
        if dry_run:
            logger.info("Starting dry run: NO data will be written to the database")
        else:
            logger.info("Starting normal mode: reading from LDAP and writing to the database")

        reader = build_reader(settings)
        reader.connect()
        try:
            if dry_run:
                logger.info("Skipping database connection")
                runner = ReconciliationRunner.from_settings(settings, None, reader)
                typer.echo(json.dumps(runner.count_only()))
            else:
                engine = build_engine(settings)
                try:
                    ping_database(engine)
                    init_schema(engine)
                    runner = ReconciliationRunner.from_settings(
                        settings, create_session_factory(engine), reader
                    )
                    report = runner.execute()
                    typer.echo(report.model_dump_json(indent=2))
                finally:
                    engine.dispose()
        finally:
            reader.close()
    except FATAL_ERRORS as e:
        _fail(e.message)

    logger.info("Synchronization finished")


@db_app.command("init")
def db_init():
    """Create the reconciliation tables if they don't exist."""
    settings = get_settings()
    configure_logging(settings.DEBUG)
    missing = settings.missing_database_settings()
    try:
        if missing:
            raise ConfigurationError(f"Missing database configuration: {', '.join(missing)}")
        engine = build_engine(settings)
        try:
            ping_database(engine)
            init_schema(engine)
        finally:
            engine.dispose()
    except FATAL_ERRORS as e:
        _fail(e.message)
    typer.echo("Tables created (or already exist)")


@db_app.command("ping")
def db_ping():
    """Check that the database is reachable."""
    settings = get_settings()
    configure_logging(settings.DEBUG)
    missing = settings.missing_database_settings()
    try:
        if missing:
            raise ConfigurationError(f"Missing database configuration: {', '.join(missing)}")
        engine = build_engine(settings)
        try:
            ping_database(engine)
        finally:
            engine.dispose()
    except FATAL_ERRORS as e:
        _fail(e.message)
    typer.echo("Database reachable")


@decode_app.command("localized")
def decode_localized(value: str = typer.Argument(..., help="e.g. 'en~Hello|de~Hallo'")):
    """Decode a localized text attribute."""
    mapping = parse_localized(value)
    typer.echo(json.dumps({"values": mapping, "preferred": pick_localized(mapping)}, ensure_ascii=False))


@decode_app.command("entitlement")
def decode_entitlement(value: str = typer.Argument(..., help="driver#status#<ref>...</ref>")):
    """Decode an nrfEntitlementRef value."""
    typer.echo(decode_entitlement_ref(value).model_dump_json())


@decode_app.command("params")
def decode_params(value: str = typer.Argument(..., help="<parameter><value>...</value></parameter>")):
    """Decode an nrfDynamicParmVals value."""
    decoded = decode_dynamic_parm_vals(value)
    if decoded is None:
        _fail("Value could not be decoded")
    typer.echo(decoded)


if __name__ == "__main__":
    app()
