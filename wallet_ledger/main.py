"""Main module entrypoint for local runtime execution.

This module validates startup configuration, configures logging and runs one
ledger command, printing JSON results to stdout.
"""

import argparse
import json
import time
from datetime import datetime, timezone

from wallet_ledger.bootstrap import bootstrap_create_application, bootstrap_create_refresh_orchestrator
from wallet_ledger.config import config_configure_logging, config_load_settings
from wallet_ledger.domain import domain_serialize_position
from wallet_ledger.jobs import JOB_DAILY_REFRESH, JOB_HISTORICALS_REFRESH, JOB_POSITIONS_REFRESH

_COMMANDS = (
    "refresh-run",
    "historicals-refresh",
    "position",
    "positions",
    "history",
    "performance",
    "price",
    "health",
)


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
    """

    argument_parser = argparse.ArgumentParser(description="Wallet ledger runtime entrypoint")
    argument_parser.add_argument(
        "command",
        choices=_COMMANDS,
        help="Runtime command: `refresh-run` executes a refresh job, `historicals-refresh` backfills daily bars, "
        "`position` computes one symbol, `positions` computes every open position, `history` and "
        "`performance` read weekly snapshots, `price` reads the live price stream, `health` checks the database",
        type=str,
    )
    argument_parser.add_argument("symbol", nargs="?", type=str, help="Symbol for `position` and `price`")
    argument_parser.add_argument(
        "--job",
        dest="job_name",
        default=JOB_DAILY_REFRESH,
        choices=(JOB_DAILY_REFRESH, JOB_HISTORICALS_REFRESH, JOB_POSITIONS_REFRESH),
        help="Job name for `refresh-run`",
    )
    argument_parser.add_argument("--portfolio-id", dest="portfolio_id", type=str, help="Optional portfolio scope")
    argument_parser.add_argument(
        "--since",
        dest="since",
        type=main_parse_utc_timestamp,
        help="Optional ISO-8601 lower bound for `history`",
    )
    argument_parser.add_argument(
        "--wait-seconds",
        dest="wait_seconds",
        type=float,
        default=5.0,
        help="Seconds to listen to the price stream before `price` reads the cache",
    )
    parsed_arguments = argument_parser.parse_args()

    settings = config_load_settings()
    config_configure_logging(settings.log_level)

    if parsed_arguments.command == "refresh-run":
        refresh_orchestrator = bootstrap_create_refresh_orchestrator(settings)
        execution_result = refresh_orchestrator.job_execute(job_name=parsed_arguments.job_name)
        main_print_json(
            {"job_name": execution_result.job_name, "status": execution_result.status, **execution_result.details}
        )
        if execution_result.status != "success":
            raise SystemExit(1)
        return

    if parsed_arguments.command in {"position", "price"} and not parsed_arguments.symbol:
        argument_parser.error(f"`{parsed_arguments.command}` requires a symbol")

    application = bootstrap_create_application(settings)
    try:
        if parsed_arguments.command == "historicals-refresh":
            if parsed_arguments.symbol:
                inserted = application.refresh_historical_for_symbol(parsed_arguments.symbol)
                main_print_json({"symbol": parsed_arguments.symbol, "inserted": inserted})
                return
            summary = application.refresh_historicals(parsed_arguments.portfolio_id)
            main_print_json({"inserted": summary.inserted_by_symbol, "failures": summary.failures})
            if summary.failures:
                raise SystemExit(1)
            return

        if parsed_arguments.command == "position":
            position = application.compute_position(parsed_arguments.symbol, parsed_arguments.portfolio_id)
            main_print_json(domain_serialize_position(position))
            return

        if parsed_arguments.command == "positions":
            positions = application.compute_all_positions(parsed_arguments.portfolio_id)
            main_print_json([domain_serialize_position(position) for position in positions])
            return

        if parsed_arguments.command == "history":
            history = application.get_position_history(parsed_arguments.portfolio_id, parsed_arguments.since)
            main_print_json(
                {
                    snapshot_date.isoformat(): [domain_serialize_position(position) for position in positions]
                    for snapshot_date, positions in history.items()
                }
            )
            return

        if parsed_arguments.command == "performance":
            snapshots = application.get_portfolio_performance(parsed_arguments.portfolio_id)
            main_print_json(
                [
                    {
                        "name": snapshot.name,
                        "reference": str(snapshot.reference),
                        "percentual_gain": str(snapshot.percentual_gain),
                    }
                    for snapshot in snapshots
                ]
            )
            return

        if parsed_arguments.command == "price":
            application.start_price_stream()
            time.sleep(max(parsed_arguments.wait_seconds, 0.0))
            price = application.get_live_price(parsed_arguments.symbol)
            main_print_json({"symbol": parsed_arguments.symbol, "price": None if price is None else str(price)})
            return

        health_status = application.check_health()
        main_print_json({"status": health_status.status, "detail": health_status.detail})
    finally:
        application.shutdown(wait_for_tasks=True)


def main_parse_utc_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp argument, treating naive values as UTC.

    Args:
        value: Raw argument text.

    Returns:
        datetime: Offset-aware timestamp.

    Raises:
        argparse.ArgumentTypeError: Raised when value is not ISO-8601.
    """

    try:
        parsed_value = datetime.fromisoformat(value)
    except ValueError as error:
        raise argparse.ArgumentTypeError(f"invalid ISO-8601 timestamp: {value}") from error
    if parsed_value.tzinfo is None:
        return parsed_value.replace(tzinfo=timezone.utc)
    return parsed_value


def main_print_json(payload: object) -> None:
    """Print one JSON payload to stdout."""

    print(json.dumps(payload, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
