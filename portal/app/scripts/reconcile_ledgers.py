"""CLI utility that reconciles the dues ledger of every resident."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from datetime import date
from typing import Optional

from .. import schemas
from ..config import BACKEND_TOKEN_ENV
from ..services import BackendError, LedgerComputationError, ReportService
from ..upstream import client_scope

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Recalcula el estado de cuenta de cada residente y reporta los adeudos, "
            "ideal para cron o tareas programadas."
        )
    )
    parser.add_argument(
        "--reference-date",
        type=date.fromisoformat,
        default=None,
        help="Fecha de corte en formato YYYY-MM-DD (por defecto, hoy).",
    )
    parser.add_argument(
        "--token",
        default=None,
        help=f"Token del backend; si se omite se usa la variable {BACKEND_TOKEN_ENV}.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Muestra el detalle de cada residente al corriente.",
    )
    return parser.parse_args(argv)


async def _build_report(token: str, today: date) -> schemas.DelinquencyReport:
    async with client_scope(token) as client:
        residents, records, configuration = await client.fetch_directory()
        return ReportService.delinquency_report(
            residents,
            records,
            configuration,
            today=today,
            default_fee=client.settings.default_monthly_fee,
        )


def _log_report(report: schemas.DelinquencyReport) -> None:
    for row in report.rows:
        if row.status == schemas.DelinquencyStatus.OVERDUE:
            LOGGER.warning(
                "%s (vivienda %s): %s meses vencidos, %s días, adeudo %s",
                row.resident_name,
                row.housing_unit,
                row.overdue_periods,
                row.max_days_overdue,
                row.total_owed,
            )
        elif row.status == schemas.DelinquencyStatus.PENDING:
            LOGGER.info(
                "%s (vivienda %s): %s meses pendientes, adeudo %s",
                row.resident_name,
                row.housing_unit,
                row.open_periods,
                row.total_owed,
            )
        else:
            LOGGER.debug("%s (vivienda %s): al corriente", row.resident_name, row.housing_unit)

    LOGGER.info(
        "Residentes: %s, morosos: %s, pendientes: %s, al corriente: %s, morosidad %s%%",
        report.total_residents,
        report.overdue_residents,
        report.pending_residents,
        report.current_residents,
        report.delinquency_rate,
    )


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    token = args.token or os.getenv(BACKEND_TOKEN_ENV)
    if not token:
        LOGGER.error("Falta el token del backend (--token o %s)", BACKEND_TOKEN_ENV)
        return 2

    today = args.reference_date or date.today()
    try:
        report = asyncio.run(_build_report(token, today))
    except BackendError as exc:
        LOGGER.error("No fue posible consultar el backend: %s", exc)
        return 1
    except LedgerComputationError as exc:
        LOGGER.error("Estado de cuenta inconsistente: %s", exc)
        return 1

    _log_report(report)
    LOGGER.info("Conciliación de estados de cuenta finalizada")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
