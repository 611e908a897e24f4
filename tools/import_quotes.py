#!/usr/bin/env python3
"""
import_quotes.py: Command-line front end of the quotation engine.

Usage:
    python tools/import_quotes.py baseline <presupuesto.xlsx> --name "Obra X" [--currency PEN]
    python tools/import_quotes.py supplier <cotizacion.xlsx> --process 1 --supplier "Ferreteria SAC"
    python tools/import_quotes.py supplier <cotizacion.xlsx> --process 1 --replace 4
    python tools/import_quotes.py summary --process 1
    python tools/import_quotes.py progress --process 1
    python tools/import_quotes.py export --process 1 --output comparativo.xlsx
    python tools/import_quotes.py processes

Results are printed as JSON; any quotation error exits with status 1.
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from enum import Enum

from domain.exceptions import QuotationError
from domain.models import SupplierContext
from quotations.analytics.reports import export_summary_excel, summary_payload
from quotations.app import build_service, configure_logging, get_attachment_store, load_config

logger = logging.getLogger(__name__)


def _default(value):
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _dump(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=_default))


def _store_original(config: dict, path: str) -> dict:
    with open(path, "rb") as f:
        stored_path, content_hash = get_attachment_store(config).save(f.read(), os.path.basename(path))
    logger.info("Stored %s as %s", path, stored_path)
    return {"path": stored_path, "sha256": content_hash}


def cmd_baseline(service, config, args) -> dict:
    result = service.import_baseline(
        args.path,
        name=args.name,
        code=args.code,
        base_currency=args.currency,
        exchange_rate=args.rate,
        target_margin_pct=args.margin,
        notes=args.notes,
    )
    return {
        "process_id": result.process.id,
        "name": result.process.name,
        "items": len(result.items),
        "total_quantity": result.total_quantity,
        "total_cost": result.total_cost,
        "attachment": _store_original(config, args.path),
    }


def cmd_supplier(service, config, args) -> dict:
    result = service.import_supplier_quote(
        args.path,
        args.process,
        SupplierContext(
            supplier_id=args.supplier_id,
            supplier_name=args.supplier,
            currency=args.currency,
            exchange_rate=args.rate,
            notes=args.notes,
        ),
        replace_quotation_id=args.replace,
    )
    return {
        "quotation_id": result.quotation.id,
        "supplier": result.quotation.supplier_name,
        "mode": result.mode.value,
        "rows": len(result.items),
        "matched": result.matched_count,
        "unmatched": result.unmatched_count,
        "totals": asdict(result.totals),
        "attachment": _store_original(config, args.path),
    }


def cmd_summary(service, config, args) -> dict:
    ttl = config.get("cache", {}).get("ttl") or 900
    return summary_payload(service, args.process, cache=service.cache, ttl=ttl)


def cmd_progress(service, config, args) -> list:
    return service.get_purchase_progress(args.process)


def cmd_export(service, config, args) -> dict:
    summary = service.get_process_summary(args.process)
    progress = service.get_purchase_progress(args.process)
    export_summary_excel(summary, progress, args.output)
    return {"process_id": args.process, "output": args.output}


def cmd_processes(service, config, args) -> list:
    return service.list_processes()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Comparador de cotizaciones contra presupuesto base")
    parser.add_argument("--config", help="Ruta a un config.yaml alternativo")
    sub = parser.add_subparsers(dest="command", required=True)

    baseline = sub.add_parser("baseline", help="Importar un presupuesto base (.xlsx)")
    baseline.add_argument("path", help="Libro Excel del presupuesto")
    baseline.add_argument("--name", required=True, help="Nombre del proceso")
    baseline.add_argument("--code")
    baseline.add_argument("--currency", default="PEN", help="Moneda base del proceso")
    baseline.add_argument("--rate", type=float, help="Tipo de cambio por defecto")
    baseline.add_argument("--margin", type=float, help="Margen objetivo en %%")
    baseline.add_argument("--notes")
    baseline.set_defaults(func=cmd_baseline)

    supplier = sub.add_parser("supplier", help="Importar la cotizacion de un proveedor (.xlsx)")
    supplier.add_argument("path", help="Libro Excel de la cotizacion")
    supplier.add_argument("--process", type=int, required=True)
    supplier.add_argument("--supplier", help="Nombre del proveedor")
    supplier.add_argument("--supplier-id", type=int)
    supplier.add_argument("--currency", help="Moneda de la cotizacion")
    supplier.add_argument("--rate", type=float, help="Tipo de cambio de la cotizacion")
    supplier.add_argument("--replace", type=int, metavar="QUOTATION_ID", help="Reemplazar una cotizacion existente")
    supplier.add_argument("--notes")
    supplier.set_defaults(func=cmd_supplier)

    for name, func, help_text in (
        ("summary", cmd_summary, "Ranking y comparativo por material"),
        ("progress", cmd_progress, "Avance de compras y entregas"),
    ):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("--process", type=int, required=True)
        command.set_defaults(func=func)

    export = sub.add_parser("export", help="Exportar el comparativo a Excel")
    export.add_argument("--process", type=int, required=True)
    export.add_argument("--output", required=True)
    export.set_defaults(func=cmd_export)

    processes = sub.add_parser("processes", help="Listar procesos")
    processes.set_defaults(func=cmd_processes)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    configure_logging(config)
    service = build_service(config)

    try:
        result = args.func(service, config, args)
    except QuotationError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        if e.details:
            print(json.dumps(e.details, ensure_ascii=False, default=_default), file=sys.stderr)
        return 1

    _dump(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
