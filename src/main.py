from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from config import config
from db.db import init_db
from db.repositories import QuotationRepository
from domain.errors import QuotationError
from domain.quotation import ClientInfo, CurrencySettings, Itinerary, PricingOptions, build_markup, parse_record
from services.quotation_service import QuotationService
from utils.quotation_summary import compute_quotation_summary, render_quotation_summary

logger = logging.getLogger(__name__)


def build_service(database_url: str | None = None) -> QuotationService:
    session = init_db(database_url)
    return QuotationService(QuotationRepository(session))


def print_summary(service: QuotationService, quotation_id: str, currency: str | None = None) -> None:
    quotation = service.get(quotation_id)
    view = service.engine.convert_for_display(quotation, currency)
    print(render_quotation_summary(compute_quotation_summary(quotation, view)))


def assemble(service: QuotationService, args: argparse.Namespace) -> None:
    itinerary = parse_record(Itinerary, json.loads(Path(args.itinerary).read_text(encoding="utf-8")))
    client_info = ClientInfo(
        name=args.client_name,
        email=args.client_email,
        phone=args.client_phone,
        reference_no=args.reference_no,
        notes=args.notes,
    )
    pricing_options = PricingOptions(markup=build_markup(args.markup_type, args.markup_value))

    settings = config()
    currency_settings = None
    if itinerary.currency == settings.default_base_currency.upper():
        currency_settings = parse_record(
            CurrencySettings,
            {
                "baseCurrency": itinerary.currency,
                "displayCurrency": itinerary.currency,
                "exchangeRates": settings.default_exchange_rates,
            },
        )

    quotation = service.create_from_itinerary(
        itinerary,
        client_info,
        pricing_options,
        currency_settings=currency_settings,
    )
    print(f"Created quotation {quotation.id}")
    print_summary(service, quotation.id)


def run(args: argparse.Namespace) -> None:
    service = build_service(args.database_url)

    if args.command == "assemble":
        assemble(service, args)
    elif args.command == "show":
        print_summary(service, args.quotation_id, args.currency)
    elif args.command == "save":
        service.save_draft(args.quotation_id)
        print_summary(service, args.quotation_id)
    elif args.command == "lock":
        service.lock_version(args.quotation_id, args.by)
        print_summary(service, args.quotation_id)
    elif args.command == "new-version":
        service.create_version(args.quotation_id, args.description)
        print_summary(service, args.quotation_id)
    elif args.command == "refresh-rates":
        service.refresh_exchange_rates(args.quotation_id, args.currencies or None)
        print_summary(service, args.quotation_id)
    elif args.command == "export":
        print(json.dumps(service.get(args.quotation_id).to_record(), indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Price, convert and version travel quotations.")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL, defaults to the configured database")
    subparsers = parser.add_subparsers(dest="command", required=True)

    assemble_parser = subparsers.add_parser("assemble", help="Create a quotation from an itinerary JSON file")
    assemble_parser.add_argument("itinerary", type=Path)
    assemble_parser.add_argument("--client-name")
    assemble_parser.add_argument("--client-email")
    assemble_parser.add_argument("--client-phone")
    assemble_parser.add_argument("--reference-no")
    assemble_parser.add_argument("--notes")
    assemble_parser.add_argument("--markup-type", choices=["percentage", "fixed"], default="percentage")
    assemble_parser.add_argument("--markup-value", default="0")

    show_parser = subparsers.add_parser("show", help="Print a quotation summary")
    show_parser.add_argument("quotation_id")
    show_parser.add_argument("--currency", help="Display currency")

    save_parser = subparsers.add_parser("save", help="Save the working state into the current version")
    save_parser.add_argument("quotation_id")

    lock_parser = subparsers.add_parser("lock", help="Lock the current version")
    lock_parser.add_argument("quotation_id")
    lock_parser.add_argument("--by", default=None)

    version_parser = subparsers.add_parser("new-version", help="Start a new version")
    version_parser.add_argument("quotation_id")
    version_parser.add_argument("--description", required=True)

    rates_parser = subparsers.add_parser("refresh-rates", help="Refresh exchange rates for a quotation")
    rates_parser.add_argument("quotation_id")
    rates_parser.add_argument("currencies", nargs="*")

    export_parser = subparsers.add_parser("export", help="Print the quotation record as JSON")
    export_parser.add_argument("quotation_id")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except QuotationError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
