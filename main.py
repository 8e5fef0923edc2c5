"""
Main entry point for PadSplit Market Insights.
Supports modes:
  --web: Start the web API
  --metros: List markets available to the account
  --zipcodes METRO_ID: Show stats and zip codes for one market
  --scrape CITY --zips 30301,30302: Scrape zip codes and write an Excel report

Dashboard credentials are read from PADSPLIT_EMAIL / PADSPLIT_PASSWORD.
"""
import argparse
import asyncio
import os
import sys
from pathlib import Path

from loguru import logger

from padsplit import config
from padsplit.exceptions import PadSplitError
from padsplit.models import Credentials, JobStatus
from padsplit.services.directory_service import MetroDirectoryService
from padsplit.services.report_exporter import export_job
from padsplit.services.scrape_orchestrator import ScrapeOrchestrator, normalize_zip_codes
from padsplit.utils.logging_config import setup_default_logging


def load_credentials() -> Credentials:
    email = os.getenv("PADSPLIT_EMAIL")
    password = os.getenv("PADSPLIT_PASSWORD")
    if not email or not password:
        raise SystemExit("PADSPLIT_EMAIL and PADSPLIT_PASSWORD must be set")
    return Credentials(email=email, password=password)


def parse_zip_list(raw: str) -> list[str]:
    return [z.strip() for z in raw.split(",") if z.strip()]


async def handle_metros(credentials: Credentials) -> None:
    metros = await MetroDirectoryService().login_and_list_metros(credentials)
    for metro in metros:
        print(
            f"{metro.id!s:>6}  {metro.name:<30} {metro.market_type:<10} "
            f"{metro.active_properties:>5} props  {metro.supported_zipcode_count:>4} zips"
        )
    logger.info(f"{len(metros)} metro areas")


async def handle_zipcodes(credentials: Credentials, metro_id: str) -> None:
    detail = await MetroDirectoryService().fetch_metro_detail(credentials, metro_id)
    stats = detail.stats
    print(f"{detail.name} ({detail.market_type})")
    print(
        f"  occupancy={stats.average_occupancy}%  shared=${stats.shared_bathroom_price}/wk  "
        f"private=${stats.private_bathroom_price}/wk  first booking={stats.days_to_first_booking}d"
    )
    for zip_code in detail.zip_codes:
        print(f"  {zip_code}")


async def handle_scrape(credentials: Credentials, city: str, zip_codes: list[str], output_dir: Path) -> int:
    orchestrator = ScrapeOrchestrator()
    job_id = orchestrator.start(city, zip_codes, credentials)
    job = await orchestrator.wait(job_id)

    if job.status != JobStatus.COMPLETED:
        logger.error(f"Scrape job {job_id} failed: {job.error}")
        return 1

    report = export_job(job)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / report.filename
    path.write_bytes(report.content)
    logger.success(f"Wrote {len(job.results)} rows to {path}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="PadSplit Market Insights")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--web", action="store_true", help="Start web server")
    mode.add_argument("--metros", action="store_true", help="List metro areas")
    mode.add_argument("--zipcodes", metavar="METRO_ID", help="Show zip codes for a metro area")
    mode.add_argument("--scrape", metavar="CITY", help="Scrape zip codes for CITY")
    parser.add_argument("--zips", default="", help="Comma-separated zip codes (with --scrape)")
    parser.add_argument("--output", type=Path, default=config.EXPORT_DIR, help="Directory for the Excel report")
    parser.add_argument("--port", type=int, default=config.WEB_PORT)
    args = parser.parse_args()

    setup_default_logging()

    if args.web:
        import uvicorn
        uvicorn.run("app.web.main:app", host=config.WEB_HOST, port=args.port)
        return 0

    credentials = load_credentials()
    try:
        if args.metros:
            asyncio.run(handle_metros(credentials))
        elif args.zipcodes:
            asyncio.run(handle_zipcodes(credentials, args.zipcodes))
        else:
            try:
                zip_codes = normalize_zip_codes(parse_zip_list(args.zips))
            except ValueError as exc:
                parser.error(f"--zips: {exc}")
            return asyncio.run(handle_scrape(credentials, args.scrape, zip_codes, args.output))
    except PadSplitError as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
