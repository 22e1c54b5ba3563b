import argparse
import sys
from typing import List, Optional

from aqmonitor.config.config import config
from aqmonitor.config.logger import logger
from aqmonitor.errors import AirQualityError
from aqmonitor.etl.pipeline import AirQualityPipeline
from aqmonitor.insights import report
from aqmonitor.insights.queries import DEFAULT_AVERAGE_DAYS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="OpenAQ country air quality monitor")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database schema")

    import_parser = subparsers.add_parser(
        "import", help="Import measurements for every supported country"
    )
    import_parser.add_argument("--days", type=int, default=7, help="Days of history to import")
    import_parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Keep importing other countries after a database failure",
    )
    import_parser.add_argument("--seed", type=int, help="Seed for the synthetic fallback data")

    subparsers.add_parser("most-polluted", help="Most polluted country over the last 2 days")

    average_parser = subparsers.add_parser("average", help="Average air quality for a country")
    average_parser.add_argument("--country", required=True, help="ISO alpha-2 country code")
    average_parser.add_argument("--days", type=int, default=DEFAULT_AVERAGE_DAYS)

    measurements_parser = subparsers.add_parser(
        "measurements", help="Most recent measurements for a country"
    )
    measurements_parser.add_argument("--country", required=True, help="ISO alpha-2 country code")

    latest_parser = subparsers.add_parser("latest", help="Latest measurements per city")
    latest_parser.add_argument("--country", required=True, help="ISO alpha-2 country code")

    return parser


def run(args: argparse.Namespace, pipeline: AirQualityPipeline) -> None:
    if args.command == "init-db":
        pipeline.init_schema()
    elif args.command == "import":
        pipeline.init_schema()
        results = pipeline.import_range(args.days, continue_on_error=args.continue_on_error)
        report.report_import(results)
    elif args.command == "most-polluted":
        report.report_most_polluted(pipeline.most_polluted_country())
    elif args.command == "average":
        report.report_average(pipeline.average_for_country(args.country, args.days), args.days)
    elif args.command == "measurements":
        country = args.country.strip().upper()
        report.report_measurements(country, pipeline.measurements_for_country(country))
    elif args.command == "latest":
        country = args.country.strip().upper()
        report.report_latest_by_city(country, pipeline.latest_measurements_by_city(country))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    pipeline = None
    try:
        # Only the import needs the API key
        config.validate(require_api_key=args.command == "import")
        pipeline = AirQualityPipeline.from_config(config, seed=getattr(args, "seed", None))
        run(args, pipeline)
    except AirQualityError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    finally:
        if pipeline:
            pipeline.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
