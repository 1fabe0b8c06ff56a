"""
Filter orchestrator

Main entry point for the filter service.
Coordinates cleaning, filtering and run logging.
"""
import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .cleaner import Cleaner, create_cleaner
from .config import FilterSettings, get_settings, resolve_filters
from .exceptions import MissingInputError, WeatherFilterError
from .logging_config import configure_run_logging
from .pipeline import FilterJob, RowFilterPipeline

logger = logging.getLogger(__name__)

EXAMPLE_INPUT = "../data/smhi-opendata_1_52240_20200905_163726.csv"


class FilterOrchestrator:
    """Orchestrates cleaning and filtering of one dataset"""

    def __init__(self, settings: FilterSettings, cleaner: Optional[Cleaner] = None):
        """
        Initialize orchestrator

        Args:
            settings: Service settings
            cleaner: Cleaning collaborator (default: built from settings)
        """
        self.settings = settings
        self.cleaner = cleaner or create_cleaner(
            settings.cleaner,
            script=settings.cleaner_script,
            bare_prefix=settings.bare_prefix,
        )
        self.pipeline = RowFilterPipeline(log=logger)

    def build_jobs(self, input_path: Path) -> List[FilterJob]:
        """
        Map configured filters to output files for this input

        Args:
            input_path: Original (uncleaned) input path

        Returns:
            Filter jobs writing into the output directory
        """
        datafile = input_path.name
        filters = resolve_filters(self.settings, datafile)
        output_dir = Path(self.settings.output_dir)
        return [
            FilterJob(
                name=definition.name,
                predicate=definition.build_predicate(),
                output_path=output_dir / definition.output_name(datafile),
            )
            for definition in filters
        ]

    def run(
        self,
        input_path: Path,
        jobs: Optional[List[FilterJob]] = None
    ) -> Dict[str, object]:
        """
        Clean the input and run all filters on the bare data

        Args:
            input_path: Original input path
            jobs: Filter jobs from build_jobs (default: built here)

        Returns:
            Run summary
        """
        input_path = Path(input_path)
        start_time = datetime.now()

        # Fail on bad filter config before running the cleaner
        if jobs is None:
            jobs = self.build_jobs(input_path)

        if not input_path.is_file():
            raise MissingInputError(f"Input file not found: {input_path}")

        bare_path = self.cleaner.clean(input_path)
        results = self.pipeline.run(bare_path, jobs)

        duration = (datetime.now() - start_time).total_seconds()
        return {
            "input_path": str(input_path),
            "bare_data_path": str(bare_path),
            "filters": [r.to_dict() for r in results],
            "processing_time_seconds": duration,
            "started_at": start_time.isoformat(),
            "status": "success",
        }


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weather-filter",
        description="Filter cleaned SMHI weather observations into derived files",
        epilog=f"Example: weather-filter '{EXAMPLE_INPUT}'",
    )
    parser.add_argument(
        "input_path",
        nargs="?",
        help="Path to the SMHI data file"
    )
    parser.add_argument(
        "--config",
        dest="filters_file",
        default=None,
        help="YAML file with filter definitions (default: built-in filters)"
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for filtered files (default: current directory)"
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for the run log (default: current directory)"
    )
    parser.add_argument(
        "--cleaner",
        default=None,
        choices=["script", "builtin"],
        help="Cleaning collaborator (default: script)"
    )
    parser.add_argument(
        "--cleaner-script",
        default=None,
        help="Cleaning script for --cleaner script (default: smhicleaner.sh)"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI"""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if not args.input_path:
        print("Missing input file parameter, exiting", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    try:
        settings = get_settings(
            filters_file=args.filters_file,
            output_dir=args.output_dir,
            log_dir=args.log_dir,
            cleaner=args.cleaner,
            cleaner_script=args.cleaner_script,
        )
        orchestrator = FilterOrchestrator(settings)
        input_path = Path(args.input_path)

        # Config and collaborator problems leave no files behind
        jobs = orchestrator.build_jobs(input_path)
        orchestrator.cleaner.check_available()
        configure_run_logging(settings.log_dir, settings.run_name, settings.log_level)

        results = orchestrator.run(input_path, jobs)
    except WeatherFilterError as e:
        logger.error(f"{e}, exiting")
        return 1
    except ValueError as e:
        # pydantic ValidationError for bad settings
        logger.error(f"Invalid configuration: {e}")
        return 1

    print(json.dumps(results, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
