"""
Row filter pipeline

Reads a bare data file and writes, for each filter, the records that
match it. Every filter is an independent full scan of the input; the
input file is never modified.
"""
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .exceptions import ConfigurationError, MissingInputError
from .predicates import Predicate

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Bytes that do not decode are carried through unchanged
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


@dataclass
class FilterJob:
    """A predicate and the file its matches go to"""
    name: str
    predicate: Predicate
    output_path: Path


@dataclass
class FilterResult:
    """Outcome of one filter pass"""
    name: str
    output_path: Path
    rows_scanned: int
    rows_matched: int

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["output_path"] = str(self.output_path)
        return data


def iter_records(path: PathLike) -> Iterator[str]:
    """Yield records with their original line terminators"""
    with open(path, "r", encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as f:
        for record in f:
            yield record


class RowFilterPipeline:
    """Applies a set of filters to one dataset"""

    def __init__(self, log: Optional[logging.Logger] = None):
        """
        Initialize pipeline

        Args:
            log: Logger receiving progress messages (default: module logger)
        """
        self.log = log or logger

    def run(self, input_path: PathLike, jobs: List[FilterJob]) -> List[FilterResult]:
        """
        Run every filter over the input

        Args:
            input_path: Bare data file
            jobs: Filters to apply, in order

        Returns:
            One FilterResult per job

        Raises:
            MissingInputError: Input does not exist; nothing is written
            ConfigurationError: Two jobs share an output or a job would overwrite the input
        """
        input_path = Path(input_path)
        if not input_path.is_file():
            raise MissingInputError(f"Input dataset not found: {input_path}")

        self._check_outputs(input_path, jobs)

        self.log.info("Begin filtering...")
        results = [self.apply(input_path, job) for job in jobs]

        total = sum(r.rows_matched for r in results)
        self.log.info(f"Filtering complete: {len(results)} filters, {total} rows written")
        return results

    def apply(self, input_path: PathLike, job: FilterJob) -> FilterResult:
        """
        Write records of ``input_path`` matching ``job.predicate``

        An existing file at the output path is replaced.

        Args:
            input_path: Bare data file
            job: Filter to apply

        Returns:
            Counts for this pass
        """
        self.log.info(
            f"Filtering on {job.predicate.describe()}, writing to {job.output_path}"
        )

        output_path = Path(job.output_path)
        tmp_path = output_path.with_name(output_path.name + ".tmp")
        scanned = 0
        matched = 0

        try:
            with open(
                tmp_path, "w", encoding=ENCODING, errors=ENCODING_ERRORS, newline=""
            ) as out:
                for record in iter_records(input_path):
                    scanned += 1
                    if not job.predicate(record):
                        continue
                    if not record.endswith("\n"):
                        record += "\n"
                    out.write(record)
                    matched += 1
            os.replace(tmp_path, output_path)
        except BaseException:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

        self.log.info(f"{job.name}: {matched}/{scanned} rows matched")
        return FilterResult(
            name=job.name,
            output_path=output_path,
            rows_scanned=scanned,
            rows_matched=matched,
        )

    def _check_outputs(self, input_path: Path, jobs: List[FilterJob]) -> None:
        seen = {}
        for job in jobs:
            resolved = Path(job.output_path).resolve()
            if resolved == input_path.resolve():
                raise ConfigurationError(
                    f"Filter '{job.name}' would overwrite its input {input_path}"
                )
            if resolved in seen:
                raise ConfigurationError(
                    f"Filters '{seen[resolved]}' and '{job.name}' write to the same file"
                )
            seen[resolved] = job.name
