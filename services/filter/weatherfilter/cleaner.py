"""
Cleaning collaborators

Turn a raw SMHI open-data export into bare data: one observation per line,
fields separated by single spaces (date, time, value, quality flag).
The filter pipeline only consumes the bare data file a cleaner returns.
"""
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Union

from .exceptions import (
    MissingInputError,
    PrerequisiteFailedError,
    PrerequisiteMissingError,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# First column header of the data table in SMHI exports
SMHI_DATA_HEADER = "Datum;Tid (UTC)"
SMHI_DATA_COLUMNS = 4


class Cleaner:
    """Interface: clean(input_path) -> path of the bare data file"""

    def __init__(self, workdir: Optional[PathLike] = None, bare_prefix: str = "baredata_"):
        self.workdir = Path(workdir) if workdir is not None else Path.cwd()
        self.bare_prefix = bare_prefix

    def bare_data_path(self, input_path: PathLike) -> Path:
        """Path where bare data for ``input_path`` is written"""
        return self.workdir / f"{self.bare_prefix}{Path(input_path).name}"

    def check_available(self) -> None:
        """Raise PrerequisiteMissingError if the cleaner cannot run"""

    def clean(self, input_path: PathLike) -> Path:
        raise NotImplementedError


class ScriptCleaner(Cleaner):
    """Runs an external cleaning script with the input path as its only argument"""

    def __init__(
        self,
        script: PathLike,
        workdir: Optional[PathLike] = None,
        bare_prefix: str = "baredata_",
        timeout: Optional[int] = None
    ):
        """
        Initialize cleaner

        Args:
            script: Cleaning script; relative paths resolve against workdir
            workdir: Directory the script runs in and writes bare data to
            bare_prefix: File name prefix of the bare data the script writes
            timeout: Seconds before the script is killed (None waits forever)
        """
        super().__init__(workdir, bare_prefix)
        script = Path(script)
        self.script = script if script.is_absolute() else self.workdir / script
        self.timeout = timeout

    def check_available(self) -> None:
        if not self.script.is_file():
            raise PrerequisiteMissingError(
                f"{self.script.name} script not found in {self.script.parent}. Cannot continue."
            )

    def clean(self, input_path: PathLike) -> Path:
        """
        Run the cleaning script

        Args:
            input_path: Raw dataset path

        Returns:
            Path to the bare data file

        Raises:
            PrerequisiteMissingError: Script missing or not executable
            PrerequisiteFailedError: Script exited non-zero or wrote no bare data
        """
        self.check_available()

        logger.info(f"Calling {self.script.name} script")

        try:
            result = subprocess.run(
                [str(self.script), str(input_path)],
                cwd=self.workdir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except OSError as e:
            raise PrerequisiteMissingError(f"Cannot execute {self.script}: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise PrerequisiteFailedError(
                f"{self.script.name} timed out after {self.timeout}s"
            ) from e

        if result.returncode != 0:
            stderr_tail = (result.stderr or "").strip()[-500:]
            raise PrerequisiteFailedError(
                f"{self.script.name} failed with exit code {result.returncode}: {stderr_tail}"
            )

        bare_path = self.bare_data_path(input_path)
        if not bare_path.is_file():
            raise PrerequisiteFailedError(
                f"{self.script.name} succeeded but {bare_path} was not created"
            )

        logger.info(f"Bare data ready: {bare_path}")
        return bare_path


class SMHICleaner(Cleaner):
    """In-process cleaner for SMHI open-data CSV exports"""

    def clean(self, input_path: PathLike) -> Path:
        """
        Extract the observation table from an SMHI export

        Lines before the ``Datum;Tid (UTC);...`` header are metadata and
        are dropped. Of each data row only the first four columns are kept;
        the trailing columns carry period notes.

        Args:
            input_path: SMHI CSV export

        Returns:
            Path to the bare data file
        """
        input_path = Path(input_path)
        if not input_path.is_file():
            raise MissingInputError(f"Input file not found: {input_path}")

        logger.info(f"Cleaning {input_path} with built-in SMHI cleaner")

        bare_path = self.bare_data_path(input_path)
        rows = []
        header_found = False

        with open(input_path, "r", encoding="utf-8-sig", errors="replace") as f:
            for line in f:
                if not header_found:
                    header_found = line.startswith(SMHI_DATA_HEADER)
                    continue
                fields = [field.strip() for field in line.rstrip("\r\n").split(";")]
                if not any(fields):
                    continue
                rows.append(" ".join(fields[:SMHI_DATA_COLUMNS]).rstrip())

        if not header_found:
            raise PrerequisiteFailedError(
                f"No '{SMHI_DATA_HEADER}' header in {input_path}, not an SMHI export?"
            )

        tmp_path = bare_path.with_name(bare_path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8", newline="\n") as out:
            for row in rows:
                out.write(row + "\n")
        os.replace(tmp_path, bare_path)

        logger.info(f"Wrote {len(rows)} rows of bare data to {bare_path}")
        return bare_path


def create_cleaner(
    kind: str,
    script: PathLike = "smhicleaner.sh",
    workdir: Optional[PathLike] = None,
    bare_prefix: str = "baredata_"
) -> Cleaner:
    """
    Factory function to create a cleaner instance

    Args:
        kind: 'script' or 'builtin'
        script: Cleaning script for kind 'script'
        workdir: Directory for bare data
        bare_prefix: Bare data file name prefix

    Returns:
        Cleaner instance
    """
    if kind == "script":
        return ScriptCleaner(script, workdir=workdir, bare_prefix=bare_prefix)
    if kind == "builtin":
        return SMHICleaner(workdir=workdir, bare_prefix=bare_prefix)
    raise ValueError(f"Unknown cleaner kind: {kind}. Must be 'script' or 'builtin'")
