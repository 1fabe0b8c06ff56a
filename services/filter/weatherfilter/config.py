"""
Configuration for filter service

Settings come from the environment (prefix WEATHERFILTER_) or a .env file.
The filter set maps each filter name to its predicate and output file name;
it can be replaced by a YAML file and is validated before any work starts.
"""
import logging
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError
from .predicates import Predicate, SubstringPredicate, ThresholdPredicate

logger = logging.getLogger(__name__)


class FilterDefinition(BaseModel):
    """One named filter and the file it writes to"""

    name: str
    kind: Literal["substring", "threshold"]
    pattern: Optional[str] = None
    field_index: Optional[int] = None
    threshold: float = 0.0
    delimiter: Optional[str] = None
    output_template: str = "{name}_filtered_{datafile}"

    @model_validator(mode="after")
    def check_kind_arguments(self) -> "FilterDefinition":
        if not self.name or "/" in self.name:
            raise ValueError(f"Invalid filter name: {self.name!r}")
        if self.kind == "substring" and not self.pattern:
            raise ValueError(f"Filter '{self.name}' needs a non-empty pattern")
        if self.kind == "threshold":
            if self.field_index is None or self.field_index < 0:
                raise ValueError(f"Filter '{self.name}' needs field_index >= 0")
        return self

    def build_predicate(self) -> Predicate:
        """Create the predicate this definition describes"""
        if self.kind == "substring":
            return SubstringPredicate(self.pattern)
        return ThresholdPredicate(
            self.field_index,
            threshold=self.threshold,
            delimiter=self.delimiter
        )

    def output_name(self, datafile: str) -> str:
        """
        Render the output file name

        Args:
            datafile: Base name of the original input file

        Returns:
            File name (no directory part)
        """
        try:
            rendered = self.output_template.format(name=self.name, datafile=datafile)
        except (KeyError, IndexError, AttributeError, ValueError) as e:
            raise ConfigurationError(
                f"Bad output_template for filter '{self.name}': {e}"
            ) from e
        if not rendered or Path(rendered).name != rendered:
            raise ConfigurationError(
                f"Output name for filter '{self.name}' must be a plain file name, "
                f"got {rendered!r}"
            )
        return rendered


DEFAULT_FILTERS = [
    FilterDefinition(name="onlyat13", kind="substring", pattern="13:00:00"),
    FilterDefinition(name="april", kind="substring", pattern="-04-"),
    FilterDefinition(name="onlynegative", kind="threshold", field_index=2, threshold=0.0),
]


class FilterSettings(BaseSettings):
    """Filter service configuration"""

    # Where outputs and logs go (default: current working directory)
    output_dir: Path = Path(".")
    log_dir: Path = Path(".")
    run_name: str = "weatherfilter"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Cleaning collaborator
    cleaner: Literal["script", "builtin"] = "script"
    cleaner_script: Path = Path("smhicleaner.sh")
    bare_prefix: str = "baredata_"

    # Optional YAML file replacing DEFAULT_FILTERS
    filters_file: Optional[Path] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    class Config:
        env_prefix = "WEATHERFILTER_"
        env_file = ".env"
        env_file_encoding = "utf-8"


def get_settings(**overrides) -> FilterSettings:
    """Get settings instance, with explicit values taking precedence over env"""
    cleaned = {k: v for k, v in overrides.items() if v is not None}
    return FilterSettings(**cleaned)


def load_filter_file(path: Path) -> List[FilterDefinition]:
    """
    Load filter definitions from YAML

    Expected layout::

        filters:
          - name: onlyat13
            kind: substring
            pattern: "13:00:00"

    Args:
        path: YAML file path

    Returns:
        List of filter definitions
    """
    logger.info(f"Loading filter definitions from {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read filter file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("filters"), list):
        raise ConfigurationError(f"{path} must contain a 'filters' list")

    try:
        return [FilterDefinition(**entry) for entry in document["filters"]]
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid filter definition in {path}: {e}") from e


def resolve_filters(settings: FilterSettings, datafile: str) -> List[FilterDefinition]:
    """
    Pick the filter set for a run and validate it

    Names and rendered output names must be unique; otherwise two filters
    would overwrite each other's output.

    Args:
        settings: Service settings
        datafile: Base name of the original input file

    Returns:
        Validated filter definitions
    """
    if settings.filters_file is not None:
        filters = load_filter_file(settings.filters_file)
    else:
        filters = list(DEFAULT_FILTERS)

    if not filters:
        raise ConfigurationError("No filters configured")

    names = [f.name for f in filters]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate filter names: {duplicates}")

    outputs = [f.output_name(datafile) for f in filters]
    duplicates = sorted({o for o in outputs if outputs.count(o) > 1})
    if duplicates:
        raise ConfigurationError(f"Filters share output files: {duplicates}")

    bare_name = f"{settings.bare_prefix}{datafile}"
    if bare_name in outputs:
        raise ConfigurationError(f"A filter output would overwrite the bare data file {bare_name}")

    logger.info(f"Using {len(filters)} filters: {names}")
    return filters
