"""
Record predicates

A record is one line of bare data, e.g. ``1961-01-01 06:00:00 -5.0 G``.
Predicates decide whether a record goes into a filtered output.
"""
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


def split_fields(record: str, delimiter: Optional[str] = None) -> List[str]:
    """
    Split a record into positional fields

    Args:
        record: One line of the dataset (line terminator allowed)
        delimiter: Field separator; None splits on runs of whitespace

    Returns:
        List of fields, stripped of surrounding whitespace
    """
    line = record.rstrip("\r\n")
    if delimiter is None:
        return line.split()
    return [field.strip() for field in line.split(delimiter)]


class Predicate:
    """Base class for record predicates"""

    def __call__(self, record: str) -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError


class SubstringPredicate(Predicate):
    """
    Matches records containing a literal anywhere in their text.

    This is deliberately not a field match: ``13:00:00`` also matches a
    record where that text shows up in some other column.
    """

    def __init__(self, pattern: str):
        if not pattern:
            raise ValueError("Substring pattern must not be empty")
        self.pattern = pattern

    def __call__(self, record: str) -> bool:
        return self.pattern in record

    def describe(self) -> str:
        return f"records containing '{self.pattern}'"


class ThresholdPredicate(Predicate):
    """Matches records whose field at ``field_index`` is a number below ``threshold``"""

    def __init__(
        self,
        field_index: int,
        threshold: float = 0.0,
        delimiter: Optional[str] = None
    ):
        """
        Initialize predicate

        Args:
            field_index: 0-based position of the field to compare
            threshold: Exclusive upper bound
            delimiter: Field separator (None for whitespace)
        """
        if field_index < 0:
            raise ValueError(f"field_index must be >= 0, got {field_index}")
        self.field_index = field_index
        self.threshold = threshold
        self.delimiter = delimiter

    def __call__(self, record: str) -> bool:
        fields = split_fields(record, self.delimiter)

        if self.field_index >= len(fields):
            logger.debug(f"Record has no field {self.field_index}, excluded: {record!r}")
            return False

        try:
            value = float(fields[self.field_index])
        except ValueError:
            # Non-numeric fields never match
            logger.debug(
                f"Non-numeric field {self.field_index} excluded: "
                f"{fields[self.field_index]!r}"
            )
            return False

        return value < self.threshold

    def describe(self) -> str:
        return f"records with field {self.field_index} < {self.threshold:g}"
