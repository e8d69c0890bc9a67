"""Bates sequence allocation and label formatting.

Bates format: {PREFIX}-{SEQUENCE_NUMBER} where the sequence is zero-padded to
BATES_NUMBER_WIDTH digits (ABC-000001). The width is fixed; numbers past
999999 render with more digits rather than being truncated. Labels appear in
court filings, so the format must stay bit-exact.

allocate() is pure. The caller persists the new high-water mark in the same
transaction as the record receiving the range.
"""

import re
from dataclasses import dataclass

from discoverease_bates.errors import InvalidArgumentError

BATES_NUMBER_WIDTH = 6

_PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]{0,31}$")
_LABEL_SUFFIX_PATTERN = re.compile(r"-(\d+)$")


@dataclass(frozen=True)
class BatesAllocation:
    """A contiguous block of Bates numbers.

    Attributes:
        start_label: Formatted label of the first number in the block.
        end_label: Formatted label of the last number in the block.
        start_number: First number in the block.
        end_number: Last number in the block.
        high_water_mark: Counter value to persist (equal to end_number).
    """

    start_label: str
    end_label: str
    start_number: int
    end_number: int
    high_water_mark: int

    @property
    def count(self) -> int:
        return self.end_number - self.start_number + 1


def validate_prefix(prefix: str | None) -> str:
    """Check that a Bates prefix is usable in labels.

    Args:
        prefix: Prefix exactly as stored on the case or production set.

    Returns:
        The prefix, unchanged.

    Raises:
        InvalidArgumentError: If the prefix is empty or malformed.
    """
    if not prefix or not _PREFIX_PATTERN.match(prefix):
        raise InvalidArgumentError(
            f"Invalid Bates prefix {prefix!r}: use 1-32 letters, digits, '_', '.' or '-', "
            "starting with a letter or digit"
        )
    return prefix


def format_bates_label(prefix: str, number: int) -> str:
    """Format a Bates label.

    Args:
        prefix: Bates prefix (e.g. "ABC").
        number: Sequence number, 1 or greater.

    Returns:
        Formatted label (e.g. "ABC-000001").
    """
    return f"{prefix}-{number:0{BATES_NUMBER_WIDTH}d}"


def parse_bates_label(label: str) -> tuple[str, int]:
    """Split a Bates label into prefix and number.

    Args:
        label: Formatted label such as "ABC-000042".

    Returns:
        Tuple of (prefix, number).

    Raises:
        InvalidArgumentError: If the label has no trailing numeric suffix.
    """
    match = _LABEL_SUFFIX_PATTERN.search(label)
    if match is None:
        raise InvalidArgumentError(f"Bates label {label!r} has no numeric suffix")
    return label[: match.start()], int(match.group(1))


def allocate(current_high_water_mark: int, prefix: str, count: int) -> BatesAllocation:
    """Compute the next contiguous block of Bates numbers.

    Args:
        current_high_water_mark: Last number already issued (0 if none).
        prefix: Bates prefix, used verbatim. Only emptiness is checked here.
        count: Number of identifiers to issue.

    Returns:
        BatesAllocation covering current_high_water_mark + 1 through
        current_high_water_mark + count.

    Raises:
        InvalidArgumentError: If count < 1, the high-water mark is negative,
            or the prefix is empty.
    """
    if not prefix:
        raise InvalidArgumentError("Bates prefix is required for allocation")
    if count < 1:
        raise InvalidArgumentError(f"Bates allocation count must be at least 1, got {count}")
    if current_high_water_mark < 0:
        raise InvalidArgumentError(f"Bates high-water mark cannot be negative, got {current_high_water_mark}")

    start_number = current_high_water_mark + 1
    end_number = current_high_water_mark + count
    return BatesAllocation(
        start_label=format_bates_label(prefix, start_number),
        end_label=format_bates_label(prefix, end_number),
        start_number=start_number,
        end_number=end_number,
        high_water_mark=end_number,
    )
