"""Input contract checks for readings."""

from typing import Any, Iterable, Mapping, Sequence

from pydantic import ValidationError

from ..exceptions import InputValidationError
from ..models import Reading

TIER_FIELDS = ("yellow", "red", "dark_red")


def check_reading(reading: Reading) -> None:
    """Reject readings with negative tier counts."""
    for name in TIER_FIELDS:
        value = getattr(reading, name)
        if value < 0:
            raise InputValidationError(
                f"negative {name} count {value} at {reading.ts.isoformat()}",
                cell=reading.cell,
            )


def check_readings(readings: Iterable[Reading]) -> None:
    """Reject the first reading in readings with a negative tier count."""
    for reading in readings:
        check_reading(reading)


def validate_series(series: Sequence[Reading]) -> None:
    """Check that a series belongs to one cell and is ordered by timestamp.

    Equal timestamps are accepted; a timestamp earlier than its predecessor
    is not. Nothing is repaired.

    Raises:
        InputValidationError: on the first violation found.
    """
    previous: Reading | None = None
    for reading in series:
        check_reading(reading)
        if previous is not None:
            if reading.cell != previous.cell:
                raise InputValidationError(
                    f"series mixes cells {previous.cell} and {reading.cell}",
                    cell=previous.cell,
                )
            if reading.ts < previous.ts:
                raise InputValidationError(
                    f"timestamp {reading.ts.isoformat()} precedes "
                    f"{previous.ts.isoformat()}",
                    cell=reading.cell,
                )
        previous = reading


def readings_from_rows(rows: Iterable[Mapping[str, Any]]) -> list[Reading]:
    """Parse raw rows (x, y, ts, yellow, red, dark_red) into checked readings."""
    readings = []
    for index, row in enumerate(rows):
        try:
            reading = Reading.model_validate(row)
        except ValidationError as e:
            raise InputValidationError(f"row {index} is malformed: {e}") from e
        check_reading(reading)
        readings.append(reading)
    return readings
