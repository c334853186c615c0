"""Formatters that shape a data table's raw rows for step handlers.

Each formatter takes the table as a list of rows (lists of cell strings) and
returns a new structure; the table itself is never modified. Pass a formatter
to ``DataTable.formatted`` or call it directly on ``table.rows``.
"""

from __future__ import annotations

from typing import Sequence

Rows = Sequence[Sequence[str]]


class DataTableFormatError(ValueError):
    """Raised when a table does not have the shape a formatter requires."""


def first_row_as_keys(rows: Rows) -> list[dict[str, str]]:
    """Use the first row as keys and turn every other row into a record.

    | name | age |
    | Ann  | 31  |   ->   [{"name": "Ann", "age": "31"}]
    """
    if not rows:
        raise DataTableFormatError(
            "Can't format DataTable with FirstRowAsKeys because the table contains no rows"
        )
    keys, values = list(rows[0]), rows[1:]
    if any(len(row) != len(keys) for row in values):
        raise DataTableFormatError(
            "Can't format DataTable with FirstRowAsKeys because not all the rows "
            "have the same number of values"
        )
    return [dict(zip(keys, row)) for row in values]


def first_column_as_keys(rows: Rows) -> dict[str, list[str]]:
    """Use each row's first cell as the key for the remaining cells."""
    if any(len(row) < 2 for row in rows):
        raise DataTableFormatError(
            "Can't format DataTable with FirstColumnAsKeys because one or more rows "
            "have no values after the key"
        )
    return {row[0]: list(row[1:]) for row in rows}


def first_column_as_keys_and_first_row_as_property_names(
    rows: Rows,
) -> dict[str, dict[str, str]]:
    """Key records by first column, naming their properties by the first row.

    | id | name | age |
    | a1 | Ann  | 31  |   ->   {"a1": {"name": "Ann", "age": "31"}}
    """
    if not rows:
        raise DataTableFormatError(
            "Can't format DataTable with FirstColumnAsKeysAndFirstRowAsPropertyNames "
            "because the table contains no rows"
        )
    header, values = list(rows[0]), rows[1:]
    if any(len(row) != len(header) for row in values):
        raise DataTableFormatError(
            "Can't format DataTable with FirstColumnAsKeysAndFirstRowAsPropertyNames "
            "because not all the rows have the same number of values"
        )
    if values and len(header) < 2:
        raise DataTableFormatError(
            "Can't format DataTable with FirstColumnAsKeysAndFirstRowAsPropertyNames "
            "because one or more rows have no values after the key"
        )
    return {row[0]: dict(zip(header[1:], row[1:])) for row in values}


def key_value_map(rows: Rows) -> dict[str, str]:
    """Turn two-cell rows into a single key -> value mapping."""
    if any(len(row) != 2 for row in rows):
        raise DataTableFormatError(
            "Can't format DataTable with KeyValueMap because not all the rows have "
            "exactly 2 values (key, value)"
        )
    return {row[0]: row[1] for row in rows}


def as_list(rows: Rows) -> list[str]:
    """Flatten every cell, row by row."""
    return [cell for row in rows for cell in row]
