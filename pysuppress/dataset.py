"""
This module provides the dataset handle consumed by the estimators.

A SuppressedDataset wraps a pandas DataFrame whose cells are either ordinary
string values or the SUPPRESSED marker produced by cell suppression.
"""
import numpy as np
import pandas as pd
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
from pysuppress.errors import UnknownAttributeError


class Marker(Enum):
    """Reserved cell values that are not part of any attribute's domain."""

    SUPPRESSED = "*"

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return "SUPPRESSED"


# Never compares equal to a string, not even to a literal "*"
SUPPRESSED = Marker.SUPPRESSED


class SuppressedDataset:
    """
    Read-only handle over a (possibly) cell-suppressed table.

    Columns are addressed by position, as query predicates are keyed by
    column index. Values are kept as Python objects so that the SUPPRESSED
    sentinel can live next to ordinary strings in the same column.

    Attributes:
        data (pd.DataFrame): The underlying frame (object dtype, RangeIndex).
    """

    def __init__(self, data: pd.DataFrame):
        """Initialize the handle with a copy of the given frame."""
        duplicated = data.columns[data.columns.duplicated()].tolist()
        if duplicated:
            raise ValueError(f"Duplicate column names in DataFrame: {duplicated}")
        self.data = data.reset_index(drop=True).astype(object)
        self._index_of = {name: i for i, name in enumerate(self.data.columns)}

    @classmethod
    def from_frame(cls, df: pd.DataFrame, marker: Optional[str] = "*") -> "SuppressedDataset":
        """Convert every cell to a string and replace the literal marker with SUPPRESSED."""
        frame = df.astype(str)
        if marker is not None:
            frame = frame.map(lambda value: SUPPRESSED if value == marker else value)
        return cls(frame)

    @classmethod
    def from_csv(cls, path, sep: str = ";", marker: Optional[str] = "*") -> "SuppressedDataset":
        """Load a delimited file, keeping every value as a string."""
        df = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=False)
        return cls.from_frame(df, marker=marker)

    @property
    def num_rows(self) -> int:
        return len(self.data)

    @property
    def num_columns(self) -> int:
        return len(self.data.columns)

    @property
    def columns(self) -> List[str]:
        return list(self.data.columns)

    def get_column_index_of(self, attribute: str) -> int:
        """Return the position of the named column."""
        try:
            return self._index_of[attribute]
        except KeyError:
            raise UnknownAttributeError(f"Unknown attribute: {attribute!r}") from None

    def get_attribute_name(self, column: int) -> str:
        self._check_column(column)
        return self.data.columns[column]

    def column(self, column: int) -> pd.Series:
        """Return the values of one column as a Series."""
        self._check_column(column)
        return self.data.iloc[:, column]

    def get_value(self, row: int, column: int) -> Any:
        self._check_column(column)
        if not 0 <= row < self.num_rows:
            raise IndexError(f"Row {row} out of range for dataset with {self.num_rows} rows")
        return self.data.iat[row, column]

    def get_distinct_values(self, column: int) -> List[Any]:
        """Distinct values of a column in order of first appearance (not sorted)."""
        return list(pd.unique(self.column(column)))

    def get_frequency_distribution(self, column: int) -> Dict[Any, float]:
        """Map each observed value, SUPPRESSED included, to its share of the rows."""
        counts = self.column(column).value_counts(normalize=True, sort=False, dropna=False)
        return {value: float(frequency) for value, frequency in counts.items()}

    def iterator(self) -> Iterator[Tuple[Any, ...]]:
        """Lazily yield rows as tuples."""
        return self.data.itertuples(index=False, name=None)

    def _check_column(self, column: Union[int, Any]):
        if not isinstance(column, (int, np.integer)) or not 0 <= column < self.num_columns:
            raise UnknownAttributeError(f"Unknown column index: {column!r}")

    def __len__(self) -> int:
        return self.num_rows

    def __repr__(self) -> str:
        return f"SuppressedDataset(rows={self.num_rows}, columns={self.columns})"
