"""
This module implements random query generation for the accuracy benchmarks.

Queries are conjunctive: a mapping from column index to the set of values
that column must take.
"""
import math
import numpy as np
from typing import Any, Dict, Iterable, Optional, Set
from pysuppress.dataset import SuppressedDataset

Query = Dict[int, Set[Any]]


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


class QueryGenerator:
    """
    Generate random point and range queries over a reference dataset.

    Values are drawn from the reference (usually the untransformed input), so
    every generated target value exists in at least one record.

    Range queries span an index range of a column's distinct-value list in
    the order the dataset reports it (first appearance). That order is not a
    semantic order of the attribute, so a range query is an approximation of
    a value range unless the data happens to be sorted.

    Attributes:
        dataset (SuppressedDataset): Dataset the queries are drawn from.
        random_state (np.random.Generator): Source of randomness.
    """

    def __init__(self,
                 dataset: SuppressedDataset,
                 seed: Optional[int] = None,
                 random_state: Optional[np.random.Generator] = None):
        """Initialize the generator; pass a seed or a Generator for reproducible queries."""
        if dataset.num_rows == 0:
            raise ValueError("Cannot generate queries over an empty dataset.")
        self.dataset = dataset
        self.random_state = random_state if random_state is not None else np.random.default_rng(seed)
        # Distinct values never change for the reference dataset
        self._distinct_values = {column: dataset.get_distinct_values(column)
                                 for column in range(dataset.num_columns)}

    def _select_record(self) -> int:
        """Pick a row index, clamped so that a draw of 1.0 still lands on the last row."""
        record = _round_half_up(self.random_state.random() * self.dataset.num_rows)
        return min(record, self.dataset.num_rows - 1)

    def point_query(self, attributes: Iterable[str], draw: bool = True) -> Query:
        """
        Create a query selecting exactly one value per attribute.

        With draw=True each attribute's value is drawn independently from its
        distinct values, so the combination need not occur in any record.
        With draw=False the values of one randomly selected record are used.
        """
        query: Query = {}
        record = self._select_record()
        for attribute in attributes:
            column = self.dataset.get_column_index_of(attribute)
            if draw:
                values = list(self._distinct_values[column])
                self.random_state.shuffle(values)
                query[column] = {values[0]}
            else:
                query[column] = {self.dataset.get_value(record, column)}
        return query

    def range_query(self, attributes: Iterable[str]) -> Query:
        """Create a query selecting a contiguous span of each attribute's distinct values."""
        query: Query = {}
        for attribute in attributes:
            column = self.dataset.get_column_index_of(attribute)
            values = self._distinct_values[column]
            lower = _round_half_up(self.random_state.random() * (len(values) - 1))
            upper = _round_half_up(self.random_state.random() * (len(values) - 1))
            if lower > upper:
                lower, upper = upper, lower
            query[column] = set(values[lower:upper + 1])
        return query
