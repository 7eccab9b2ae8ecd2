"""
This module provides helper functions for risk thresholds, utility and error metrics.

It includes functions to convert a risk threshold into a minimal class size,
to measure the fraction of suppressed cells, to enumerate attribute subsets,
and to calculate information loss, non-uniform entropy and relative errors.
"""
import math
import numpy as np
import pandas as pd
from typing import Any, FrozenSet, Iterable, Iterator, Sequence, Set
from pysuppress.dataset import SUPPRESSED, SuppressedDataset
from pysuppress.errors import EmptyInputError, InvalidArgumentError


def get_size_threshold(risk_threshold: float) -> int:
    """
    Return the minimal equivalence class size for the given risk threshold.

    A class of size k carries a re-identification risk of 1/k. The floor of
    1/threshold is bumped by one when its implied risk overshoots the
    threshold by 1% of the threshold or more, which also absorbs
    floating-point error in 1/threshold.
    """
    if not 0 < risk_threshold <= 1:
        raise InvalidArgumentError(f"Risk threshold must be in (0, 1], got {risk_threshold}")
    size = 1.0 / risk_threshold
    floor = math.trunc(size)
    if (1.0 / floor) - (1.0 / size) >= 0.01 * risk_threshold:
        floor += 1
    return int(floor)


def count_suppressed_cells(rows: Iterator[Sequence[Any]], marker: Any = SUPPRESSED) -> float:
    """
    Return the fraction of suppressed cells in a stream of rows.

    The iterator is consumed in a single pass; rows are not buffered.
    """
    suppressed_cells = 0
    num_cells = 0
    for row in rows:
        for value in row:
            num_cells += 1
            if value == marker:
                suppressed_cells += 1
    if num_cells == 0:
        raise EmptyInputError("Cannot count suppressed cells of an empty dataset.")
    return suppressed_cells / num_cells


def get_power_set(labels: Iterable[Any]) -> Set[FrozenSet[Any]]:
    """Return every subset of the given labels, the empty set included."""
    elements = list(dict.fromkeys(labels))
    subsets = set()
    for mask in range(1 << len(elements)):
        # Bit i of the mask selects elements[i]
        subsets.add(frozenset(e for i, e in enumerate(elements) if mask >> i & 1))
    return subsets


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-x))


def relative_error(exact: float, estimate: float) -> float:
    """Relative error of an estimate, defined as 0 for 0/0 and +inf when only the exact count is 0."""
    if exact == 0 and estimate == 0:
        return 0.0
    if exact == 0:
        return math.inf
    return abs(exact - estimate) / exact


def calculate_information_loss(
    original: SuppressedDataset,
    anonymized: SuppressedDataset,
    attributes: Iterable[str],
) -> float:
    """
    Calculate the information loss of a suppressed dataset over some attributes.

    This is 1 - granularity for single-level hierarchies: a cell loses all of
    its information when it is suppressed (or otherwise differs from the
    original) and none when it is unchanged. Losses are averaged per record
    over the attributes, then over the records.
    """
    if original.num_rows != anonymized.num_rows:
        raise ValueError("Original and anonymized datasets must have the same length.")

    attributes = list(attributes)
    if not attributes:
        raise InvalidArgumentError("At least one attribute is required to calculate information loss.")
    if original.num_rows == 0:
        raise EmptyInputError("Cannot calculate information loss of an empty dataset.")

    record_loss = np.zeros(original.num_rows)
    for attribute in attributes:
        before = original.column(original.get_column_index_of(attribute)).to_numpy()
        after = anonymized.column(anonymized.get_column_index_of(attribute)).to_numpy()
        suppressed = np.fromiter((value is SUPPRESSED for value in after), dtype=bool, count=len(after))
        # Maximum loss for suppressed or generalized cells
        record_loss += (suppressed | (before != after)).astype(float)

    return float((record_loss / len(attributes)).mean())


def calculate_non_uniform_entropy(
    original: SuppressedDataset,
    anonymized: SuppressedDataset,
    attributes: Iterable[str],
) -> float:
    """
    Calculate the non-uniform entropy of a suppressed dataset, in bits.

    Each cell contributes -log2(p), where p is the share of the cell's
    original value among the rows that share its output value. Suppressed
    cells share their output value with the whole column. Contributions are
    summed per attribute and averaged over the attributes; an unchanged
    dataset has entropy 0.
    """
    if original.num_rows != anonymized.num_rows:
        raise ValueError("Original and anonymized datasets must have the same length.")

    attributes = list(attributes)
    if not attributes:
        raise InvalidArgumentError("At least one attribute is required to calculate entropy.")
    if original.num_rows == 0:
        raise EmptyInputError("Cannot calculate entropy of an empty dataset.")

    entropies = []
    for attribute in attributes:
        before = original.column(original.get_column_index_of(attribute))
        after = anonymized.column(anonymized.get_column_index_of(attribute))
        frame = pd.DataFrame({"before": before.to_numpy(), "after": after.to_numpy(), "n": 1})
        # sort=False keeps SUPPRESSED and strings out of any comparison
        pair_size = frame.groupby(["after", "before"], sort=False)["n"].transform("sum").to_numpy()
        group_size = frame.groupby("after", sort=False)["n"].transform("sum").to_numpy()
        value_size = frame.groupby("before", sort=False)["n"].transform("sum").to_numpy()

        suppressed = after.isin([SUPPRESSED]).to_numpy()
        share = np.where(suppressed, value_size / len(frame), pair_size / group_size)
        entropies.append(float(-np.log2(share).sum()))

    return float(np.mean(entropies))
