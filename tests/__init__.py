import csv
from pathlib import Path
from typing import Iterable, Sequence

from rangetools.ranges import GenomeRanges


def write_bed(path: Path, rows: Iterable[Sequence]) -> Path:
    """Write rows to a tab-delimited file.
    """
    with open(path, "wt") as out:
        writer = csv.writer(out, delimiter="\t", lineterminator="\n")
        for row in rows:
            writer.writerow(row)
    return path


def ranges(*intervals: Sequence, **columns: Sequence) -> GenomeRanges:
    """
    Shorthand for building a GenomeRanges in tests.

    Args:
        intervals: Tuples of (seqname, start, end[, strand]).
        columns: Attribute values, one sequence per attribute, with one value per
            interval.
    """
    rows = []
    for i, ivl in enumerate(intervals):
        row = dict(zip(("seqname", "start", "end", "strand"), ivl))
        row.update((name, values[i]) for name, values in columns.items())
        rows.append(row)
    return GenomeRanges.from_rows(rows)
