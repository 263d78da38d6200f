from contextlib import contextmanager
import csv
import _csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Union

import pysam
from xphyle import open_
from xphyle.utils import read_delimited

from rangetools.intervals import GenomeInterval
from rangetools.ranges import GenomeRanges
from rangetools.utils import FileFormatError, Genome


logger = logging.getLogger(__name__)


BED_OPTIONAL_COLUMNS = ("name", "score", "strand")
"""Names of BED columns 4-6. Columns 7+ are named 'column_7', 'column_8', ..."""
SKIP_PREFIXES = ("#", "track", "browser")


def _parse_value(value: str) -> Any:
    if value == ".":
        return None
    for converter in (int, float):
        try:
            return converter(value)
        except ValueError:
            pass
    return value


def bed_row_to_dict(row: Sequence[str]) -> Dict[str, Any]:
    """
    Convert a BED row (0-based, half-open) into a canonical row (1-based, closed).

    Raises:
        FileFormatError if the row has fewer than three columns or non-integer
        coordinates.
    """
    if len(row) < 3:
        raise FileFormatError(f"BED row has fewer than 3 columns: {row}")
    try:
        d = {"seqname": row[0], "start": int(row[1]) + 1, "end": int(row[2])}
    except ValueError as err:
        raise FileFormatError(f"Invalid BED coordinates: {row}") from err
    for name, value in zip(BED_OPTIONAL_COLUMNS, row[3:6]):
        if name == "score":
            d[name] = _parse_value(value)
        else:
            d[name] = None if value == "." else value
    for i, value in enumerate(row[6:], 7):
        d[f"column_{i}"] = _parse_value(value)
    return d


def region_filter(
    regions: Union[GenomeRanges, Iterable[GenomeInterval]]
):
    """Create a predicate that tests whether an interval overlaps any of `regions`.
    """
    if not isinstance(regions, GenomeRanges):
        regions = GenomeRanges(regions)
    index = regions.index()

    def overlaps_region(ivl: GenomeInterval) -> bool:
        return len(index.overlapping(ivl)) > 0

    return overlaps_region


def iter_bed_rows(
    bed_file: Path,
    regions: Optional[Union[GenomeRanges, Iterable[GenomeInterval]]] = None
) -> Iterator[Dict[str, Any]]:
    """
    Iterate over the rows of a BED file.

    Args:
        bed_file: Path to the BED file (may be compressed).
        regions: Optional intervals; only rows overlapping at least one of them are
            yielded.

    Returns:
        Iterator over canonical rows with 1-based coordinates.
    """
    allowed = region_filter(regions) if regions is not None else None
    for row in read_delimited(bed_file):
        if not row or not row[0] or row[0].startswith(SKIP_PREFIXES):
            continue
        d = bed_row_to_dict(row)
        if allowed and not allowed(
            GenomeInterval(d["seqname"], d["start"], d["end"])
        ):
            continue
        yield d


def read_bed(
    bed_file: Path,
    regions: Optional[Union[GenomeRanges, Iterable[GenomeInterval]]] = None,
    genome: Optional[Genome] = None
) -> GenomeRanges:
    """
    Load a BED file into a GenomeRanges.

    Args:
        bed_file: Path to the BED file.
        regions: Optional region filter (see :func:`iter_bed_rows`).
        genome: Optional genome metadata.
    """
    ranges = GenomeRanges.from_rows(iter_bed_rows(bed_file, regions), genome=genome)
    logger.info("Read %d intervals from %s", len(ranges), bed_file)
    return ranges


@contextmanager
def bed_writer(
    outfile: Path, bgzip: bool = True, index: bool = True
) -> Iterator[_csv.writer]:
    """
    Context manager that provides a writer for rows in a BED file.

    Args:
        outfile: The BED file to write.
        bgzip: Whether to bgzip the output file after it is closed.
        index: Whether to index the output file (must be bgzipped).

    Yields:
        A csv.writer object.
    """
    with open_(outfile, "wt", compression=("bgzip" if bgzip else None)) as out:
        writer = csv.writer(out, delimiter="\t", lineterminator="\n")
        yield writer

    if bgzip and index:
        pysam.tabix_index(str(outfile), preset="bed", force=True)


def write_ranges_bed(
    ranges: Iterable[GenomeInterval],
    outfile: Path,
    name_column: Optional[str] = None,
    score_column: Optional[str] = None,
    extra_columns: Optional[Sequence[str]] = None,
    bgzip: bool = False,
    index: bool = False
) -> None:
    """
    Write intervals to a BED file.

    Args:
        ranges: The intervals to write to BED format.
        outfile: The output BED file.
        name_column: Attribute to write in the name column. Defaults to the
            region string.
        score_column: Attribute to write in the score column. Defaults to the
            interval width.
        extra_columns: Attributes to write in columns 7+. Missing values are
            written as ".".
        bgzip: Whether to bgzip the output file.
        index: Whether to tabix index the output file (must be bgzipped).
    """
    with bed_writer(outfile, bgzip, index) as bed:
        for ivl in ranges:
            kwargs = {}
            if name_column:
                kwargs["name"] = ivl.attributes.get(name_column)
            if score_column:
                score = ivl.attributes.get(score_column)
                kwargs["value"] = "." if score is None else score
            bed.writerow(ivl.as_bed_extended(extra_columns or (), **kwargs))
