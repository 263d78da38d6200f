from enum import Enum
import logging
from pathlib import Path
from typing import Optional, Tuple

from xphyle import STDOUT

from rangetools.bed import read_bed, write_ranges_bed
from rangetools.joins import DEFAULT_SUFFIX, JOINS
from rangetools.utils import Genome


logger = logging.getLogger(__name__)


class JoinKind(Enum):
    """
    Enumeration of the kinds of join between query and subject intervals.
    """
    INNER = "inner"
    """One row for each overlapping pair."""
    LEFT = "left"
    """Like INNER, but also one row for each query that overlaps nothing."""
    INTERSECT = "intersect"
    """Like INNER, with coordinates restricted to the overlap."""
    NEAREST = "nearest"
    """Each query joined to its nearest subject."""
    FOLLOW = "follow"
    """Each query joined to the nearest subject before it."""
    PRECEDE = "precede"
    """Each query joined to the nearest subject after it."""


def join(
    query: Path,
    subject: Path,
    kind: JoinKind = JoinKind.INNER,
    directed: bool = False,
    suffix: Tuple[str, str] = DEFAULT_SUFFIX,
    outfile: Optional[Path] = None,
    contig_sizes: Optional[Path] = None
):
    """
    Join the intervals in two BED files.

    Args:
        query: The query BED file.
        subject: The subject BED file.
        kind: The kind of join.
        directed: Whether to require query and subject to be on the same strand
            (and, for follow/precede, to look upstream/downstream of the query).
        suffix: Suffixes for query and subject columns with the same name.
        outfile: The output BED file. Defaults to stdout. All query and subject
            columns are written in columns 7+.
        contig_sizes: A file with the sizes of all the contigs; if given, both
            BED files are checked against it. This is a two-column tab-delimited
            file ({contig_name}\t{contig_size}).
    """
    genome = Genome.from_file(contig_sizes) if contig_sizes else None
    query_ranges = read_bed(query, genome=genome)
    subject_ranges = read_bed(subject, genome=genome)

    joined = JOINS[kind.value](
        query_ranges, subject_ranges, suffix=tuple(suffix), directed=directed
    )
    logger.info("Join '%s' produced %d rows", kind.value, len(joined))

    write_ranges_bed(
        joined, outfile or STDOUT, extra_columns=joined.columns
    )
