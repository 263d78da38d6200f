"""
Overlap and proximity joins between two GenomeRanges.

Every join first computes a list of :class:`Hit`s - pairs of (query, subject)
positions - in ascending query order and, for each query, ascending subject
order. The hits are then materialised as a new GenomeRanges whose coordinates
come from the query (or, for `join_overlap_intersect`, from the overlap of query
and subject) and whose attributes are the query's followed by the subject's.
"""
import logging
from typing import Callable, Dict, List, NamedTuple, Sequence, Tuple

from rangetools.intervals import GenomeInterval
from rangetools.ranges import GenomeRanges
from rangetools.utils import SchemaError, check_genomes


logger = logging.getLogger(__name__)


DEFAULT_SUFFIX = (".x", ".y")
"""Suffixes added to query and subject columns that have the same name."""
SUBJECT_COORDINATES = ("start", "end", "strand")


class Hit(NamedTuple):
    query_index: int
    subject_index: int


def overlaps(a: GenomeInterval, b: GenomeInterval, directed: bool = False) -> bool:
    """Closed-coordinate overlap test; symmetric in `a` and `b`.
    """
    return a.overlaps(b, directed)


def find_overlaps(
    query: GenomeRanges,
    subject: GenomeRanges,
    directed: bool = False,
    within: bool = False,
    minoverlap: int = 1
) -> List[Hit]:
    """
    Find all pairs of overlapping query and subject intervals.

    Args:
        query: The query intervals.
        subject: The subject intervals.
        directed: Whether query and subject must be on the same strand.
        within: Whether the query must be contained within the subject.
        minoverlap: Minimum number of overlapping positions.

    Returns:
        Hits ordered by query position, then subject position.

    Raises:
        GenomeMismatchError if `query` and `subject` have incompatible genomes.
    """
    check_genomes(query.genome, subject.genome)
    index = subject.index(directed)
    hits = []

    for qi, q in enumerate(query):
        for si in index.overlapping(q):
            s = subject[si]
            if within and not (s.start <= q.start and q.end <= s.end):
                continue
            if minoverlap > 1 and min(q.end, s.end) - max(q.start, s.start) < minoverlap - 1:
                continue
            hits.append(Hit(qi, si))

    logger.debug(
        "Found %d overlaps between %d query and %d subject intervals",
        len(hits), len(query), len(subject)
    )
    return hits


def _find_adjacent(
    query: GenomeRanges, subject: GenomeRanges, directed: bool, after: bool
) -> List[Hit]:
    check_genomes(query.genome, subject.genome)
    index = subject.index(directed)
    hits = []

    for qi, q in enumerate(query):
        rightwards = after
        if directed and q.strand.is_reverse:
            rightwards = not rightwards
        # the index returns every equally close subject, in ascending order
        candidates = index.following(q) if rightwards else index.preceding(q)
        hits.extend(Hit(qi, si) for si in candidates)

    return hits


def find_precede(
    query: GenomeRanges, subject: GenomeRanges, directed: bool = False
) -> List[Hit]:
    """
    For each query, find the nearest subjects that the query precedes, i.e. that
    lie strictly after the query (downstream, if `directed`). Subjects that tie
    (share the smallest start) all produce hits, in subject order.
    """
    return _find_adjacent(query, subject, directed, after=True)


def find_follow(
    query: GenomeRanges, subject: GenomeRanges, directed: bool = False
) -> List[Hit]:
    """
    For each query, find the nearest subjects that the query follows, i.e. that
    lie strictly before the query (upstream, if `directed`). Subjects that tie
    (share the largest end) all produce hits, in subject order.
    """
    return _find_adjacent(query, subject, directed, after=False)


def find_nearest(
    query: GenomeRanges, subject: GenomeRanges, directed: bool = False
) -> List[Hit]:
    """
    For each query, find the subject at the smallest distance. Overlapping and
    book-ended subjects are at distance 0. Ties are broken in favor of the subject
    with the smaller start, then the one that appears first in `subject`.
    """
    check_genomes(query.genome, subject.genome)
    index = subject.index(directed)
    hits = []

    for qi, q in enumerate(query):
        candidates = set(index.overlapping(q))
        candidates.update(index.following(q))
        candidates.update(index.preceding(q))
        if candidates:
            si = min(
                candidates,
                key=lambda i: (q.distance(subject[i]), subject[i].start, i)
            )
            hits.append(Hit(qi, si))

    return hits


def _join_columns(
    query: GenomeRanges,
    subject: GenomeRanges,
    suffix: Tuple[str, str],
    keep_subject_coords: bool
) -> Tuple[List[str], List[str]]:
    clashes = set(query.columns) & set(subject.columns)
    query_names = [
        name + suffix[0] if name in clashes else name for name in query.columns
    ]
    subject_names = [
        name + suffix[1] if name in clashes else name for name in subject.columns
    ]
    if keep_subject_coords:
        subject_names.extend(name + suffix[1] for name in SUBJECT_COORDINATES)
    names = query_names + subject_names
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise SchemaError(
            f"Joined columns {duplicates} are not unique with suffixes {suffix}"
        )
    return query_names, subject_names


def _materialise(
    query: GenomeRanges,
    subject: GenomeRanges,
    hits: Sequence[Hit],
    suffix: Tuple[str, str] = DEFAULT_SUFFIX,
    keep_subject_coords: bool = False,
    keep_unmatched: bool = False,
    intersect: bool = False
) -> GenomeRanges:
    genome = check_genomes(query.genome, subject.genome)
    query_names, subject_names = _join_columns(
        query, subject, suffix, keep_subject_coords
    )
    missing = dict.fromkeys(subject_names)

    def subject_attributes(s: GenomeInterval) -> Dict[str, object]:
        values = [s.attributes[name] for name in subject.columns]
        if keep_subject_coords:
            values.extend((s.start, s.end, str(s.strand)))
        return dict(zip(subject_names, values))

    hits_by_query: Dict[int, List[int]] = {}
    for qi, si in hits:
        hits_by_query.setdefault(qi, []).append(si)

    intervals = []
    for qi, q in enumerate(query):
        query_attributes = dict(zip(query_names, q.attributes.values()))
        matches = hits_by_query.get(qi)
        if not matches:
            if keep_unmatched:
                intervals.append(q.replace(attributes={**query_attributes, **missing}))
            continue
        for si in matches:
            s = subject[si]
            attributes = dict(query_attributes)
            attributes.update(subject_attributes(s))
            if intersect:
                ivl = q.intersection(s)
                if ivl is None:
                    continue
                intervals.append(ivl.replace(attributes=attributes))
            else:
                intervals.append(q.replace(attributes=attributes))

    return GenomeRanges(intervals, columns=query_names + subject_names, genome=genome)


def join_overlap_inner(
    query: GenomeRanges,
    subject: GenomeRanges,
    suffix: Tuple[str, str] = DEFAULT_SUFFIX,
    directed: bool = False,
    within: bool = False,
    minoverlap: int = 1,
    keep_subject_coords: bool = False
) -> GenomeRanges:
    """
    One row for each overlapping pair of query and subject intervals, with the
    query's coordinates and both sets of attributes.

    Args:
        query: The query intervals.
        subject: The subject intervals.
        suffix: Suffixes for query and subject columns with the same name.
        directed: Whether to require matching strands.
        within: Whether the query must be contained within the subject.
        minoverlap: Minimum number of overlapping positions.
        keep_subject_coords: Whether to add the subject's start, end and strand as
            (suffixed) columns.
    """
    hits = find_overlaps(query, subject, directed, within, minoverlap)
    return _materialise(query, subject, hits, suffix, keep_subject_coords)


def join_overlap_left(
    query: GenomeRanges,
    subject: GenomeRanges,
    suffix: Tuple[str, str] = DEFAULT_SUFFIX,
    directed: bool = False,
    within: bool = False,
    minoverlap: int = 1,
    keep_subject_coords: bool = False
) -> GenomeRanges:
    """
    Like :func:`join_overlap_inner`, but queries that overlap nothing are kept as
    a single row with missing (None) values for all subject columns.
    """
    hits = find_overlaps(query, subject, directed, within, minoverlap)
    return _materialise(
        query, subject, hits, suffix, keep_subject_coords, keep_unmatched=True
    )


def join_overlap_intersect(
    query: GenomeRanges,
    subject: GenomeRanges,
    suffix: Tuple[str, str] = DEFAULT_SUFFIX,
    directed: bool = False,
    within: bool = False,
    minoverlap: int = 1,
    keep_subject_coords: bool = False
) -> GenomeRanges:
    """
    Like :func:`join_overlap_inner`, but each row's coordinates are the overlap
    `[max(q.start, s.start), min(q.end, s.end)]` of the query and subject.

    Examples:
        A = [chr1:100-200 (+)], B = [chr1:150-250 (+)] => [chr1:150-200 (+)]
    """
    hits = find_overlaps(query, subject, directed, within, minoverlap)
    return _materialise(
        query, subject, hits, suffix, keep_subject_coords, intersect=True
    )


def join_nearest(
    query: GenomeRanges,
    subject: GenomeRanges,
    suffix: Tuple[str, str] = DEFAULT_SUFFIX,
    directed: bool = False,
    keep_subject_coords: bool = False
) -> GenomeRanges:
    """Join each query to its nearest subject (see :func:`find_nearest`).
    """
    hits = find_nearest(query, subject, directed)
    return _materialise(query, subject, hits, suffix, keep_subject_coords)


def join_follow(
    query: GenomeRanges,
    subject: GenomeRanges,
    suffix: Tuple[str, str] = DEFAULT_SUFFIX,
    directed: bool = False,
    keep_subject_coords: bool = False
) -> GenomeRanges:
    """Join each query to the nearest subject it follows (see
    :func:`find_follow`).
    """
    hits = find_follow(query, subject, directed)
    return _materialise(query, subject, hits, suffix, keep_subject_coords)


def join_precede(
    query: GenomeRanges,
    subject: GenomeRanges,
    suffix: Tuple[str, str] = DEFAULT_SUFFIX,
    directed: bool = False,
    keep_subject_coords: bool = False
) -> GenomeRanges:
    """Join each query to the nearest subject it precedes (see
    :func:`find_precede`).
    """
    hits = find_precede(query, subject, directed)
    return _materialise(query, subject, hits, suffix, keep_subject_coords)


JOINS: Dict[str, Callable[..., GenomeRanges]] = {
    "inner": join_overlap_inner,
    "left": join_overlap_left,
    "intersect": join_overlap_intersect,
    "nearest": join_nearest,
    "follow": join_follow,
    "precede": join_precede,
}


def count_overlaps(
    query: GenomeRanges, subject: GenomeRanges, directed: bool = False
) -> List[int]:
    """Number of subject intervals overlapping each query interval.
    """
    counts = [0] * len(query)
    for qi, _ in find_overlaps(query, subject, directed):
        counts[qi] += 1
    return counts


def filter_by_overlaps(
    query: GenomeRanges, subject: GenomeRanges, directed: bool = False
) -> GenomeRanges:
    """The query intervals that overlap at least one subject interval.
    """
    counts = count_overlaps(query, subject, directed)
    return query.take(i for i, count in enumerate(counts) if count > 0)


def filter_by_non_overlaps(
    query: GenomeRanges, subject: GenomeRanges, directed: bool = False
) -> GenomeRanges:
    """The query intervals that overlap no subject interval.
    """
    counts = count_overlaps(query, subject, directed)
    return query.take(i for i, count in enumerate(counts) if count == 0)
