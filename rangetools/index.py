from bisect import bisect_left, bisect_right
import logging
from typing import Dict, Hashable, List, Sequence

from ncls import NCLS
import numpy as np

from rangetools.intervals import GenomeInterval


logger = logging.getLogger(__name__)


class SequenceIndex:
    """Index over the intervals of a single sequence (or sequence and strand).

    Overlap queries are answered by a nested containment list; proximity queries
    by binary search over start-sorted and end-sorted copies of the coordinates.

    Args:
        ids: Position of each interval in its owning collection.
        intervals: The intervals, in the same order as `ids`.
    """

    def __init__(self, ids: Sequence[int], intervals: Sequence[GenomeInterval]):
        # NCLS works in half-open space
        self._ncls = NCLS(
            np.array([ivl.start for ivl in intervals], dtype=np.int64),
            np.array([ivl.end + 1 for ivl in intervals], dtype=np.int64),
            np.array(ids, dtype=np.int64)
        )
        by_start = sorted(zip((ivl.start for ivl in intervals), ids))
        self._starts = [start for start, _ in by_start]
        self._start_ids = [i for _, i in by_start]
        by_end = sorted(zip((ivl.end for ivl in intervals), ids))
        self._ends = [end for end, _ in by_end]
        self._end_ids = [i for _, i in by_end]

    def __len__(self) -> int:
        return len(self._starts)

    def overlapping(self, start: int, end: int) -> List[int]:
        """Ids of the intervals that overlap the closed range [start, end], in
        ascending order.
        """
        return sorted(int(i) for _, _, i in self._ncls.find_overlap(start, end + 1))

    def following(self, end: int) -> List[int]:
        """Ids of the intervals with the smallest start strictly greater than
        `end`, in ascending order.
        """
        i = bisect_right(self._starts, end)
        if i == len(self._starts):
            return []
        j = bisect_right(self._starts, self._starts[i])
        return sorted(self._start_ids[i:j])

    def preceding(self, start: int) -> List[int]:
        """Ids of the intervals with the largest end strictly less than `start`,
        in ascending order.
        """
        i = bisect_left(self._ends, start)
        if i == 0:
            return []
        j = bisect_left(self._ends, self._ends[i - 1])
        return sorted(self._end_ids[j:i])


class IntervalIndex:
    """
    Per-sequence indexes over a collection of intervals. When `directed`, there is
    one index per (seqname, strand) so that queries only return intervals on the
    same strand as the query.

    Args:
        intervals: The intervals to index. Query results are positions in this
            sequence.
        directed: Whether to partition the index by strand.
    """

    def __init__(self, intervals: Sequence[GenomeInterval], directed: bool = False):
        self.directed = directed
        grouped: Dict[Hashable, List[int]] = {}
        for i, ivl in enumerate(intervals):
            grouped.setdefault(self._key(ivl), []).append(i)
        self._indexes: Dict[Hashable, SequenceIndex] = {
            key: SequenceIndex(ids, [intervals[i] for i in ids])
            for key, ids in grouped.items()
        }
        logger.debug(
            "Indexed %d intervals in %d partitions (directed=%s)",
            len(intervals), len(self._indexes), directed
        )

    def _key(self, ivl: GenomeInterval) -> Hashable:
        if self.directed:
            return ivl.seqname, ivl.strand
        return ivl.seqname

    def __contains__(self, ivl: GenomeInterval) -> bool:
        return self._key(ivl) in self._indexes

    def overlapping(self, ivl: GenomeInterval) -> List[int]:
        """Find intervals that overlap `ivl`.

        Args:
            ivl: The interval to search.

        Returns:
            Positions of the overlapping intervals, in ascending order.
        """
        index = self._indexes.get(self._key(ivl))
        if index is None:
            return []
        return index.overlapping(ivl.start, ivl.end)

    def following(self, ivl: GenomeInterval) -> List[int]:
        """Find the nearest intervals entirely to the right of `ivl`.
        """
        index = self._indexes.get(self._key(ivl))
        if index is None:
            return []
        return index.following(ivl.end)

    def preceding(self, ivl: GenomeInterval) -> List[int]:
        """Find the nearest intervals entirely to the left of `ivl`.
        """
        index = self._indexes.get(self._key(ivl))
        if index is None:
            return []
        return index.preceding(ivl.start)
