import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional, Union

import pysam

from rangetools.intervals import GenomeInterval
from rangetools.ranges import GenomeRanges
from rangetools.utils import Genome


logger = logging.getLogger(__name__)


def read_to_dict(read: pysam.AlignedSegment) -> Dict[str, Any]:
    """Convert an aligned read into a canonical row (1-based, closed).
    """
    return {
        "seqname": read.reference_name,
        "start": read.reference_start + 1,
        "end": read.reference_end,
        "strand": "-" if read.is_reverse else "+",
        "name": read.query_name,
        "mapq": read.mapping_quality,
    }


def iter_bam_rows(
    bam: Union[Path, pysam.AlignmentFile],
    regions: Optional[Union[GenomeRanges, Iterable[GenomeInterval]]] = None,
    min_mapq: int = 0
) -> Iterator[Dict[str, Any]]:
    """
    Iterate over the mapped reads of a BAM file.

    Args:
        bam: Either a path to a BAM file or an open pysam.AlignmentFile.
        regions: Optional intervals; only reads overlapping at least one of them
            are yielded. A read overlapping several regions is yielded once.
            Requires the BAM file to be indexed.
        min_mapq: Minimum mapping quality.

    Returns:
        Iterator over canonical rows.
    """
    if isinstance(bam, (str, Path)):
        with pysam.AlignmentFile(str(bam), "rb") as bam_file:
            yield from iter_bam_rows(bam_file, regions, min_mapq)
        return

    def keep(read: pysam.AlignedSegment) -> bool:
        return (
            not read.is_unmapped
            and read.reference_end is not None
            and read.mapping_quality >= min_mapq
        )

    if regions is None:
        for read in bam.fetch(until_eof=True):
            if keep(read):
                yield read_to_dict(read)
        return

    seen = set()
    references = set(bam.references)
    for region in regions:
        if region.seqname not in references:
            continue
        start, end = region.start - 1, region.end
        for read in bam.fetch(region.seqname, start, end):
            if not keep(read):
                continue
            key = (
                read.query_name, read.flag, read.reference_id,
                read.reference_start, read.cigarstring
            )
            if key in seen:
                continue
            seen.add(key)
            yield read_to_dict(read)


def read_bam(
    bam_file: Path,
    regions: Optional[Union[GenomeRanges, Iterable[GenomeInterval]]] = None,
    min_mapq: int = 0,
    genome: Optional[Genome] = None
) -> GenomeRanges:
    """
    Load the mapped reads of a BAM file into a GenomeRanges. Unless `genome` is
    given, genome metadata is taken from the BAM header.
    """
    with pysam.AlignmentFile(str(bam_file), "rb") as bam:
        if genome is None:
            genome = Genome.from_bam(bam)
        ranges = GenomeRanges.from_rows(
            iter_bam_rows(bam, regions, min_mapq), genome=genome
        )
    logger.info("Read %d alignments from %s", len(ranges), bam_file)
    return ranges
