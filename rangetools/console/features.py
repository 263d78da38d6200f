from pathlib import Path
from typing import Optional

from rangetools.bam import read_bam
from rangetools.bed import read_bed, write_ranges_bed
from rangetools.joins import count_overlaps
from rangetools.ranges import mean, n
from rangetools.utils import replace_suffix


def features(
    primary: Path,
    regions_bed: Path,
    outfile: Optional[Path] = None,
    summary: Optional[Path] = None,
    min_mapq: int = 0,
    directed: bool = False
):
    """
    Counts the number of reads overlapping each region in a BED file.

    Args:
        primary: The primary (BAM) file. Must be indexed.
        regions_bed: The regions BED file.
        outfile: The output BED file. If not specified, the primary filename is
            used with a '_features.bed' suffix. The count is written in the score
            column.
        summary: Optional output file for a per-contig summary: number of reads
            and mean mapping quality.
        min_mapq: Minimum mapping quality of reads to count.
        directed: Whether to only count reads on the same strand as the region.
    """
    if outfile is None:
        outfile = replace_suffix(primary, "_features.bed")

    regions = read_bed(regions_bed)
    reads = read_bam(primary, regions=regions, min_mapq=min_mapq)
    regions = regions.mutate(count=count_overlaps(regions, reads, directed))
    write_ranges_bed(
        regions, outfile,
        name_column="name" if "name" in regions.columns else None,
        score_column="count"
    )

    if summary:
        reads.group_by("seqname").summarise(
            reads=n(), mean_mapq=mean("mapq")
        ).write_tsv(summary)
