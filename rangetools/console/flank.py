from pathlib import Path
from typing import Optional

from xphyle import STDOUT

from rangetools.bed import read_bed, write_ranges_bed
from rangetools.utils import Genome


def flank(
    intervals: Path,
    width: int,
    upstream: bool = False,
    ignore_strand: bool = False,
    outfile: Optional[Path] = None,
    contig_sizes: Optional[Path] = None
):
    """
    Generate the flanking interval of each interval in a BED file.

    Args:
        intervals: The input BED file.
        width: Width of the flanking intervals.
        upstream: Flank before the start rather than after the end.
        ignore_strand: Whether to treat all intervals as being on the forward
            strand. Otherwise the flanks of reverse-strand intervals are on the
            other side.
        outfile: The output BED file. Defaults to stdout.
        contig_sizes: A file with the sizes of all the contigs; if given, flanks
            that extend past the contig ends are an error.
    """
    genome = Genome.from_file(contig_sizes) if contig_sizes else None
    ranges = read_bed(intervals, genome=genome)
    flanks = ranges.flank(width, downstream=not upstream, directed=not ignore_strand)
    write_ranges_bed(flanks, outfile or STDOUT, extra_columns=flanks.columns)
