import re
from typing import Iterable, Optional

from rangetools.intervals import GenomeInterval
from rangetools.ranges import GenomeRanges
from rangetools.utils import Genome, InvalidRangeError


REGION_RE = re.compile(r"^([^:]+?)(?::([\d,]+)(?:-([\d,]+))?)?(?:\(([+\-*.])\))?$")


def parse_region(region_str: str, genome: Optional[Genome] = None) -> GenomeInterval:
    """
    Convert a region string into an interval.

    Args:
        region_str: Region string with 1-based, inclusive coordinates, such as
            'chr1:100-1000', 'chr1:1,000-2,000(-)', 'chr1:500' (a single position)
            or 'chr1' (the whole sequence; requires `genome`).
        genome: Genome metadata used to resolve whole-sequence regions.

    Returns:
        A GenomeInterval.

    Raises:
        InvalidRangeError if the region cannot be parsed.
    """
    match = REGION_RE.match(region_str.strip())
    if not match:
        raise InvalidRangeError(f"Invalid region {region_str!r}")
    seqname, start_str, end_str, strand = match.groups()

    if start_str is None:
        if genome is None or seqname not in genome:
            raise InvalidRangeError(
                f"Cannot determine the length of sequence {seqname!r} for "
                f"region {region_str!r}"
            )
        return GenomeInterval(seqname, 1, genome[seqname], strand)

    start = int(start_str.replace(",", ""))
    end = start if end_str is None else int(end_str.replace(",", ""))
    if start <= 0:
        raise InvalidRangeError(
            f"Invalid region {region_str}: start must be >= 1"
        )
    if start > end:
        raise InvalidRangeError(
            f"Invalid region {region_str}: start must be <= end"
        )
    return GenomeInterval(seqname, start, end, strand)


def parse_regions(
    region_strs: Iterable[str], genome: Optional[Genome] = None
) -> GenomeRanges:
    """Parse several region strings into a GenomeRanges.
    """
    return GenomeRanges(
        (parse_region(region_str, genome) for region_str in region_strs),
        genome=genome
    )
