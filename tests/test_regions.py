import pytest

from rangetools.intervals import GenomeInterval
from rangetools.regions import parse_region, parse_regions
from rangetools.utils import Genome, InvalidRangeError


def test_parse_region():
    assert parse_region("chr1:100-200") == GenomeInterval("chr1", 100, 200)
    assert parse_region("chr1:1,000-2,000(-)") == GenomeInterval("chr1", 1000, 2000, "-")
    assert parse_region(" chr2:500 ") == GenomeInterval("chr2", 500, 500)


def test_parse_whole_sequence():
    genome = Genome("test", [("chr1", 1000)])
    assert parse_region("chr1", genome) == GenomeInterval("chr1", 1, 1000)
    with pytest.raises(InvalidRangeError):
        parse_region("chr1")
    with pytest.raises(InvalidRangeError):
        parse_region("chr2", genome)


def test_parse_invalid():
    for region in ("chr1:200-100", "chr1:0-10", "chr1:a-b", ""):
        with pytest.raises(InvalidRangeError):
            parse_region(region)


def test_parse_regions():
    genome = Genome("test", [("chr1", 1000), ("chr2", 500)])
    regions = parse_regions(["chr1:10-20", "chr2"], genome)
    assert list(regions) == [
        GenomeInterval("chr1", 10, 20),
        GenomeInterval("chr2", 1, 500),
    ]
    assert regions.genome == genome
