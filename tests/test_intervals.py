import pytest

from rangetools.intervals import Anchor, GenomeInterval, Strand
from rangetools.utils import Genome, InvalidRangeError


def test_interval():
    ivl = GenomeInterval("chr1", 100, 200, "+", {"name": "a"})
    assert ivl.width == len(ivl) == 101
    assert ivl.end == ivl.start + ivl.width - 1
    assert ivl.strand is Strand.FORWARD
    assert ivl.strand == "+"
    assert ivl["name"] == "a"
    assert ivl["width"] == 101
    assert ivl.region == "chr1:100-200"
    assert ivl.as_bed3() == ("chr1", 99, 200)
    assert ivl.as_bed6() == ("chr1", 99, 200, "chr1:100-200", 101, "+")
    assert ivl.as_bed_extended() == ("chr1", 99, 200, "chr1:100-200", 101, "+", "a")
    assert GenomeInterval("chr1", 5, 5).width == 1


def test_invalid_interval():
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", 10, 9)
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", "x", 9)
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", 1.5, 10)
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", True, 10)
    assert GenomeInterval("chr1", "5", " 10") == GenomeInterval("chr1", 5, 10)
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", 1, 9, "x")
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", 1, 9, attributes={"start": 1})


def test_strand_parse():
    assert Strand.parse(".") is Strand.UNSTRANDED
    assert Strand.parse(None) is Strand.UNSTRANDED
    assert Strand.parse("-") is Strand.REVERSE
    assert Strand.parse(1) is Strand.FORWARD


def test_overlaps_symmetric():
    a = GenomeInterval("chr1", 1, 10, "+")
    others = [
        GenomeInterval("chr1", 10, 20, "+"),
        GenomeInterval("chr1", 11, 20, "+"),
        GenomeInterval("chr1", 5, 6, "-"),
        GenomeInterval("chr2", 1, 10, "+"),
        GenomeInterval("chr1", 1, 10),
    ]
    for b in others:
        for directed in (False, True):
            assert a.overlaps(b, directed) == b.overlaps(a, directed)
    assert a.overlaps(others[0])
    assert not a.overlaps(others[1])
    assert a.overlaps(others[2])
    assert not a.overlaps(others[2], directed=True)
    assert not a.overlaps(others[3])
    assert not a.overlaps(others[4], directed=True)
    assert GenomeInterval("chr1", 1, 10).overlaps(others[4], directed=True)


def test_within_distance_intersection():
    a = GenomeInterval("chr1", 100, 200)
    assert GenomeInterval("chr1", 120, 130).within(a)
    assert not a.within(GenomeInterval("chr1", 120, 130))
    assert a.distance(GenomeInterval("chr1", 201, 300)) == 0
    assert a.distance(GenomeInterval("chr1", 210, 300)) == 9
    assert a.distance(GenomeInterval("chr1", 1, 89)) == 10
    assert a.distance(GenomeInterval("chr2", 1, 89)) is None
    assert a.intersection(GenomeInterval("chr1", 150, 250)) == GenomeInterval(
        "chr1", 150, 200
    )
    assert a.intersection(GenomeInterval("chr1", 201, 250)) is None


def test_merge():
    merged = GenomeInterval.merge([
        GenomeInterval("chr1", 50, 60),
        GenomeInterval("chr1", 1, 10),
        GenomeInterval("chr1", 11, 55),
    ])
    assert merged == GenomeInterval("chr1", 1, 60)
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", 1, 10).add(GenomeInterval("chr1", 12, 20))


def test_resize():
    ivl = GenomeInterval("chr1", 100, 200, "+")
    assert ivl.resize(102) == GenomeInterval("chr1", 100, 201, "+")
    assert ivl.resize(11, Anchor.END) == GenomeInterval("chr1", 190, 200, "+")
    assert ivl.resize(11, "center") == GenomeInterval("chr1", 145, 155, "+")
    assert ivl.resize(11, Anchor.THREE_PRIME) == GenomeInterval("chr1", 190, 200, "+")
    rev = ivl.replace(strand="-")
    assert rev.resize(11, Anchor.FIVE_PRIME) == GenomeInterval("chr1", 190, 200, "-")
    for width in (1, 7, 300):
        for anchor in Anchor:
            resized = ivl.resize(width, anchor)
            assert resized.width == width
            assert resized.end == resized.start + resized.width - 1
    with pytest.raises(InvalidRangeError):
        ivl.resize(0)
    with pytest.raises(InvalidRangeError):
        ivl.resize(-5)


def test_stretch():
    ivl = GenomeInterval("chr1", 100, 200)
    assert ivl.stretch(10) == GenomeInterval("chr1", 90, 210)
    assert ivl.stretch(10, Anchor.START) == GenomeInterval("chr1", 100, 210)
    assert ivl.stretch(10, Anchor.END) == GenomeInterval("chr1", 90, 200)
    assert ivl.stretch(10, Anchor.CENTER) == GenomeInterval("chr1", 95, 205)
    assert ivl.stretch(-50) == GenomeInterval("chr1", 150, 150)
    with pytest.raises(InvalidRangeError):
        ivl.stretch(-51)


def test_shift():
    fwd = GenomeInterval("chr1", 100, 200, "+")
    rev = GenomeInterval("chr1", 100, 200, "-")
    assert fwd.shift(10) == GenomeInterval("chr1", 110, 210, "+")
    assert rev.shift(10) == GenomeInterval("chr1", 110, 210, "-")
    assert rev.shift(10, directed=True) == GenomeInterval("chr1", 90, 190, "-")
    assert fwd.shift(-10, directed=True).width == fwd.width


def test_flank():
    ivl = GenomeInterval("chr1", 100, 200, "+")
    assert ivl.flank(8, downstream=True) == GenomeInterval("chr1", 201, 208, "+")
    assert ivl.flank(8, downstream=False) == GenomeInterval("chr1", 92, 99, "+")
    rev = ivl.replace(strand="-")
    assert rev.flank(8) == GenomeInterval("chr1", 92, 99, "-")
    assert rev.flank(8, directed=False) == GenomeInterval("chr1", 201, 208, "-")
    with pytest.raises(InvalidRangeError):
        ivl.flank(0)


def test_check_bounds():
    genome = Genome("test", [("chr1", 1000)])
    GenomeInterval("chr1", 1, 1000).check_bounds(genome)
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", 990, 1001).check_bounds(genome)
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr1", 0, 10).check_bounds(genome)
    with pytest.raises(InvalidRangeError):
        GenomeInterval("chr2", 1, 10).check_bounds(genome)
