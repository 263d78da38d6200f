import pytest

from rangetools.intervals import GenomeInterval
from rangetools.joins import (
    JOINS,
    Hit,
    count_overlaps,
    filter_by_non_overlaps,
    filter_by_overlaps,
    find_follow,
    find_nearest,
    find_overlaps,
    find_precede,
    join_follow,
    join_nearest,
    join_overlap_inner,
    join_overlap_intersect,
    join_overlap_left,
    join_precede,
    overlaps,
)
from rangetools.utils import Genome, GenomeMismatchError, SchemaError
from . import ranges


def test_overlaps():
    a = GenomeInterval("chr1", 100, 200, "+")
    b = GenomeInterval("chr1", 200, 300, "-")
    assert overlaps(a, b) and overlaps(b, a)
    assert not overlaps(a, b, directed=True)
    assert not overlaps(b, a, directed=True)


def test_find_overlaps(genes, peaks):
    assert find_overlaps(genes, peaks) == [Hit(0, 0), Hit(0, 1), Hit(1, 2)]
    assert find_overlaps(genes, peaks, directed=True) == [Hit(0, 0), Hit(1, 2)]
    assert find_overlaps(genes, peaks, minoverlap=20) == [Hit(0, 0)]
    assert find_overlaps(peaks, genes, within=True) == [Hit(1, 0)]


def test_join_overlap_inner(genes, peaks):
    joined = join_overlap_inner(genes, peaks)
    assert len(joined) == len(find_overlaps(genes, peaks))
    assert joined.columns == ("gene", "score.x", "peak", "score.y")
    assert list(joined) == [
        GenomeInterval(
            "chr1", 100, 200, "+",
            {"gene": "a", "score.x": 1.0, "peak": "p1", "score.y": 10}
        ),
        GenomeInterval(
            "chr1", 100, 200, "+",
            {"gene": "a", "score.x": 1.0, "peak": "p2", "score.y": 20}
        ),
        GenomeInterval(
            "chr1", 300, 400, "-",
            {"gene": "b", "score.x": 3.0, "peak": "p3", "score.y": 30}
        ),
    ]
    assert len(join_overlap_inner(genes, peaks, directed=True)) == 2


def test_join_suffix_and_subject_coords(genes, peaks):
    joined = join_overlap_inner(
        genes, peaks, suffix=("_gene", "_peak"), keep_subject_coords=True
    )
    assert joined.columns == (
        "gene", "score_gene", "peak", "score_peak",
        "start_peak", "end_peak", "strand_peak"
    )
    assert joined[1]["start_peak"] == 180
    assert joined[1]["end_peak"] == 190
    assert joined[1]["strand_peak"] == "-"


def test_join_suffix_collision():
    query = ranges(("chr1", 1, 10), **{"score": [1], "score.x": [2]})
    subject = ranges(("chr1", 5, 15), score=[3])
    with pytest.raises(SchemaError):
        join_overlap_inner(query, subject)
    joined = join_overlap_inner(query, subject, suffix=("_q", "_s"))
    assert joined.columns == ("score_q", "score.x", "score_s")


def test_join_overlap_left():
    a = ranges(("chr1", 1, 10))
    b = ranges(("chr1", 20, 30), name=["x"])
    joined = join_overlap_left(a, b)
    assert len(joined) == 1
    assert joined[0] == GenomeInterval("chr1", 1, 10, attributes={"name": None})


def test_join_overlap_left_keeps_order(genes, peaks):
    joined = join_overlap_left(genes, peaks)
    assert [(ivl["gene"], ivl["peak"]) for ivl in joined] == [
        ("a", "p1"), ("a", "p2"), ("b", "p3"), ("c", None)
    ]
    assert joined[3]["score.y"] is None
    assert joined[3]["score.x"] == 5.0


def test_join_overlap_intersect():
    a = ranges(("chr1", 100, 200, "+"))
    b = ranges(("chr1", 150, 250, "+"))
    assert list(join_overlap_intersect(a, b)) == [
        GenomeInterval("chr1", 150, 200, "+")
    ]


def test_join_overlap_intersect_multiple(genes, peaks):
    joined = join_overlap_intersect(genes, peaks)
    assert [(ivl.start, ivl.end, str(ivl.strand)) for ivl in joined] == [
        (150, 200, "+"), (180, 190, "+"), (390, 400, "-")
    ]
    assert [ivl["peak"] for ivl in joined] == ["p1", "p2", "p3"]


def test_nearest(genes, peaks):
    assert find_nearest(genes, peaks) == [Hit(0, 0), Hit(1, 2)]
    joined = join_nearest(genes, peaks)
    assert [(ivl["gene"], ivl["peak"]) for ivl in joined] == [("a", "p1"), ("b", "p3")]


def test_nearest_ties():
    query = ranges(("chr1", 100, 200))
    subject = ranges(("chr1", 210, 220), ("chr1", 80, 90), ("chr1", 210, 215))
    assert find_nearest(query, subject) == [Hit(0, 1)]
    assert find_precede(query, subject) == [Hit(0, 0), Hit(0, 2)]
    assert find_follow(query, subject) == [Hit(0, 1)]
    subject = ranges(("chr1", 205, 220), ("chr1", 80, 90))
    assert find_nearest(query, subject) == [Hit(0, 0)]


def test_precede_follow_ties():
    query = ranges(("chr1", 100, 200))
    subject = ranges(("chr1", 300, 400), ("chr1", 300, 350))
    assert find_precede(query, subject) == [Hit(0, 0), Hit(0, 1)]
    assert len(join_precede(query, subject)) == 2
    query = ranges(("chr1", 100, 200))
    subject = ranges(("chr1", 10, 50), ("chr1", 20, 50))
    assert find_follow(query, subject) == [Hit(0, 0), Hit(0, 1)]
    assert len(join_follow(query, subject)) == 2


def test_precede_follow(genes, peaks):
    assert find_precede(genes, peaks) == [Hit(0, 2)]
    assert find_follow(genes, peaks) == [Hit(1, 0)]
    assert [ivl["peak"] for ivl in join_precede(genes, peaks)] == ["p3"]
    assert [ivl["peak"] for ivl in join_follow(genes, peaks)] == ["p1"]


def test_precede_follow_directed(genes, peaks):
    # on the reverse strand, "after" means to the left
    assert find_precede(genes, peaks, directed=True) == [Hit(1, 1)]
    assert find_follow(genes, peaks, directed=True) == []


def test_joins_by_name(genes, peaks):
    assert set(JOINS) == {"inner", "left", "intersect", "nearest", "follow", "precede"}
    assert JOINS["inner"](genes, peaks) == join_overlap_inner(genes, peaks)


def test_genome_mismatch(genes, peaks):
    hg19 = Genome("hg19", [("chr1", 1000), ("chr2", 100)])
    hg38 = Genome("hg38", [("chr1", 1000), ("chr2", 100), ("chr3", 100)])
    with pytest.raises(GenomeMismatchError):
        join_overlap_inner(genes.set_genome(hg19), peaks.set_genome(hg38))
    with pytest.raises(GenomeMismatchError):
        find_nearest(genes.set_genome(hg19), peaks.set_genome(hg38))
    joined = join_overlap_inner(genes.set_genome(hg38), peaks)
    assert joined.genome == hg38


def test_count_and_filter_overlaps(genes, peaks):
    assert count_overlaps(genes, peaks) == [2, 1, 0]
    assert count_overlaps(genes, peaks, directed=True) == [1, 1, 0]
    assert [ivl["gene"] for ivl in filter_by_overlaps(genes, peaks)] == ["a", "b"]
    assert [ivl["gene"] for ivl in filter_by_non_overlaps(genes, peaks)] == ["c"]
    assert filter_by_overlaps(genes, peaks).columns == genes.columns
