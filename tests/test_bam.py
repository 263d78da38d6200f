import pysam
import pytest

from rangetools.bam import iter_bam_rows, read_bam
from rangetools.intervals import GenomeInterval
from rangetools.utils import Genome


READS = [
    ("r1", "chr1", 99, False, 60),
    ("r2", "chr1", 149, True, 60),
    ("r3", "chr1", 899, False, 10),
    ("r4", "chr2", 9, False, 60),
]


def write_bam(path):
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": "chr1", "LN": 1000}, {"SN": "chr2", "LN": 500}],
    }
    with pysam.AlignmentFile(str(path), "wb", header=header) as out:
        for name, seqname, pos, reverse, mapq in READS:
            read = pysam.AlignedSegment(out.header)
            read.query_name = name
            read.query_sequence = "ACGTACGTAC"
            read.flag = 16 if reverse else 0
            read.reference_id = out.get_tid(seqname)
            read.reference_start = pos
            read.mapping_quality = mapq
            read.cigarstring = "10M"
            read.query_qualities = pysam.qualitystring_to_array("IIIIIIIIII")
            out.write(read)
    pysam.index(str(path))
    return path


@pytest.fixture
def bam_file(tmp_path):
    return write_bam(tmp_path / "reads.bam")


def test_read_bam(bam_file):
    reads = read_bam(bam_file)
    assert reads.genome == Genome(None, [("chr1", 1000), ("chr2", 500)])
    assert reads.columns == ("name", "mapq")
    assert list(reads) == [
        GenomeInterval("chr1", 100, 109, "+", {"name": "r1", "mapq": 60}),
        GenomeInterval("chr1", 150, 159, "-", {"name": "r2", "mapq": 60}),
        GenomeInterval("chr1", 900, 909, "+", {"name": "r3", "mapq": 10}),
        GenomeInterval("chr2", 10, 19, "+", {"name": "r4", "mapq": 60}),
    ]


def test_read_bam_min_mapq(bam_file):
    reads = read_bam(bam_file, min_mapq=30)
    assert [ivl["name"] for ivl in reads] == ["r1", "r2", "r4"]


def test_read_bam_regions(bam_file):
    regions = [
        GenomeInterval("chr1", 95, 155),
        GenomeInterval("chr1", 105, 120),
        GenomeInterval("chr3", 1, 100),
    ]
    reads = read_bam(bam_file, regions=regions)
    assert [ivl["name"] for ivl in reads] == ["r1", "r2"]


def test_iter_bam_rows(bam_file):
    with pysam.AlignmentFile(str(bam_file), "rb") as bam:
        rows = list(iter_bam_rows(bam, [GenomeInterval("chr2", 1, 10)]))
    assert rows == [{
        "seqname": "chr2", "start": 10, "end": 19, "strand": "+", "name": "r4",
        "mapq": 60
    }]
