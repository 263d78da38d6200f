from pathlib import Path
import pytest

from . import ranges


class DataPath(object):
    def __init__(self, datadir_obj):
        self.datadir_obj = datadir_obj

    def __getitem__(self, path):
        pypath = self.datadir_obj / path
        return Path(pypath)


@pytest.fixture
def datapath(datadir):
    return DataPath(datadir)


@pytest.fixture
def genes():
    return ranges(
        ("chr1", 100, 200, "+"),
        ("chr1", 300, 400, "-"),
        ("chr2", 50, 80, "+"),
        gene=["a", "b", "c"],
        score=[1.0, 3.0, 5.0],
    )


@pytest.fixture
def peaks():
    return ranges(
        ("chr1", 150, 250, "+"),
        ("chr1", 180, 190, "-"),
        ("chr1", 390, 500, "-"),
        ("chr3", 1, 10, "+"),
        peak=["p1", "p2", "p3", "p4"],
        score=[10, 20, 30, 40],
    )
