import os
from pathlib import Path
from typing import (
    Dict,
    Generic,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

import pysam
from xphyle.utils import read_delimited


class RangeToolsError(ValueError):
    """Base class for errors raised by rangetools.
    """


class InvalidRangeError(RangeToolsError):
    """Malformed coordinates, e.g. an interval with width < 1.
    """


class InvalidContextError(RangeToolsError):
    """An aggregate or grouping construct used outside of a verb.
    """


class GenomeMismatchError(RangeToolsError):
    """Two collections of ranges carry incompatible genome metadata.
    """


class SchemaError(RangeToolsError):
    """Reference to a column that does not exist.
    """


class FileFormatError(RangeToolsError):
    pass


T = TypeVar("T")


class OrderedSet(Generic[T]):
    """Simple set (does not implement the full set API) based on dict that
    maintains addition order.
    """

    def __init__(self, items: Iterable[T] = None) -> None:
        self.items = {}
        if items:
            self.update(items)

    def add(self, item: T) -> None:
        self.items[item] = True

    def update(self, items: Iterable[T]) -> None:
        for item in items:
            self.items[item] = True

    def __contains__(self, item: T) -> bool:
        return item in self.items

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items.keys())


class Genome:
    """Genome build metadata: an identifier plus a map of sequence name to
    length.

    Args:
        genome_id: Name of the genome build, e.g. 'hg38'. May be None if unknown.
        seqlengths: Sequence of (name, length) tuples, or a mapping of name to
            length.
    """

    def __init__(
        self,
        genome_id: Optional[str],
        seqlengths: Union[Sequence[Tuple[str, int]], Mapping[str, int]]
    ):
        if isinstance(seqlengths, Mapping):
            seqlengths = list(seqlengths.items())
        self.genome_id = genome_id
        self.seqlength_list = [(str(name), int(size)) for name, size in seqlengths]
        self._names = None
        self._name_to_size = None

    def __len__(self) -> int:
        return len(self.seqlength_list)

    def __contains__(self, seqname: str) -> bool:
        return seqname in self.name_to_size

    def __getitem__(self, seqname: str) -> int:
        return self.get_size(seqname)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Genome):
            return NotImplemented
        return (
            self.genome_id == other.genome_id
            and self.name_to_size == other.name_to_size
        )

    def __hash__(self) -> int:
        return hash((self.genome_id, tuple(sorted(self.name_to_size.items()))))

    def __repr__(self) -> str:
        return f"Genome({self.genome_id}, " \
            f"{','.join(f'{k}={str(v)}' for k, v in self.name_to_size.items())})"

    def get_size(self, seqname: str) -> int:
        """Gets the length of a sequence.

        Args:
            seqname: A sequence name.

        Returns:
            The length of the sequence.
        """
        return self.name_to_size[seqname]

    @property
    def names(self) -> Sequence[str]:
        """Sequence of sequence names.
        """
        if self._names is None:
            self._names = tuple(ref[0] for ref in self.seqlength_list)
        return self._names

    @property
    def name_to_size(self) -> Dict[str, int]:
        """Mapping of sequence name to length.
        """
        if self._name_to_size is None:
            self._name_to_size = dict(self.seqlength_list)
        return self._name_to_size

    def is_compatible(self, other: Optional["Genome"]) -> bool:
        """Whether ranges annotated with this genome can be compared to ranges
        annotated with `other`. Missing metadata is compatible with anything;
        otherwise the genome ids must agree, as must the lengths of any sequence
        named in both.
        """
        if other is None:
            return True
        if (
            self.genome_id is not None
            and other.genome_id is not None
            and self.genome_id != other.genome_id
        ):
            return False
        for name, size in self.seqlength_list:
            if name in other and other[name] != size:
                return False
        return True

    def check_compatible(self, other: Optional["Genome"]) -> None:
        if not self.is_compatible(other):
            raise GenomeMismatchError(
                f"Incompatible genome metadata: {self!r} != {other!r}"
            )

    @staticmethod
    def from_file(path: Path, genome_id: Optional[str] = None) -> "Genome":
        """Loads sequence lengths from a tsv file with two columns: name, length.

        Args:
            path: The path of the tsv file.
            genome_id: The genome identifier.

        Returns:
            A Genome object.
        """
        try:
            rows = list(read_delimited(path, converters=[str, int]))
        except ValueError as err:
            raise FileFormatError(f"Invalid sequence lengths file {path}") from err
        return Genome(genome_id, rows)

    @staticmethod
    def from_bam(
        bam: Union[Path, pysam.AlignmentFile], genome_id: Optional[str] = None
    ) -> "Genome":
        """Loads sequence lengths from the header of a BAM file.

        Args:
            bam: Either a path to a BAM file or an open pysam.AlignmentFile.
            genome_id: The genome identifier.

        Returns:
            A Genome object.
        """
        def bam_to_genome(_bam):
            return Genome(genome_id, list(zip(_bam.references, _bam.lengths)))

        if isinstance(bam, (str, Path)):
            with pysam.AlignmentFile(str(bam), "rb") as bam_file:
                return bam_to_genome(bam_file)
        else:
            return bam_to_genome(bam)


def check_genomes(*genomes: Optional[Genome]) -> Optional[Genome]:
    """Check that all `genomes` are mutually compatible.

    Returns:
        The first non-None genome, or None.

    Raises:
        GenomeMismatchError
    """
    known = [genome for genome in genomes if genome is not None]
    for i, genome in enumerate(known):
        for other in known[i + 1:]:
            genome.check_compatible(other)
    return known[0] if known else None


def split_path(path: Path) -> Tuple[Path, str, Sequence[str]]:
    """
    Splits a path into parts.

    Args:
        path: The path to split

    Returns:
        Tuple of (basename, prefix, exts), where exts is a sequence of filename
        extensions.
    """
    prefix, _, suffix = path.name.partition(os.extsep)
    return path.parent, prefix, suffix.split(os.extsep) if suffix else []


def replace_suffix(path: Path, new_suffix: str) -> Path:
    """Swap everything from the first '.' of the file name for `new_suffix`,
    e.g. 'reads.sorted.bam' -> 'reads_features.bed'.
    """
    parts = split_path(path)
    return parts[0] / (parts[1] + new_suffix)
