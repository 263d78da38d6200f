from collections.abc import Sized
from enum import Enum
from numbers import Integral
import re
from types import MappingProxyType
from typing import (
    Any,
    Iterable,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from rangetools.utils import Genome, InvalidRangeError


IVL = TypeVar("IVL", bound="GenomeInterval")
BED3 = Tuple[str, int, int]
BED6 = Tuple[str, int, int, str, Any, str]

COORDINATE_COLUMNS = ("seqname", "start", "end", "width", "strand")
"""Names reserved for interval coordinates; these can never be attributes."""
INTEGER_RE = re.compile(r"^\s*[+-]?\d+\s*$")


def to_coordinate(value: Any) -> int:
    """Convert an integer, or a string of digits as read from a text file, into
    a coordinate.

    Raises:
        InvalidRangeError for any other value. Floats are rejected rather than
        truncated.
    """
    if isinstance(value, Integral) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str) and INTEGER_RE.match(value):
        return int(value)
    raise InvalidRangeError(f"Coordinates must be integers; got {value!r}")


class Strand(str, Enum):
    """
    Strand of a genomic interval.
    """

    FORWARD = "+"
    REVERSE = "-"
    UNSTRANDED = "*"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union["Strand", str, int, None]) -> "Strand":
        """Convert a strand symbol ('+', '-', '*', '.', 1, -1, 0, None) into a
        Strand.
        """
        if isinstance(value, Strand):
            return value
        if value is None or value in (".", "*", "", 0):
            return cls.UNSTRANDED
        if value in ("+", 1):
            return cls.FORWARD
        if value in ("-", -1):
            return cls.REVERSE
        raise InvalidRangeError(f"Invalid strand {value!r}")

    @property
    def is_reverse(self) -> bool:
        return self is Strand.REVERSE


class Anchor(Enum):
    """
    The coordinate held fixed when the width of an interval changes.
    """

    START = "start"
    END = "end"
    CENTER = "center"
    FIVE_PRIME = "5p"
    THREE_PRIME = "3p"

    @classmethod
    def parse(cls, value: Union["Anchor", str]) -> "Anchor":
        if isinstance(value, Anchor):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Invalid anchor {value!r}")

    def resolve(self, strand: Strand) -> "Anchor":
        """Resolve a strand-relative anchor to START, END or CENTER. Unstranded
        intervals are treated as being on the forward strand.
        """
        if self is Anchor.FIVE_PRIME:
            return Anchor.END if strand.is_reverse else Anchor.START
        if self is Anchor.THREE_PRIME:
            return Anchor.START if strand.is_reverse else Anchor.END
        return self


class GenomeInterval(Sized):
    """
    An immutable interval of a named sequence. Coordinates are one-based and
    closed, so `width == end - start + 1`.

    Args:
        seqname: Name of the sequence (e.g. chromosome).
        start: Start position (1-based, inclusive).
        end: End position (1-based, inclusive); must be >= `start`.
        strand: Strand symbol or :class:`Strand`.
        attributes: Ordered mapping of attribute name to value.

    Raises:
        InvalidRangeError if `end < start` or a coordinate is not an integer.
    """

    __slots__ = ("_seqname", "_start", "_end", "_strand", "_attributes")

    def __init__(
        self,
        seqname: str,
        start: int,
        end: int,
        strand: Union[Strand, str, None] = None,
        attributes: Optional[Mapping[str, Any]] = None
    ) -> None:
        start = to_coordinate(start)
        end = to_coordinate(end)
        if end < start:
            raise InvalidRangeError(
                f"Interval {seqname}:{start}-{end} has width {end - start + 1} < 1"
            )
        if attributes:
            reserved = set(attributes) & set(COORDINATE_COLUMNS)
            if reserved:
                raise InvalidRangeError(
                    f"Attribute names {sorted(reserved)} are reserved for coordinates"
                )
        self._seqname = str(seqname)
        self._start = start
        self._end = end
        self._strand = Strand.parse(strand)
        self._attributes = MappingProxyType(dict(attributes or {}))

    @property
    def seqname(self) -> str:
        return self._seqname

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    @property
    def strand(self) -> Strand:
        return self._strand

    @property
    def attributes(self) -> Mapping[str, Any]:
        return self._attributes

    @property
    def width(self) -> int:
        return self._end - self._start + 1

    @property
    def region(self) -> str:
        return f"{self.seqname}:{self.start}-{self.end}"

    def __len__(self) -> int:
        return self.width

    def __getitem__(self, column: str) -> Any:
        if column in COORDINATE_COLUMNS:
            return getattr(self, column)
        return self._attributes[column]

    def __eq__(self, other) -> bool:
        if not isinstance(other, GenomeInterval):
            return NotImplemented
        return (
            self.seqname == other.seqname
            and self.start == other.start
            and self.end == other.end
            and self.strand == other.strand
            and dict(self.attributes) == dict(other.attributes)
        )

    def __hash__(self) -> int:
        return hash((self.seqname, self.start, self.end, self.strand))

    def __repr__(self) -> str:
        attrs = "".join(f", {k}={v!r}" for k, v in self.attributes.items())
        return f"GenomeInterval({self.region}{self.strand}{attrs})"

    def replace(self: IVL, **kwargs) -> IVL:
        """Returns a copy of this interval with some fields replaced. Accepts
        `seqname`, `start`, `end`, `strand` and `attributes`.
        """
        fields = {
            "seqname": self.seqname,
            "start": self.start,
            "end": self.end,
            "strand": self.strand,
            "attributes": self.attributes,
        }
        fields.update(kwargs)
        return type(self)(**fields)

    def overlaps(self, other: "GenomeInterval", directed: bool = False) -> bool:
        """Do this interval and `other` share at least one position?

        Args:
            other: The other interval.
            directed: Whether the strands must also be identical. An unstranded
                interval only matches another unstranded interval.
        """
        if self.seqname != other.seqname:
            return False
        if directed and self.strand != other.strand:
            return False
        return self.start <= other.end and other.start <= self.end

    def within(self, other: "GenomeInterval", directed: bool = False) -> bool:
        """Is this interval fully contained in `other`?
        """
        return (
            self.overlaps(other, directed)
            and other.start <= self.start
            and self.end <= other.end
        )

    def distance(self, other: "GenomeInterval") -> Optional[int]:
        """Number of positions strictly between this interval and `other`.
        Overlapping and book-ended intervals have distance 0. Returns None if the
        intervals are on different sequences.
        """
        if self.seqname != other.seqname:
            return None
        if other.start > self.end:
            return other.start - self.end - 1
        if self.start > other.end:
            return self.start - other.end - 1
        return 0

    def intersection(self: IVL, other: "GenomeInterval") -> Optional[IVL]:
        """The interval shared by this interval and `other`, or None if they do
        not overlap. Strand and attributes are taken from this interval.
        """
        if self.seqname != other.seqname:
            return None
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if end < start:
            return None
        return self.replace(start=start, end=end)

    def add(self: IVL, other: "GenomeInterval") -> IVL:
        """
        Merge another overlapping or adjacent interval into this one.

        Args:
            other: The interval to add.

        Returns:
            A new interval spanning both, with this interval's strand and
            attributes.
        """
        if self.seqname != other.seqname or (
            other.start > self.end + 1 or self.start > other.end + 1
        ):
            raise InvalidRangeError(
                f"Cannot merge non-overlapping/adjacent intervals {self}, {other}"
            )
        return self.replace(
            start=min(self.start, other.start), end=max(self.end, other.end)
        )

    @classmethod
    def merge(cls: Type[IVL], intervals: Iterable[IVL]) -> IVL:
        """
        Merge overlapping or adjacent intervals.

        Raises:
            InvalidRangeError if any of the intervals do not overlap.
        """
        intervals = sorted(intervals, key=lambda ivl: (ivl.start, ivl.end))
        merged = intervals[0]
        for ivl in intervals[1:]:
            merged = merged.add(ivl)
        return merged

    # Coordinate arithmetic. Every operation picks an anchor from the current
    # coordinates and recomputes the others, so end == start + width - 1.

    def resize(
        self: IVL, width: int, anchor: Union[Anchor, str] = Anchor.START
    ) -> IVL:
        """Change the width of this interval, holding `anchor` fixed.

        Args:
            width: The new width; must be >= 1.
            anchor: Which coordinate to hold fixed.

        Raises:
            InvalidRangeError if `width` < 1.
        """
        if width < 1:
            raise InvalidRangeError(f"Cannot resize {self.region} to width {width}")
        anchor = Anchor.parse(anchor).resolve(self.strand)
        if anchor is Anchor.START:
            start = self.start
        elif anchor is Anchor.END:
            start = self.end - width + 1
        else:
            start = self.start + (self.width - width) // 2
        return self.replace(start=start, end=start + width - 1)

    def stretch(
        self: IVL, extend: int, anchor: Union[Anchor, str, None] = None
    ) -> IVL:
        """Grow (or shrink, if `extend` is negative) this interval.

        Without an anchor both ends move outwards by `extend`. With a start
        anchor only the end moves, with an end anchor only the start moves, and
        with a center anchor each side moves by `extend // 2`.
        """
        if anchor is None:
            start, end = self.start - extend, self.end + extend
        else:
            anchor = Anchor.parse(anchor).resolve(self.strand)
            if anchor is Anchor.START:
                start, end = self.start, self.end + extend
            elif anchor is Anchor.END:
                start, end = self.start - extend, self.end
            else:
                start, end = self.start - extend // 2, self.end + extend // 2
        if end < start:
            raise InvalidRangeError(
                f"Stretching {self.region} by {extend} gives width {end - start + 1}"
            )
        return self.replace(start=start, end=end)

    def shift(self: IVL, offset: int, directed: bool = False) -> IVL:
        """Move this interval by `offset` positions. A positive offset moves to
        the right, or downstream if `directed` (i.e. to the left for intervals on
        the reverse strand).
        """
        if directed and self.strand.is_reverse:
            offset = -offset
        return self.replace(start=self.start + offset, end=self.end + offset)

    def flank(
        self: IVL, width: int, downstream: bool = True, directed: bool = True
    ) -> IVL:
        """A new interval of `width` positions adjacent to this one.

        Args:
            width: Width of the flanking interval; must be >= 1.
            downstream: Whether to flank after the end (True) or before the
                start (False).
            directed: Whether upstream/downstream are relative to the strand of
                this interval. Unstranded intervals are treated as forward.

        Examples:
            GenomeInterval("chr1", 100, 200, "+").flank(8)  # => chr1:201-208
        """
        if width < 1:
            raise InvalidRangeError(f"Flank width must be >= 1; got {width}")
        after = downstream
        if directed and self.strand.is_reverse:
            after = not after
        if after:
            start = self.end + 1
        else:
            start = self.start - width
        return self.replace(start=start, end=start + width - 1)

    def check_bounds(self, genome: Genome) -> None:
        """Raise InvalidRangeError if this interval lies outside the sequence
        lengths in `genome`.
        """
        if self.seqname not in genome:
            raise InvalidRangeError(
                f"Sequence {self.seqname} not found in genome {genome.genome_id}"
            )
        if self.start < 1 or self.end > genome[self.seqname]:
            raise InvalidRangeError(
                f"Interval {self.region} is outside of sequence bounds "
                f"[1, {genome[self.seqname]}]"
            )

    def as_bed3(self) -> BED3:
        """
        Returns this interval as a tuple in BED3 format (zero-based, half-open).

        Returns:
            Tuple of length 3: (seqname, start, end)
        """
        return self.seqname, self.start - 1, self.end

    def as_bed6(
        self, name: Optional[str] = None, value: Optional[Any] = None
    ) -> BED6:
        """
        Returns this interval as a tuple in BED6 format.

        Args:
            name: Value for the name column; defaults to the region string.
            value: Value for the score column; defaults to the width.

        Returns:
            Tuple of length 6: (seqname, start, end, name, value, strand).
        """
        if name is None:
            name = self.region
        if value is None:
            value = self.width
        strand = "." if self.strand is Strand.UNSTRANDED else str(self.strand)
        return self.seqname, self.start - 1, self.end, name, value, strand

    def as_bed_extended(
        self, attribute_names: Optional[Sequence[str]] = None, **kwargs
    ) -> tuple:
        """
        Returns this interval as a tuple with the first 6 columns being BED6 format
        and additional columns being attributes.

        Args:
            attribute_names: Optional list of attribute names for the extended
                columns. If specified, columns will be added in the specified order,
                and the empty value (".") used for missing values. Otherwise, all
                attributes are added in schema order.
            kwargs: Keyword arguments to `as_bed6`.
        """
        bed = self.as_bed6(**kwargs)
        if attribute_names is None:
            attribute_names = list(self.attributes)
        return bed + tuple(
            "." if self.attributes.get(name) is None else self.attributes[name]
            for name in attribute_names
        )

    def as_dict(self) -> dict:
        d = {
            "seqname": self.seqname,
            "start": self.start,
            "end": self.end,
            "width": self.width,
            "strand": str(self.strand),
        }
        d.update(self.attributes)
        return d
