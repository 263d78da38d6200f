from contextlib import contextmanager
import csv
import logging
from pathlib import Path
import statistics
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from xphyle import open_

from rangetools.index import IntervalIndex
from rangetools.intervals import (
    COORDINATE_COLUMNS,
    Anchor,
    GenomeInterval,
    Strand,
    to_coordinate,
)
from rangetools.utils import (
    Genome,
    InvalidContextError,
    InvalidRangeError,
    OrderedSet,
    SchemaError,
    check_genomes,
)


logger = logging.getLogger(__name__)


class _VerbScope:
    """Marks the lifetime of a single verb call. Rows and groups handed to
    user functions are only usable while their scope is active.
    """

    __slots__ = ("active",)

    def __init__(self):
        self.active = True

    def check(self, what: str) -> None:
        if not self.active:
            raise InvalidContextError(
                f"{what} can only be used inside the verb that created it"
            )


@contextmanager
def _verb_scope() -> Iterator[_VerbScope]:
    scope = _VerbScope()
    try:
        yield scope
    finally:
        scope.active = False


class Aggregate:
    """
    A deferred reduction over the rows of a group, e.g. `mean("score")`. An
    Aggregate has no value of its own; it is evaluated by `mutate` (once per
    group, broadcast to every row), `summarise`, or a :class:`GroupContext`.

    Args:
        name: Name of the aggregate function, for messages.
        column: The column to reduce, or None for row counts.
        fn: Reduction over the list of non-missing column values (or over the
            number of rows, if `column` is None).
    """

    def __init__(self, name: str, column: Optional[str], fn: Callable) -> None:
        self.name = name
        self.column = column
        self.fn = fn

    def __repr__(self) -> str:
        return f"{self.name}({self.column or ''})"

    def evaluate(self, group: "GroupContext") -> Any:
        if self.column is None:
            return self.fn(len(group))
        values = [v for v in group.values(self.column) if v is not None]
        if not values:
            return None
        return self.fn(values)

    def _no_context(self, *_args, **_kwargs):
        raise InvalidContextError(
            f"Aggregate {self!r} can only be evaluated inside mutate() or "
            "summarise(); inside a row function use the row's group instead, "
            "e.g. row.group.mean('score')"
        )

    value = property(_no_context)
    __call__ = _no_context
    __bool__ = _no_context
    __float__ = _no_context
    __int__ = _no_context
    __index__ = _no_context
    __lt__ = __le__ = __gt__ = __ge__ = _no_context
    __add__ = __radd__ = __sub__ = __rsub__ = _no_context
    __mul__ = __rmul__ = __truediv__ = __rtruediv__ = _no_context
    __neg__ = __abs__ = _no_context


def n() -> Aggregate:
    """Number of rows in the group."""
    return Aggregate("n", None, lambda count: count)


def n_distinct(column: str) -> Aggregate:
    return Aggregate("n_distinct", column, lambda values: len(set(values)))


def sum_of(column: str) -> Aggregate:
    return Aggregate("sum", column, sum)


def mean(column: str) -> Aggregate:
    return Aggregate("mean", column, statistics.mean)


def median(column: str) -> Aggregate:
    return Aggregate("median", column, statistics.median)


def min_of(column: str) -> Aggregate:
    return Aggregate("min", column, min)


def max_of(column: str) -> Aggregate:
    return Aggregate("max", column, max)


def first(column: str) -> Aggregate:
    return Aggregate("first", column, lambda values: values[0])


def last(column: str) -> Aggregate:
    return Aggregate("last", column, lambda values: values[-1])


class GroupContext:
    """
    The rows of one group of a :class:`GenomeRanges`, as seen from inside a verb.

    Args:
        ranges: The collection being transformed.
        key: Values of the grouping columns for this group.
        rows: Positions of the group's rows in `ranges`.
        scope: Lifetime of the enclosing verb.
    """

    def __init__(
        self,
        ranges: "GenomeRanges",
        key: tuple,
        rows: Sequence[int],
        scope: _VerbScope
    ) -> None:
        self._ranges = ranges
        self._key = key
        self._rows = rows
        self._scope = scope
        self._results: Dict[Tuple[str, Optional[str]], Any] = {}

    def __len__(self) -> int:
        self._scope.check("A group")
        return len(self._rows)

    @property
    def keys(self) -> Dict[str, Any]:
        self._scope.check("A group")
        return dict(zip(self._ranges.groups, self._key))

    def values(self, column: str) -> List[Any]:
        """All the values of `column` in this group, in row order.
        """
        self._scope.check("A group")
        self._ranges.check_columns(column)
        intervals = self._ranges.intervals
        return [intervals[i][column] for i in self._rows]

    def aggregate(self, agg: Aggregate) -> Any:
        """Evaluate `agg` over this group. Results are cached by aggregate name
        and column for the lifetime of the verb.
        """
        self._scope.check("A group")
        key = (agg.name, agg.column)
        if key not in self._results:
            self._results[key] = agg.evaluate(self)
        return self._results[key]

    def n(self) -> int:
        return self.aggregate(n())

    def n_distinct(self, column: str) -> int:
        return self.aggregate(n_distinct(column))

    def sum(self, column: str):
        return self.aggregate(sum_of(column))

    def mean(self, column: str):
        return self.aggregate(mean(column))

    def median(self, column: str):
        return self.aggregate(median(column))

    def min(self, column: str):
        return self.aggregate(min_of(column))

    def max(self, column: str):
        return self.aggregate(max_of(column))


class Row:
    """
    One interval of a :class:`GenomeRanges`, as seen from inside a verb. Columns
    are available as attributes (`row.start`, `row.score`) or items
    (`row["score"]`); `row.group` is the row's :class:`GroupContext`.
    """

    __slots__ = ("_ranges", "_interval", "_group", "_scope")

    def __init__(
        self,
        ranges: "GenomeRanges",
        interval: GenomeInterval,
        group: GroupContext,
        scope: _VerbScope
    ) -> None:
        self._ranges = ranges
        self._interval = interval
        self._group = group
        self._scope = scope

    @property
    def interval(self) -> GenomeInterval:
        self._scope.check("A row")
        return self._interval

    @property
    def group(self) -> GroupContext:
        self._scope.check("A row")
        return self._group

    def __getitem__(self, column: str) -> Any:
        self._scope.check("A row")
        self._ranges.check_columns(column)
        return self._interval[column]

    def __getattr__(self, column: str) -> Any:
        if column.startswith("_"):
            raise AttributeError(column)
        return self[column]

    def __repr__(self) -> str:
        return f"Row({self._interval!r})"


def any_of(*predicates: Callable[[Row], Any]) -> Callable[[Row], bool]:
    """Combine `filter` predicates with OR rather than AND.
    """
    def _any(row: Row) -> bool:
        return any(predicate(row) for predicate in predicates)
    return _any


class SummaryTable:
    """
    Plain tabular result of `summarise`. Rows no longer denote genomic loci;
    use :meth:`to_ranges` to re-annotate them explicitly.

    Args:
        columns: Column names.
        rows: Row tuples, in the same order as `columns`.
    """

    def __init__(self, columns: Sequence[str], rows: Iterable[Sequence[Any]]):
        self.columns = tuple(columns)
        self.rows = [tuple(row) for row in rows]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return (dict(zip(self.columns, row)) for row in self.rows)

    def __getitem__(self, i: int) -> Dict[str, Any]:
        return dict(zip(self.columns, self.rows[i]))

    def __eq__(self, other) -> bool:
        if not isinstance(other, SummaryTable):
            return NotImplemented
        return self.columns == other.columns and self.rows == other.rows

    def __repr__(self) -> str:
        return f"SummaryTable({len(self)} rows x {len(self.columns)} columns)"

    def column(self, name: str) -> List[Any]:
        if name not in self.columns:
            raise SchemaError(f"Unknown column {name!r}; expected one of {self.columns}")
        i = self.columns.index(name)
        return [row[i] for row in self.rows]

    def write_tsv(self, outfile: Path, header: bool = True) -> None:
        """Write this table to a tab-delimited file (compressed if the file name
        ends with a compression extension). Missing values are written as '.'.
        """
        with open_(outfile, "wt") as out:
            writer = csv.writer(out, delimiter="\t", lineterminator="\n")
            if header:
                writer.writerow(self.columns)
            for row in self.rows:
                writer.writerow("." if value is None else value for value in row)

    def to_ranges(
        self,
        mapping: Optional[Mapping[str, str]] = None,
        genome: Optional[Genome] = None
    ) -> "GenomeRanges":
        """Interpret the rows of this table as intervals. See
        :meth:`GenomeRanges.from_rows`.
        """
        return GenomeRanges.from_rows(iter(self), mapping=mapping, genome=genome)


ColumnValue = Union[Callable[[Row], Any], Aggregate, Any]


class GenomeRanges:
    """
    An immutable, ordered collection of :class:`GenomeInterval`s that share an
    attribute schema. Every verb returns a new GenomeRanges.

    Args:
        intervals: The intervals.
        columns: The attribute schema. Defaults to the union of the attribute
            names of `intervals`, in order of first appearance. Intervals missing
            an attribute get None.
        groups: Names of the grouping columns; empty if ungrouped.
        anchor: The anchor used when `width` is changed, or None if unanchored
            (in which case width changes hold the start fixed).
        genome: Optional genome metadata; intervals are checked against its
            sequence lengths.

    Raises:
        SchemaError if an interval has an attribute not in `columns` or a group
        key is not a column.
        InvalidRangeError if an interval lies outside the genome.
    """

    def __init__(
        self,
        intervals: Iterable[GenomeInterval] = (),
        columns: Optional[Sequence[str]] = None,
        groups: Sequence[str] = (),
        anchor: Union[Anchor, str, None] = None,
        genome: Optional[Genome] = None
    ) -> None:
        intervals = tuple(intervals)
        if columns is None:
            columns = OrderedSet(name for ivl in intervals for name in ivl.attributes)
        else:
            schema = set(columns)
            for ivl in intervals:
                extra = set(ivl.attributes) - schema
                if extra:
                    raise SchemaError(
                        f"Interval {ivl.region} has attributes {sorted(extra)} "
                        f"that are not in the schema {tuple(columns)}"
                    )
        self._columns = tuple(columns)
        bad = set(self._columns) & set(COORDINATE_COLUMNS)
        if bad:
            raise SchemaError(f"Column names {sorted(bad)} are reserved")
        self._intervals = tuple(
            ivl if tuple(ivl.attributes) == self._columns else ivl.replace(
                attributes={name: ivl.attributes.get(name) for name in self._columns}
            )
            for ivl in intervals
        )
        self._groups = tuple(groups)
        self.check_columns(*self._groups)
        self._anchor = None if anchor is None else Anchor.parse(anchor)
        self._genome = genome
        if genome is not None:
            for ivl in self._intervals:
                ivl.check_bounds(genome)
        self._index_cache: Dict[bool, IntervalIndex] = {}

    @classmethod
    def from_intervals(
        cls, intervals: Iterable[GenomeInterval], genome: Optional[Genome] = None
    ) -> "GenomeRanges":
        return cls(intervals, genome=genome)

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Union[Mapping[str, Any], Sequence[Any]]],
        mapping: Optional[Mapping[str, str]] = None,
        columns: Optional[Sequence[str]] = None,
        genome: Optional[Genome] = None
    ) -> "GenomeRanges":
        """
        Create a GenomeRanges from tabular rows.

        Args:
            rows: Mappings of column name to value, or sequences of values if
                `columns` is given.
            mapping: Map of source column name to canonical field name (`seqname`,
                `start`, `end`, `width`, `strand`). Columns already named for a
                canonical field need no mapping. All other columns become
                attributes.
            columns: Column names for sequence rows.
            genome: Optional genome metadata.

        Returns:
            A new GenomeRanges. The rows are fully consumed.

        Raises:
            SchemaError if a row lacks `seqname`, `start`, or both of `end` and
            `width`.
        """
        mapping = dict(mapping or {})
        bad = set(mapping.values()) - set(COORDINATE_COLUMNS)
        if bad:
            raise SchemaError(f"Cannot map columns to non-coordinate fields {sorted(bad)}")
        intervals = []
        schema = OrderedSet()

        for num, row in enumerate(rows, 1):
            if not isinstance(row, Mapping):
                if columns is None:
                    raise SchemaError("'columns' are required for sequence rows")
                row = dict(zip(columns, row))
            fields = {}
            attributes = {}
            for name, value in row.items():
                canonical = mapping.get(name, name)
                if canonical in COORDINATE_COLUMNS:
                    fields[canonical] = value
                else:
                    attributes[name] = value
            missing = {"seqname", "start"} - set(fields)
            if missing or ("end" not in fields and "width" not in fields):
                raise SchemaError(
                    f"Row {num} is missing required fields "
                    f"{sorted(missing) or ['end/width']}"
                )
            start = to_coordinate(fields["start"])
            if "end" in fields:
                end = to_coordinate(fields["end"])
                width = fields.get("width")
                if width is not None and end - start + 1 != to_coordinate(width):
                    raise InvalidRangeError(
                        f"Row {num} has inconsistent start, end and width"
                    )
            else:
                end = start + to_coordinate(fields["width"]) - 1
            schema.update(attributes)
            intervals.append(GenomeInterval(
                fields["seqname"], start, end, fields.get("strand"), attributes
            ))

        logger.debug("Loaded %d intervals from rows", len(intervals))
        return cls(intervals, columns=list(schema), genome=genome)

    # Accessors

    @property
    def intervals(self) -> Tuple[GenomeInterval, ...]:
        return self._intervals

    @property
    def columns(self) -> Tuple[str, ...]:
        """The attribute schema (coordinate columns excluded)."""
        return self._columns

    @property
    def groups(self) -> Tuple[str, ...]:
        return self._groups

    @property
    def is_grouped(self) -> bool:
        return len(self._groups) > 0

    @property
    def anchor(self) -> Optional[Anchor]:
        return self._anchor

    @property
    def genome(self) -> Optional[Genome]:
        return self._genome

    def __len__(self) -> int:
        return len(self._intervals)

    def __iter__(self) -> Iterator[GenomeInterval]:
        return iter(self._intervals)

    def __getitem__(
        self, item: Union[int, slice]
    ) -> Union[GenomeInterval, "GenomeRanges"]:
        if isinstance(item, slice):
            return self._copy(intervals=self._intervals[item])
        return self._intervals[item]

    def __eq__(self, other) -> bool:
        if not isinstance(other, GenomeRanges):
            return NotImplemented
        return (
            self._intervals == other._intervals
            and self._columns == other._columns
            and self._groups == other._groups
            and self._anchor == other._anchor
            and self._genome == other._genome
        )

    def __repr__(self) -> str:
        desc = f"GenomeRanges({len(self)} intervals, columns={list(self._columns)}"
        if self._groups:
            desc += f", groups={list(self._groups)}"
        if self._anchor:
            desc += f", anchor={self._anchor.value}"
        return desc + ")"

    def take(self, positions: Iterable[int]) -> "GenomeRanges":
        """The rows at `positions`, in the given order.
        """
        return self._copy(intervals=[self._intervals[i] for i in positions])

    def seqnames(self) -> Tuple[str, ...]:
        """Distinct sequence names, in order of first appearance."""
        return tuple(OrderedSet(ivl.seqname for ivl in self._intervals))

    def as_rows(self) -> List[dict]:
        return [ivl.as_dict() for ivl in self._intervals]

    def check_columns(self, *columns: str) -> None:
        """Raise SchemaError unless every one of `columns` is a coordinate column
        or an attribute in the schema.
        """
        for column in columns:
            if column not in COORDINATE_COLUMNS and column not in self._columns:
                raise SchemaError(
                    f"Unknown column {column!r}; available columns are "
                    f"{COORDINATE_COLUMNS + self._columns}"
                )

    def index(self, directed: bool = False) -> IntervalIndex:
        """The (cached) interval index of this collection.
        """
        index = self._index_cache.get(directed)
        if index is None:
            index = IntervalIndex(self._intervals, directed)
            self._index_cache[directed] = index
        return index

    def _copy(self, **kwargs) -> "GenomeRanges":
        fields = {
            "intervals": self._intervals,
            "columns": self._columns,
            "groups": self._groups,
            "anchor": self._anchor,
            "genome": self._genome,
        }
        fields.update(kwargs)
        return GenomeRanges(**fields)

    # Grouping

    def group_by(self, *keys: str) -> "GenomeRanges":
        """Group rows by the values of `keys`. Storage order is unchanged.
        """
        self.check_columns(*keys)
        return self._copy(groups=keys)

    def ungroup(self) -> "GenomeRanges":
        return self._copy(groups=())

    def _group_rows(self) -> List[Tuple[tuple, List[int]]]:
        """Group keys and the row positions of each group, in order of first
        appearance. An ungrouped collection is a single group.
        """
        if not self._groups:
            return [((), list(range(len(self._intervals))))]
        groups: Dict[Hashable, List[int]] = {}
        for i, ivl in enumerate(self._intervals):
            key = tuple(_hashable(ivl[name]) for name in self._groups)
            groups.setdefault(key, []).append(i)
        return list(groups.items())

    def _rows(self, scope: _VerbScope) -> Tuple[List[GroupContext], List[Row]]:
        group_contexts = []
        rows: List[Optional[Row]] = [None] * len(self._intervals)
        for key, positions in self._group_rows():
            group = GroupContext(self, key, positions, scope)
            group_contexts.append(group)
            for i in positions:
                rows[i] = Row(self, self._intervals[i], group, scope)
        return group_contexts, rows

    # Verbs

    def filter(self, *predicates: Callable[[Row], Any]) -> "GenomeRanges":
        """Keep the rows for which all `predicates` are true. Use :func:`any_of`
        to combine predicates with OR.
        """
        for predicate in predicates:
            if isinstance(predicate, Aggregate) or not callable(predicate):
                raise TypeError(f"Filter predicates must be callables; got {predicate!r}")
        with _verb_scope() as scope:
            _, rows = self._rows(scope)
            keep = [
                ivl for ivl, row in zip(self._intervals, rows)
                if all(predicate(row) for predicate in predicates)
            ]
        return self._copy(intervals=keep)

    def mutate(self, **columns: ColumnValue) -> "GenomeRanges":
        """
        Add or modify columns. Values may be callables over a :class:`Row`,
        :class:`Aggregate`s (evaluated per group, or over all rows if ungrouped,
        and broadcast to every row), lists with one value per row, or constants.
        All values are computed from the input rows before any is assigned.

        Coordinate columns may be assigned too. Assigning `width` alone holds the
        anchor fixed (the start, unless the collection is anchored); `start` alone
        keeps `end` and vice versa; any two of `start`, `end` and `width`
        determine the third.

        Raises:
            InvalidRangeError if a resulting width is < 1.
        """
        with _verb_scope() as scope:
            group_contexts, rows = self._rows(scope)
            values: Dict[str, List[Any]] = {}
            for name, value in columns.items():
                if isinstance(value, Aggregate):
                    broadcast: List[Any] = [None] * len(rows)
                    for group in group_contexts:
                        result = group.aggregate(value)
                        for i in group._rows:
                            broadcast[i] = result
                    values[name] = broadcast
                elif callable(value):
                    values[name] = [value(row) for row in rows]
                elif isinstance(value, (list, tuple)) and len(value) == len(rows):
                    values[name] = list(value)
                else:
                    values[name] = [value] * len(rows)

        coord_names = [name for name in values if name in COORDINATE_COLUMNS]
        attr_names = [name for name in values if name not in COORDINATE_COLUMNS]
        new_columns = OrderedSet(self._columns)
        new_columns.update(attr_names)
        anchor = self._anchor or Anchor.START

        intervals = []
        for i, ivl in enumerate(self._intervals):
            if coord_names:
                ivl = _assign_coordinates(
                    ivl, {name: values[name][i] for name in coord_names}, anchor
                )
            if attr_names:
                attributes = dict(ivl.attributes)
                attributes.update((name, values[name][i]) for name in attr_names)
                ivl = ivl.replace(attributes=attributes)
            intervals.append(ivl)

        return self._copy(intervals=intervals, columns=list(new_columns))

    def select(self, *columns: str) -> "GenomeRanges":
        """
        Keep only the named attribute columns, in the given order. Coordinates
        are always kept, as are grouping columns. If every name is prefixed with
        '-', those columns are dropped instead.
        """
        if columns and all(column.startswith("-") for column in columns):
            dropped = [column[1:] for column in columns]
            self.check_columns(*dropped)
            selected = [column for column in self._columns if column not in dropped]
        else:
            self.check_columns(*columns)
            selected = [column for column in columns if column in self._columns]
        keep = OrderedSet(
            key for key in self._groups
            if key in self._columns and key not in selected
        )
        keep.update(selected)
        keep = list(keep)
        intervals = [
            ivl.replace(attributes={name: ivl.attributes[name] for name in keep})
            for ivl in self._intervals
        ]
        return self._copy(intervals=intervals, columns=keep)

    def arrange(self, *by: str) -> "GenomeRanges":
        """
        Sort rows by the given columns. Prefix a column name with '-' for
        descending order. Sorting is stable and missing values sort last.
        """
        keys = [(column[1:], True) if column.startswith("-") else (column, False)
                for column in by]
        self.check_columns(*(column for column, _ in keys))
        intervals = list(self._intervals)
        for column, descending in reversed(keys):
            if descending:
                intervals.sort(
                    key=lambda ivl: _sort_key(ivl, column, descending=True),
                    reverse=True
                )
            else:
                intervals.sort(key=lambda ivl: _sort_key(ivl, column))
        return self._copy(intervals=intervals)

    def summarise(
        self, **aggregations: Union[Aggregate, Callable[[GroupContext], Any]]
    ) -> SummaryTable:
        """
        Reduce each group (or the whole collection, if ungrouped) to one row.

        Args:
            aggregations: Map of output column name to an :class:`Aggregate` or a
                callable over a :class:`GroupContext`.

        Returns:
            A SummaryTable with the grouping columns followed by one column per
            aggregation, one row per group in order of first appearance.
        """
        with _verb_scope() as scope:
            group_contexts, _ = self._rows(scope)
            rows = []
            for group in group_contexts:
                row = list(group._key)
                for name, agg in aggregations.items():
                    if isinstance(agg, Aggregate):
                        row.append(group.aggregate(agg))
                    else:
                        row.append(agg(group))
                rows.append(row)
        return SummaryTable(self._groups + tuple(aggregations), rows)

    summarize = summarise

    # Anchoring and coordinate arithmetic

    def set_anchor(self, anchor: Union[Anchor, str]) -> "GenomeRanges":
        """Returns a copy that holds `anchor` fixed when widths change.
        """
        return self._copy(anchor=Anchor.parse(anchor))

    def unanchor(self) -> "GenomeRanges":
        return self._copy(anchor=None)

    def anchor_start(self) -> "GenomeRanges":
        return self.set_anchor(Anchor.START)

    def anchor_end(self) -> "GenomeRanges":
        return self.set_anchor(Anchor.END)

    def anchor_center(self) -> "GenomeRanges":
        return self.set_anchor(Anchor.CENTER)

    def anchor_5p(self) -> "GenomeRanges":
        return self.set_anchor(Anchor.FIVE_PRIME)

    def anchor_3p(self) -> "GenomeRanges":
        return self.set_anchor(Anchor.THREE_PRIME)

    def _map(self, fn: Callable[[GenomeInterval], GenomeInterval]) -> "GenomeRanges":
        return self._copy(intervals=[fn(ivl) for ivl in self._intervals])

    def resize(self, width: int) -> "GenomeRanges":
        """Set the width of every interval, holding the anchor (default: start)
        fixed.
        """
        anchor = self._anchor or Anchor.START
        return self._map(lambda ivl: ivl.resize(width, anchor))

    def stretch(self, extend: int) -> "GenomeRanges":
        """Grow every interval by `extend` positions at the end(s) not held by the
        anchor. Unanchored intervals grow at both ends.
        """
        return self._map(lambda ivl: ivl.stretch(extend, self._anchor))

    def shift(self, offset: int, directed: bool = False) -> "GenomeRanges":
        return self._map(lambda ivl: ivl.shift(offset, directed))

    def shift_left(self, offset: int) -> "GenomeRanges":
        return self.shift(-offset)

    def shift_right(self, offset: int) -> "GenomeRanges":
        return self.shift(offset)

    def shift_upstream(self, offset: int) -> "GenomeRanges":
        return self.shift(-offset, directed=True)

    def shift_downstream(self, offset: int) -> "GenomeRanges":
        return self.shift(offset, directed=True)

    def flank(
        self, width: int, downstream: bool = True, directed: bool = True
    ) -> "GenomeRanges":
        return self._map(lambda ivl: ivl.flank(width, downstream, directed))

    def flank_upstream(self, width: int) -> "GenomeRanges":
        return self.flank(width, downstream=False)

    def flank_downstream(self, width: int) -> "GenomeRanges":
        return self.flank(width, downstream=True)

    def flank_left(self, width: int) -> "GenomeRanges":
        return self.flank(width, downstream=False, directed=False)

    def flank_right(self, width: int) -> "GenomeRanges":
        return self.flank(width, downstream=True, directed=False)

    # Genome metadata

    def set_genome(self, genome: Optional[Genome]) -> "GenomeRanges":
        """Attach genome metadata, checking that every interval lies within its
        sequence.
        """
        return self._copy(genome=genome)

    # Set-like operations

    def reduce_ranges(
        self, directed: bool = False, min_gap: int = 0
    ) -> "GenomeRanges":
        """
        Merge overlapping and adjacent intervals, within each group if grouped.

        Args:
            directed: Whether to merge only intervals on the same strand. If not,
                merged intervals are unstranded.
            min_gap: Intervals separated by at most this many positions are
                also merged.

        Returns:
            A new GenomeRanges with the grouping columns (if any) and an `n`
            column holding the number of intervals merged into each output
            interval. Output is ordered by group, then sequence name (in order
            of first appearance), strand and start.
        """
        seq_order = {name: i for i, name in enumerate(self.seqnames())}
        strand_order = {strand: i for i, strand in enumerate(Strand)}
        reduced = []

        for key, positions in self._group_rows():
            partitions: Dict[Hashable, List[GenomeInterval]] = {}
            for i in positions:
                ivl = self._intervals[i]
                strand = ivl.strand if directed else Strand.UNSTRANDED
                partitions.setdefault((ivl.seqname, strand), []).append(ivl)
            group_attrs = {
                name: value for name, value in zip(self._groups, key)
                if name in self._columns
            }
            for seqname, strand in sorted(
                partitions, key=lambda k: (seq_order[k[0]], strand_order[k[1]])
            ):
                ivls = sorted(
                    partitions[(seqname, strand)], key=lambda ivl: (ivl.start, ivl.end)
                )
                start, end, count = ivls[0].start, ivls[0].end, 1
                for ivl in ivls[1:]:
                    if ivl.start <= end + 1 + min_gap:
                        end = max(end, ivl.end)
                        count += 1
                    else:
                        reduced.append(GenomeInterval(
                            seqname, start, end, strand, dict(group_attrs, n=count)
                        ))
                        start, end, count = ivl.start, ivl.end, 1
                reduced.append(GenomeInterval(
                    seqname, start, end, strand, dict(group_attrs, n=count)
                ))

        groups = tuple(key for key in self._groups if key in self._columns)
        columns = list(groups) + ["n"]
        return GenomeRanges(reduced, columns=columns, groups=groups, genome=self._genome)


def bind_ranges(*ranges: GenomeRanges) -> GenomeRanges:
    """
    Concatenate collections. The schema is the union of the input schemas;
    the result is ungrouped and unanchored.

    Raises:
        GenomeMismatchError if the inputs carry incompatible genome metadata.
    """
    genome = check_genomes(*(r.genome for r in ranges))
    columns = OrderedSet()
    for r in ranges:
        columns.update(r.columns)
    return GenomeRanges(
        (ivl for r in ranges for ivl in r), columns=list(columns), genome=genome
    )


def _assign_coordinates(
    ivl: GenomeInterval, values: Dict[str, Any], anchor: Anchor
) -> GenomeInterval:
    ivl = ivl.replace(
        seqname=values.get("seqname", ivl.seqname),
        strand=values.get("strand", ivl.strand)
    )
    given = {name for name in ("start", "end", "width") if name in values}
    start = to_coordinate(values["start"]) if "start" in given else ivl.start
    end = to_coordinate(values["end"]) if "end" in given else ivl.end
    width = to_coordinate(values["width"]) if "width" in given else None

    if width is not None and width < 1:
        raise InvalidRangeError(f"Cannot set width of {ivl.region} to {width}")

    if given == {"width"}:
        return ivl.resize(width, anchor)
    if given == {"start", "width"}:
        end = start + width - 1
    elif given == {"end", "width"}:
        start = end - width + 1
    elif given == {"start", "end", "width"} and end - start + 1 != width:
        raise InvalidRangeError(
            f"Inconsistent coordinates: start={start}, end={end}, width={width}"
        )
    if end < start:
        raise InvalidRangeError(
            f"Assignment gives {ivl.seqname}:{start}-{end} with width {end - start + 1}"
        )
    return ivl.replace(start=start, end=end)


def _hashable(value: Any) -> Hashable:
    if isinstance(value, Strand):
        return value.value
    if isinstance(value, list):
        return tuple(value)
    return value


def _sort_key(ivl: GenomeInterval, column: str, descending: bool = False) -> tuple:
    value = ivl[column]
    if isinstance(value, Strand):
        value = value.value
    if descending:
        return value is not None, value
    return value is None, value
