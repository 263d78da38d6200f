"""rangetools command line interface.
"""
import logging

from rangetools.console import features, flank, join

import autoclick as ac


COMMON_SHORT_NAMES = {
    "query": "a",
    "subject": "b",
    "intervals": "a",
    "primary": "i",
    "regions_bed": "p",
    "outfile": "o",
    "contig_sizes": "z",
    "directed": "d",
}


def merge_short_names(d):
    sn = dict(COMMON_SHORT_NAMES)
    sn.update(d)
    return sn


# Set global options
ac.set_global("infer_short_names", False)
ac.set_global("add_composite_prefixes", False)


@ac.group()
def rangetools(verbose: bool = False):
    """
    Fluent operations on genomic intervals.

    Args:
        verbose: Log progress messages.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


# Join the intervals of two BED files by overlap or proximity.
rangetools.command(
    decorated=join.join,
    types={
        "suffix": ac.DelimitedList(str)
    },
    validations={
        "suffix": ac.SequenceLength(2, 2)
    },
    short_names=merge_short_names({
        "kind": "k"
    })
)


# Generate flanking intervals.
rangetools.command(
    decorated=flank.flank,
    short_names=merge_short_names({
        "width": "w"
    })
)


# Count the reads in a primary (BAM) file that overlap
# each region in a BED file.
rangetools.command(
    decorated=features.features,
    short_names=merge_short_names({
        "summary": "s",
        "min_mapq": "q"
    })
)
