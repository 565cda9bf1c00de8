#!/usr/bin/env python
"""Quality checks for nucleosome maps produced by
:mod:`nucleomap.genomics.nucleosomes`, and removal of heavily overlapping calls.

Two checks are made on each nucleosome in a table:

  #. *Overlap*. A nucleosome overlaps the next one on the same chromosome
     if the next one starts inside it. The overlap length is
     `stop - next_start`.

  #. *Centering*. The signal within 35 bp of the called midpoint is
     re-examined. If its maximum lies within 10 bp of the midpoint, the
     nucleosome is `'centered'`; otherwise it is `'offset'`. The signed
     distance from the midpoint to the closest maximum is reported.

Results are added to the table as columns `overlap_length`,
`center_peak_mapping`, and `center_peak_offset`.
:func:`summarize_verification` condenses these into summary statistics,
and :func:`filter_overlaps` removes one nucleosome of each pair that overlaps
by more than a given length.
"""
import numpy
import pandas

from nucleomap.genomics.nucleosomes import max_positions, closest_position
from nucleomap.util.io.openers import read_pl_table
from nucleomap.util.services.exceptions import MalformedFileError

CENTER_RADIUS = 35
CENTER_TOLERANCE = 10
DEFAULT_MAX_OVERLAP = 30

CENTERED = "centered"
OFFSET = "offset"

_REQUIRED_COLUMNS = ["Chromosome","Start","Stop"]


def read_nucleosome_table(filename):
    """Read a nucleosome table written by `map_nucleosomes`. If the table
    lacks a `Midpoint` column, midpoints are calculated from `Start`
    and `Stop`, rounding halves up.

    Parameters
    ----------
    filename : str
        Tab-delimited table, optionally gzipped or bzipped

    Returns
    -------
    :class:`pandas.DataFrame`

    Raises
    ------
    MalformedFileError
        If `Chromosome`, `Start`, or `Stop` columns are missing
    """
    table = read_pl_table(filename,na_values=["."],keep_default_na=False,
                          dtype={"Chromosome" : str})
    missing = [X for X in _REQUIRED_COLUMNS if X not in table.columns]
    if len(missing) > 0:
        raise MalformedFileError(filename,"Missing required columns: %s" % ", ".join(missing))

    if "Midpoint" not in table.columns:
        table["Midpoint"] = (table["Start"] + table["Stop"] + 1) // 2
    if "Fuzziness" in table.columns:
        table["Fuzziness"] = table["Fuzziness"].astype("Int64")

    return table

def overlap_lengths(table):
    """Find the length by which each nucleosome overlaps the next
    nucleosome on the same chromosome

    Parameters
    ----------
    table : :class:`pandas.DataFrame`
        Nucleosome table, sorted by chromosome and start

    Returns
    -------
    :class:`pandas.Series`
        Overlap lengths, `<NA>` where there is no overlap
    """
    chroms = table["Chromosome"].tolist()
    starts = table["Start"].tolist()
    stops  = table["Stop"].tolist()

    overlaps = []
    for i in range(len(table)):
        if i + 1 < len(table) and chroms[i] == chroms[i+1] \
           and starts[i] < starts[i+1] < stops[i]:
            overlaps.append(stops[i] - starts[i+1])
        else:
            overlaps.append(None)

    return pandas.Series(overlaps,index=table.index,dtype="Int64")

def center_peak_mapping(source,chrom,midpoint,radius=CENTER_RADIUS,tolerance=CENTER_TOLERANCE):
    """Check whether the signal maximum near a nucleosome coincides with
    its called midpoint

    Parameters
    ----------
    source : |AbstractScoreSource|
        Occupancy data

    chrom : str
        Chromosome name

    midpoint : int
        Called midpoint

    radius : int, optional
        Half-width of the region examined (Default: 35)

    tolerance : int, optional
        Largest distance at which a maximum counts as centered (Default: 10)

    Returns
    -------
    str or None
        `'centered'` or `'offset'`, or `None` if there is no signal

    int or None
        Signed distance from `midpoint` to the closest maximum,
        or `None` if there is no signal
    """
    scores = source.region_scores(chrom,midpoint - radius,midpoint + radius)
    if len(scores) == 0:
        return None, None

    offset = closest_position(max_positions(scores),midpoint) - midpoint
    label = CENTERED if abs(offset) <= tolerance else OFFSET
    return label, offset

def verify_table(source,table,radius=CENTER_RADIUS,tolerance=CENTER_TOLERANCE):
    """Add overlap and centering columns to a nucleosome table

    Parameters
    ----------
    source : |AbstractScoreSource|
        Occupancy data

    table : :class:`pandas.DataFrame`
        Nucleosome table, e.g. from :func:`read_nucleosome_table`

    radius : int, optional
        Half-width of the region examined for centering (Default: 35)

    tolerance : int, optional
        Largest distance at which a maximum counts as centered (Default: 10)

    Returns
    -------
    :class:`pandas.DataFrame`
        Copy of `table` with columns `overlap_length`, `center_peak_mapping`
        and `center_peak_offset` added
    """
    table = table.copy()
    table["overlap_length"] = overlap_lengths(table)

    labels  = []
    offsets = []
    for chrom, midpoint in zip(table["Chromosome"],table["Midpoint"]):
        label, offset = center_peak_mapping(source,chrom,int(midpoint),radius=radius,tolerance=tolerance)
        labels.append(label)
        offsets.append(offset)

    table["center_peak_mapping"] = pandas.Series(labels,index=table.index,dtype=object)
    table["center_peak_offset"]  = pandas.Series(offsets,index=table.index,dtype="Int64")
    return table

def summarize_verification(table):
    """Summarize overlap and centering of a table from :func:`verify_table`

    Parameters
    ----------
    table : :class:`pandas.DataFrame`

    Returns
    -------
    dict
        With keys `total`, `overlap_count`, `overlap_percent`, `overlap_mean`,
        `overlap_std`, `centered_count`, `centered_percent`, `offcenter_count`,
        `offset_mean`, and `offset_std`. Means and sample standard deviations
        are `nan` when undefined. Offsets are measured as absolute distances,
        over nucleosomes labeled `'offset'`.
    """
    total = len(table)
    overlaps = table["overlap_length"].dropna().astype(float)
    centered_count = int((table["center_peak_mapping"] == CENTERED).sum())
    offsets = table.loc[table["center_peak_mapping"] == OFFSET,"center_peak_offset"].dropna().astype(float).abs()

    def pct(count):
        return 100.0 * count / total if total > 0 else numpy.nan

    return { "total"            : total,
             "overlap_count"    : len(overlaps),
             "overlap_percent"  : pct(len(overlaps)),
             "overlap_mean"     : overlaps.mean(),
             "overlap_std"      : overlaps.std(),
             "centered_count"   : centered_count,
             "centered_percent" : pct(centered_count),
             "offcenter_count"  : total - centered_count,
             "offset_mean"      : offsets.mean(),
             "offset_std"       : offsets.std(),
           }

def filter_overlaps(table,max_overlap=DEFAULT_MAX_OVERLAP):
    """Remove one nucleosome from each pair overlapping by more than `max_overlap`

    Pairs are examined from left to right. Of an overlapping pair:

      - if both are offset, the one further from its signal maximum is removed
        (the second, if equally far)
      - if one is offset, it is removed
      - if both are centered, the one with lower occupancy is removed
        (the second, if equal)

    When the second of a pair is removed, it is not examined against its own
    successor.

    Parameters
    ----------
    table : :class:`pandas.DataFrame`
        Table from :func:`verify_table`, with an `Occupancy` column

    max_overlap : int, optional
        Largest overlap tolerated, in bp (Default: 30)

    Returns
    -------
    :class:`pandas.DataFrame`
        Filtered table

    int
        Number of nucleosomes removed because they were offset

    int
        Number of nucleosomes removed because of lower occupancy
    """
    overlaps  = table["overlap_length"].tolist()
    labels    = table["center_peak_mapping"].tolist()
    offsets   = table["center_peak_offset"].tolist()
    occupancy = table["Occupancy"].tolist()

    to_delete = []
    offset_count = 0
    occupancy_count = 0
    i = 0
    while i < len(table):
        if pandas.isna(overlaps[i]) or overlaps[i] <= max_overlap:
            i += 1
            continue

        if labels[i] == OFFSET and labels[i+1] == OFFSET:
            if abs(offsets[i]) > abs(offsets[i+1]):
                to_delete.append(i)
            else:
                to_delete.append(i+1)
                i += 1
            offset_count += 1
        elif labels[i] == OFFSET:
            to_delete.append(i)
            offset_count += 1
        elif labels[i+1] == OFFSET:
            to_delete.append(i+1)
            i += 1
            offset_count += 1
        else:
            if occupancy[i] < occupancy[i+1]:
                to_delete.append(i)
            else:
                to_delete.append(i+1)
                i += 1
            occupancy_count += 1

        i += 1

    keep = numpy.ones(len(table),dtype=bool)
    keep[to_delete] = False
    return table.loc[keep].reset_index(drop=True), offset_count, occupancy_count
