#!/usr/bin/env python
"""Call nucleosome positions from per-nucleotide occupancy data, such as
counts of nucleosomal fragment midpoints.

.. contents::
   :local:

Summary
-------
Each chromosome is scanned from left to right in windows (default 145 bp).
When the maximum signal in a window reaches a threshold, the position of that
maximum is taken as a nucleosome dyad:

  #. :func:`scan_window` fetches the scores in the current window

  #. :func:`locate_peak` picks one position among those sharing the window
     maximum. Maxima within 10 bp of each other are resolved to the leftmost;
     maxima further apart are resolved to the one closest to the window center

  #. :func:`verify_peak` re-examines 50 bp on each side of the peak, because
     the window boundary may have cut off the true maximum. It never looks left
     of the current window start, so that it cannot reach back into the
     previous nucleosome

  #. :func:`build_nucleosome` reports a 147 bp |NucleosomeCall| centered on
     the peak, with its occupancy and fuzziness

The next window then begins a small buffer (default 5 bp) past the end of the
nucleosome just called. If no peak is found, the next window begins where the
last one ended. |NucleosomeCaller| drives this loop.


Occupancy and fuzziness
-----------------------
`Occupancy` is the sum of the signal within 37 bp of the dyad.

`Fuzziness` is the population standard deviation of dyad offsets within
37 bp of the called position, each offset weighted by `round(100 * score)`.
Low values describe well-positioned nucleosomes, high values nucleosomes
whose position varies between cells. Scaling by 100 lets fractional scores
(e.g. reads per million) contribute with two decimal digits of precision,
while integer counts behave as plain counts. Fuzziness is `None` when no
signal is found near the dyad.


Examples
--------
Call nucleosomes from a bedGraph of fragment midpoints::

    >>> source = SparseScoreSource()
    >>> source.add_from_wiggle(open("midpoints.bedgraph"))
    >>> caller = NucleosomeCaller(source,threshold=5)
    >>> calls = caller.call()
    >>> calls[0]
    NucleosomeCall(chrom='chrI', start=35, stop=181, midpoint=108, name='NucI:108', occupancy=131.0, fuzziness=12)

    >>> calls[0].as_gff3(source="map_nucleosomes",feature_type="nucleosome")
    'chrI\\tmap_nucleosomes\\tnucleosome\\t35\\t181\\t131\\t.\\t.\\tID=NucI:108;Name=NucI:108;Fuzziness=12\\n'
"""
import re
import itertools
import multiprocessing
from collections import namedtuple

import numpy
import pandas

from nucleomap.genomics.score_source import is_organelle
from nucleomap.util.io.openers import NullWriter
from nucleomap.util.services.exceptions import ConfigurationError, ArgumentWarning, warn

#===============================================================================
# INDEX: constants
#===============================================================================

NUCLEOSOME_HALF_WIDTH = 73
"""Distance from dyad to either end of a called nucleosome (147 bp footprint)"""

OCCUPANCY_RADIUS = 37
"""Distance on either side of the dyad over which occupancy and fuzziness are measured"""

FUZZINESS_FETCH_RADIUS = 40
"""Distance on either side of the dyad fetched for fuzziness"""

VERIFY_RADIUS = 50
"""Distance on either side of a peak re-examined by :func:`verify_peak`"""

PEAK_TOLERANCE = 10
"""Tied maxima no further apart than this are treated as a single peak"""

OVERSAMPLE = 100
"""Weight multiplier applied to scores when calculating fuzziness"""

DEFAULT_WINDOW = 145
DEFAULT_BUFFER = 5

TABLE_COLUMNS = ["Chromosome",
                 "Start",
                 "Stop",
                 "Midpoint",
                 "NucleosomeID",
                 "Occupancy",
                 "Fuzziness"]
"""Column headers of nucleosome tables"""

NULL_VALUE = "."

_CHR_PREFIX = re.compile(r"^(?:chr)?(.+)$",re.I)


#===============================================================================
# INDEX: nucleosome records
#===============================================================================

def _format_number(value):
    """Format a number to ten significant digits without trailing zeros,
    e.g. `12.0` as `'12'`"""
    if value is None:
        return NULL_VALUE
    return "%.10g" % value


class NucleosomeCall(namedtuple("NucleosomeCall",["chrom",
                                                  "start",
                                                  "stop",
                                                  "midpoint",
                                                  "name",
                                                  "occupancy",
                                                  "fuzziness"])):
    """A called nucleosome. Coordinates are 1-based and inclusive.

    Attributes
    ----------
    chrom : str
        Chromosome name

    start : int
        Leftmost position, `midpoint - 73`

    stop : int
        Rightmost position, `midpoint + 73`

    midpoint : int
        Called dyad position

    name : str
        Identifier, e.g. `'NucI:108'` for a nucleosome at position 108 of `chrI`

    occupancy : float
        Sum of the signal within 37 bp of `midpoint`

    fuzziness : int or None
        Weighted standard deviation of signal offsets around `midpoint`,
        or `None` if there was no signal
    """
    __slots__ = ()

    def as_row(self):
        """Format as a line of a tab-delimited nucleosome table,
        with columns given by :data:`TABLE_COLUMNS`

        Returns
        -------
        str
        """
        ltmp = [self.chrom,
                "%d" % self.start,
                "%d" % self.stop,
                "%d" % self.midpoint,
                self.name,
                _format_number(self.occupancy),
                NULL_VALUE if self.fuzziness is None else "%d" % self.fuzziness]
        return "\t".join(ltmp) + "\n"

    def as_gff3(self,source="map_nucleosomes",feature_type="nucleosome"):
        """Format as a line of a `GFF3`_ file. Occupancy is reported as the
        feature score, the nucleosome identifier as its `ID` and `Name`,
        and fuzziness as a `Fuzziness` attribute. Nucleosomes overhanging
        the chromosome start are truncated at position 1.

        Parameters
        ----------
        source : str, optional
            Value of the GFF `source` column

        feature_type : str, optional
            Value of the GFF `type` column

        Returns
        -------
        str
        """
        attr = "ID=%s;Name=%s;Fuzziness=%s" % (self.name,
                                               self.name,
                                               NULL_VALUE if self.fuzziness is None else self.fuzziness)
        ltmp = [self.chrom,
                source,
                feature_type,
                "%d" % max(1,self.start),
                "%d" % self.stop,
                _format_number(self.occupancy),
                ".",
                ".",
                attr]
        return "\t".join(ltmp) + "\n"


def nucleosome_name(chrom,midpoint):
    """Generate a nucleosome identifier from its chromosome and dyad position,
    dropping any leading `'chr'` from the chromosome name

    Examples
    --------
    >>> nucleosome_name("chrIV",1050)
    'NucIV:1050'

    >>> nucleosome_name("2L",99)
    'Nuc2L:99'

    Parameters
    ----------
    chrom : str

    midpoint : int

    Returns
    -------
    str
    """
    match = _CHR_PREFIX.match(chrom)
    short = chrom if match is None else match.group(1)
    return "Nuc%s:%s" % (short,midpoint)

def calls_to_table(calls):
    """Convert nucleosome calls to a :class:`pandas.DataFrame` whose columns
    are given by :data:`TABLE_COLUMNS`. Missing fuzziness values are `<NA>`.

    Parameters
    ----------
    calls : list
        |NucleosomeCall| objects

    Returns
    -------
    :class:`pandas.DataFrame`
    """
    table = pandas.DataFrame([tuple(X) for X in calls],columns=TABLE_COLUMNS)
    table["Fuzziness"] = table["Fuzziness"].astype("Int64")
    return table


#===============================================================================
# INDEX: peak finding
#===============================================================================

def max_score(scores):
    """Return the maximum value in `scores`, or 0 if `scores` is empty

    Parameters
    ----------
    scores : dict
        Positions mapped to scores

    Returns
    -------
    float
    """
    if len(scores) == 0:
        return 0
    return max(scores.values())

def max_positions(scores):
    """Return all positions sharing the maximum score, in ascending order.
    Scores are compared exactly.

    Parameters
    ----------
    scores : dict
        Positions mapped to scores. Must not be empty

    Returns
    -------
    list
    """
    top = max(scores.values())
    return sorted([K for K, V in scores.items() if V == top])

def closest_position(positions,target):
    """Return the position closest to `target`. If two are equally close,
    the leftmost is returned

    Parameters
    ----------
    positions : list
        Candidate positions

    target : int
        Reference position

    Returns
    -------
    int
    """
    return min(positions,key=lambda x: (abs(x - target),x))

def scan_window(source,chrom,position,length,window):
    """Fetch scores in the window beginning at `position`, truncated at
    the end of the chromosome

    Parameters
    ----------
    source : |AbstractScoreSource|
        Occupancy data

    chrom : str
        Chromosome name

    position : int
        First position of window, 1-based

    length : int
        Chromosome length

    window : int
        Window size

    Returns
    -------
    dict
        Scores in the window

    int
        Window start

    int
        Window stop, inclusive
    """
    win_stop = min(position + window - 1,length)
    return source.region_scores(chrom,position,win_stop), position, win_stop

def locate_peak(scores,start,stop,tolerance=PEAK_TOLERANCE):
    """Choose a single peak position among those sharing the maximum score
    in a window

    If there is one maximum, its position is returned. If several maxima lie
    within `tolerance` of each other, they are treated as one peak, and the
    leftmost is returned. Otherwise they are presumed to be separate
    nucleosomes, and the one closest to the window center is returned
    (the leftmost, if two are equally close). The window center is
    `(start + stop) / 2`, with halves rounded up.

    Parameters
    ----------
    scores : dict
        Positions mapped to scores. Must not be empty

    start : int
        Window start

    stop : int
        Window stop, inclusive

    tolerance : int, optional
        Maximum spread of tied maxima to treat as a single peak (Default: 10)

    Returns
    -------
    int
        Peak position
    """
    candidates = max_positions(scores)
    if len(candidates) == 1 or candidates[-1] - candidates[0] <= tolerance:
        return candidates[0]

    return closest_position(candidates,(start + stop + 1) // 2)

def verify_peak(source,chrom,scan_start,peak_position,radius=VERIFY_RADIUS):
    """Re-examine the neighborhood of a peak, and move it to the true local
    maximum if the scan window cut that maximum off

    Scores are fetched within `radius` of `peak_position`, but never left of
    `scan_start`. Among positions sharing the maximum, the one closest to
    `peak_position` is returned (the leftmost, if two are equally close).

    Parameters
    ----------
    source : |AbstractScoreSource|
        Occupancy data

    chrom : str
        Chromosome name

    scan_start : int
        Start of the window in which the peak was found

    peak_position : int
        Position from :func:`locate_peak`

    radius : int, optional
        Half-width of neighborhood (Default: 50)

    Returns
    -------
    int
        Verified peak position
    """
    scores = source.region_scores(chrom,max(peak_position - radius,scan_start),peak_position + radius)
    if len(scores) == 0:
        return peak_position

    return closest_position(max_positions(scores),peak_position)


#===============================================================================
# INDEX: nucleosome statistics
#===============================================================================

def fuzziness(scores,midpoint,radius=OCCUPANCY_RADIUS,oversample=OVERSAMPLE):
    """Calculate the fuzziness of a nucleosome at `midpoint`

    Each offset `i` in `[-radius, radius]` with a positive score is weighted by
    `round(oversample * score)`, and the weighted population standard deviation
    of offsets is returned, rounded to the nearest integer. This equals the
    standard deviation of a list in which each offset is repeated as many
    times as its weight.

    Parameters
    ----------
    scores : dict
        Positions mapped to scores, covering at least `midpoint` +/- `radius`

    midpoint : int
        Nucleosome dyad

    radius : int, optional
        Maximum offset considered (Default: 37)

    oversample : int, optional
        Weight multiplier (Default: 100)

    Returns
    -------
    int or None
        `None` if no offset carries weight
    """
    offsets = []
    weights = []
    for i in range(-radius,radius + 1):
        score = scores.get(midpoint + i,0)
        if score > 0:
            weight = int(round(oversample * score))
            if weight > 0:
                offsets.append(i)
                weights.append(weight)

    if len(weights) == 0:
        return None

    offsets = numpy.array(offsets,dtype=float)
    weights = numpy.array(weights,dtype=float)
    mean = numpy.average(offsets,weights=weights)
    variance = numpy.average((offsets - mean)**2,weights=weights)
    return int(round(numpy.sqrt(variance)))

def build_nucleosome(source,chrom,peak_position):
    """Create a |NucleosomeCall| centered at `peak_position`

    Parameters
    ----------
    source : |AbstractScoreSource|
        Occupancy data

    chrom : str
        Chromosome name

    peak_position : int
        Verified dyad position

    Returns
    -------
    |NucleosomeCall|
    """
    scores = source.region_scores(chrom,
                                  peak_position - FUZZINESS_FETCH_RADIUS,
                                  peak_position + FUZZINESS_FETCH_RADIUS)
    occupancy = source.region_sum(chrom,
                                  peak_position - OCCUPANCY_RADIUS,
                                  peak_position + OCCUPANCY_RADIUS)
    return NucleosomeCall(chrom,
                          peak_position - NUCLEOSOME_HALF_WIDTH,
                          peak_position + NUCLEOSOME_HALF_WIDTH,
                          peak_position,
                          nucleosome_name(chrom,peak_position),
                          occupancy,
                          fuzziness(scores,peak_position))


#===============================================================================
# INDEX: caller
#===============================================================================

class NucleosomeCaller(object):
    """Scan chromosomes for nucleosomes, one window at a time

    Parameters
    ----------
    source : |AbstractScoreSource|
        Occupancy data

    threshold : float
        Minimum score required to call a nucleosome

    window : int, optional
        Scan window size (Default: 145)

    buffer : int, optional
        Space between the end of a called nucleosome and the next
        window (Default: 5)

    debug : file-like or None, optional
        If not `None`, a trace of each window examined is written here

    printer : file-like, optional
        Stream for progress messages (Default: |NullWriter|)

    Raises
    ------
    ConfigurationError
        If `threshold` is `None`, `window` is less than 1, or `buffer` is negative
    """

    def __init__(self,source,threshold,window=DEFAULT_WINDOW,buffer=DEFAULT_BUFFER,
                 debug=None,printer=None):
        if threshold is None:
            raise ConfigurationError("A threshold is required to call nucleosomes.")
        if window < 1:
            raise ConfigurationError("Window size must be positive. Got %s." % window)
        if buffer < 0:
            raise ConfigurationError("Buffer size must not be negative. Got %s." % buffer)

        self.source    = source
        self.threshold = threshold
        self.window    = window
        self.buffer    = buffer
        self.debug     = debug
        self.printer   = NullWriter() if printer is None else printer

    def _trace(self,message):
        if self.debug is not None:
            self.debug.write(message + "\n")

    def call_chromosome(self,chrom,length):
        """Call nucleosomes on a single chromosome

        Parameters
        ----------
        chrom : str
            Chromosome name

        length : int
            Chromosome length

        Returns
        -------
        list
            |NucleosomeCall| objects, in order of position
        """
        calls = []
        position = 1
        while position < length:
            scores, win_start, win_stop = scan_window(self.source,chrom,position,length,self.window)
            if self.debug is not None:
                self._trace("### Window %s:%s..%s" % (chrom,win_start,win_stop))
                self._trace("  Window scores: %s" % ", ".join(["%s:%s" % (K,scores[K]) for K in sorted(scores)]))

            if len(scores) == 0 or max_score(scores) < self.threshold:
                self._trace(" Did not find a peak")
                position += self.window
                continue

            peak = locate_peak(scores,win_start,win_stop)
            self._trace(" Peak found at position %s" % peak)
            verified = verify_peak(self.source,chrom,win_start,peak)
            if verified != peak:
                self._trace("  Reset the peak position from %s to %s via sanity check" % (peak,verified))

            call = build_nucleosome(self.source,chrom,verified)
            calls.append(call)
            position = call.stop + self.buffer
            self._trace(" Nucleosome %s found at %s..%s" % (call.name,call.start,call.stop))
            self._trace(" Advancing position to %s" % position)

        return calls

    def call(self,chromosomes=None):
        """Call nucleosomes on each chromosome in turn

        Parameters
        ----------
        chromosomes : list, optional
            `(name, length)` tuples. If `None`, all non-organellar chromosomes
            in the score source are scanned

        Returns
        -------
        list
            |NucleosomeCall| objects, ordered by chromosome, then position

        Raises
        ------
        ConfigurationError
            If there are no chromosomes to scan
        """
        if chromosomes is None:
            chromosomes = self.source.list_chromosomes()
        if len(chromosomes) == 0:
            raise ConfigurationError("No chromosomes found in score source.")

        calls = []
        for chrom, length in chromosomes:
            if is_organelle(chrom):
                continue
            self.printer.write("Scanning chromosome %s ..." % chrom)
            calls.extend(self.call_chromosome(chrom,length))

        return calls


def _call_chromosome(source,threshold,window,buffer,chrom,length):
    """Call nucleosomes on one chromosome in a worker process"""
    return NucleosomeCaller(source,threshold,window=window,buffer=buffer).call_chromosome(chrom,length)

def call_nucleosomes(source,threshold,window=DEFAULT_WINDOW,buffer=DEFAULT_BUFFER,
                     processes=1,debug=None,printer=None):
    """Call nucleosomes on all non-organellar chromosomes in `source`.

    Chromosomes are independent, so with `processes > 1` they are scanned in a
    :class:`multiprocessing.Pool`. Results are identical to a serial run.

    Parameters
    ----------
    source : |AbstractScoreSource|
        Occupancy data. Must be picklable if `processes > 1`

    threshold : float
        Minimum score required to call a nucleosome

    window : int, optional
        Scan window size (Default: 145)

    buffer : int, optional
        Space between a called nucleosome and the next window (Default: 5)

    processes : int, optional
        Number of worker processes (Default: 1)

    debug : file-like or None, optional
        Trace stream. Only used when `processes` is 1

    printer : file-like, optional
        Stream for progress messages (Default: |NullWriter|)

    Returns
    -------
    list
        |NucleosomeCall| objects, ordered by chromosome, then position

    Raises
    ------
    ConfigurationError
        If parameters are invalid, or `source` has no chromosomes
    """
    caller = NucleosomeCaller(source,threshold,window=window,buffer=buffer,
                              debug=debug if processes <= 1 else None,
                              printer=printer)
    chromosomes = [X for X in source.list_chromosomes() if not is_organelle(X[0])]
    if len(chromosomes) == 0:
        raise ConfigurationError("No chromosomes found in score source.")

    if processes <= 1:
        return caller.call(chromosomes)

    if debug is not None:
        warn("Debug traces are not written when running in multiple processes.",ArgumentWarning)

    caller.printer.write("Scanning %s chromosomes in %s processes ..." % (len(chromosomes),processes))
    jobs = [(source,threshold,window,buffer,chrom,length) for chrom, length in chromosomes]
    pool = multiprocessing.Pool(processes)
    try:
        results = pool.starmap(_call_chromosome,jobs)
    finally:
        pool.close()
        pool.join()

    return list(itertools.chain.from_iterable(results))
