#!/usr/bin/env python
"""Score sources answer the question "what is the occupancy signal at
position `p` of chromosome `c`?" for the nucleosome caller in
:mod:`nucleomap.genomics.nucleosomes`.

All positions are 1-based and ranges are closed, i.e. `[start, stop]`
includes both ends. Positions without data are absent from the returned
dictionaries, and are implicitly zero. Scores are reported as magnitudes
(absolute values).

Module contents
---------------

=========================   ==================================   ============================================
**Implementation**          **Source of data**                   **Notes**
-------------------------   ----------------------------------   --------------------------------------------
|SparseScoreSource|         `wiggle`_, `bedGraph`_, or data      Whole dataset held in memory as sorted
                            added in memory                      :class:`numpy.ndarray`
|BAMMidpointScoreSource|    Paired-end `BAM`_ file               Fragment midpoints counted on demand via
                                                                 :mod:`pysam`. File must be sorted & indexed
=========================   ==================================   ============================================

Examples
--------
Load midpoint counts from a bedGraph file, and fetch a region::

    >>> source = SparseScoreSource()
    >>> source.add_from_wiggle(open("midpoints.bedgraph"))
    >>> source.region_scores("chrI",1000,1144)
    {1003: 2.0, 1010: 5.0, ...}

    >>> source.list_chromosomes()
    [('chrI', 230218), ('chrII', 813184), ...]
"""
import re
import operator
from abc import abstractmethod
from collections import OrderedDict

import numpy
import pysam

from nucleomap.readers.wiggle import WiggleReader

ORGANELLE_PATTERN = re.compile(r"^chrm|chrmt|mt|mito",re.I)
"""Chromosome names matching this pattern are treated as mitochondrial or
organellar, and skipped during nucleosome calling"""

DEFAULT_MIN_FRAGMENT = 100
DEFAULT_MAX_FRAGMENT = 200


def is_organelle(chrom):
    """Return `True` if `chrom` names a mitochondrial or organellar chromosome

    Parameters
    ----------
    chrom : str
        Chromosome name

    Returns
    -------
    bool
    """
    return ORGANELLE_PATTERN.search(chrom) is not None


#===============================================================================
# INDEX: score sources
#===============================================================================

class AbstractScoreSource(object):
    """Abstract base class for all score sources"""

    def __repr__(self):
        return "<%s chroms=%s>" % (self.__class__.__name__,",".join(self.chroms()))

    def __str__(self):
        return repr(self)

    def __contains__(self,chrom):
        return chrom in self.lengths()

    def chroms(self):
        """Return chromosome names, in order

        Returns
        -------
        list
        """
        return list(self.lengths().keys())

    @abstractmethod
    def lengths(self):
        """Return an ordered dictionary mapping chromosome names to lengths

        Returns
        -------
        :class:`collections.OrderedDict`
        """
        pass

    def list_chromosomes(self,exclude_organelles=True):
        """Return chromosomes available for scanning

        Parameters
        ----------
        exclude_organelles : bool, optional
            If `True` (default), omit chromosomes whose names match
            :data:`ORGANELLE_PATTERN`

        Returns
        -------
        list
            `(name, length)` tuples, in order
        """
        return [(K,V) for K, V in self.lengths().items() \
                if not (exclude_organelles and is_organelle(K))]

    @abstractmethod
    def region_scores(self,chrom,start,stop):
        """Return scores at each position with data in `chrom:start-stop`

        Parameters
        ----------
        chrom : str
            Chromosome name

        start : int
            First position, 1-based

        stop : int
            Last position, 1-based, inclusive

        Returns
        -------
        dict
            Integer positions mapped to non-negative float scores
        """
        pass

    def region_sum(self,chrom,start,stop):
        """Return the sum of scores over `chrom:start-stop` (1-based, inclusive)

        Returns
        -------
        float
        """
        return float(sum(self.region_scores(chrom,start,stop).values()))


class SparseScoreSource(AbstractScoreSource):
    """In-memory score source for sparse per-nucleotide data, such as
    fragment midpoint counts.

    Values are accumulated in dictionaries by :meth:`add` or
    :meth:`add_from_wiggle`, and indexed into sorted position and value
    arrays the first time a chromosome is queried after a change.

    Parameters
    ----------
    chr_lengths : dict, optional
        Chromosome names mapped to lengths (e.g. from
        :func:`~nucleomap.readers.common.read_chrom_sizes`). Chromosomes not
        included here take as length their last position with data.
    """

    def __init__(self,chr_lengths=None):
        self._chr_lengths = OrderedDict() if chr_lengths is None else OrderedDict(chr_lengths)
        self._values = OrderedDict()
        self._index  = {}

    def __getstate__(self):
        return { "_chr_lengths" : self._chr_lengths,
                 "_values"      : self._values,
                 "_index"       : {},
               }

    def add(self,chrom,position,value):
        """Add `value` to the score at `chrom:position`

        Parameters
        ----------
        chrom : str
            Chromosome name

        position : int
            Position, 1-based

        value : float
            Value to add. Its magnitude is added, so signed tracks pool as
            absolute values. Zero values are not stored.
        """
        value = abs(value)
        if value == 0:
            return

        chrom_values = self._values.setdefault(chrom,{})
        chrom_values[position] = chrom_values.get(position,0.0) + value
        self._index.pop(chrom,None)

    def add_from_wiggle(self,fh):
        """Import data from a `wiggle`_ or `bedGraph`_ file. Intervals
        spanning several nucleotides give their value to each nucleotide.

        Parameters
        ----------
        fh : file-like
            Open text stream
        """
        for chrom, start, stop, value in WiggleReader(fh):
            for position in range(start + 1, stop + 1):
                self.add(chrom,position,value)

    def _get_index(self,chrom):
        """Return sorted position and value arrays for `chrom`

        Returns
        -------
        :class:`numpy.ndarray`
            Positions, sorted ascending

        :class:`numpy.ndarray`
            Values at those positions
        """
        if chrom not in self._index:
            items = sorted(self._values.get(chrom,{}).items(),key=operator.itemgetter(0))
            positions = numpy.array([X[0] for X in items],dtype=int)
            values = numpy.array([X[1] for X in items],dtype=float)
            self._index[chrom] = (positions,values)

        return self._index[chrom]

    def lengths(self):
        d_out = OrderedDict(self._chr_lengths)
        for chrom in self._values:
            if chrom not in d_out:
                positions, _ = self._get_index(chrom)
                d_out[chrom] = int(positions[-1]) if len(positions) > 0 else 0

        return d_out

    def region_scores(self,chrom,start,stop):
        positions, values = self._get_index(chrom)
        left  = numpy.searchsorted(positions,start,side="left")
        right = numpy.searchsorted(positions,stop,side="right")
        return dict(zip(positions[left:right].tolist(),values[left:right].tolist()))

    def region_sum(self,chrom,start,stop):
        positions, values = self._get_index(chrom)
        left  = numpy.searchsorted(positions,start,side="left")
        right = numpy.searchsorted(positions,stop,side="right")
        return float(values[left:right].sum())

    def sum(self):
        """Return the sum of all scores in the source

        Returns
        -------
        float
        """
        return float(sum(self._get_index(X)[1].sum() for X in self._values))


class BAMMidpointScoreSource(AbstractScoreSource):
    """Score source that counts fragment midpoints from paired-end
    read alignments in a `BAM`_ file.

    Each properly-paired fragment is counted once, from the mate with the
    positive template length, at position
    `reference_start + 1 + template_length // 2` (1-based). Fragments whose
    length falls outside `[min_length, max_length]` are ignored, as are
    duplicate, QC-failed, and secondary or supplementary alignments.

    Parameters
    ----------
    filename : str
        Coordinate-sorted, indexed BAM file

    min_length : int, optional
        Minimum fragment length (Default: 100)

    max_length : int, optional
        Maximum fragment length (Default: 200)

    Raises
    ------
    ValueError
        If the BAM file has no index
    """

    def __init__(self,filename,min_length=DEFAULT_MIN_FRAGMENT,max_length=DEFAULT_MAX_FRAGMENT):
        self.filename   = filename
        self.min_length = min_length
        self.max_length = max_length
        self._open()

    def _open(self):
        self.bamfile = pysam.AlignmentFile(self.filename,"rb")
        if not self.bamfile.has_index():
            self.bamfile.close()
            raise ValueError("BAM file '%s' is not indexed." % self.filename)

    def __getstate__(self):
        return { "filename"   : self.filename,
                 "min_length" : self.min_length,
                 "max_length" : self.max_length,
               }

    def __setstate__(self,state):
        self.__dict__.update(state)
        self._open()

    def close(self):
        self.bamfile.close()

    def lengths(self):
        return OrderedDict(zip(self.bamfile.references,self.bamfile.lengths))

    def region_scores(self,chrom,start,stop):
        d_out = {}
        if chrom not in self.bamfile.references:
            return d_out

        # midpoints lie at most max_length downstream of the leftmost mate
        fetch_start = max(0,start - 1 - self.max_length)
        for read in self.bamfile.fetch(chrom,fetch_start,stop):
            if read.is_unmapped or read.is_duplicate or read.is_qcfail or \
               read.is_secondary or read.is_supplementary or not read.is_proper_pair:
                continue

            tlen = read.template_length
            if tlen <= 0 or tlen < self.min_length or tlen > self.max_length:
                continue

            midpoint = read.reference_start + 1 + tlen // 2
            if start <= midpoint <= stop:
                d_out[midpoint] = d_out.get(midpoint,0.0) + 1.0

        return d_out
