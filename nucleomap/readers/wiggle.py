#!/usr/bin/env python
"""A single reader for fixedStep `wiggle`_, variableStep `wiggle`_, and
`bedGraph`_ files, which typically hold per-nucleotide counts of nucleosomal
fragment midpoints. |WiggleReader| is seldom called directly; rather, it is
used by :meth:`~nucleomap.genomics.score_source.SparseScoreSource.add_from_wiggle`.

See also
--------
`UCSC file format FAQ <http://genome.ucsc.edu/FAQ/FAQformat.html>`_
    UCSC Wiggle and bedGraph file specification
"""
from nucleomap.util.services.exceptions import MalformedFileError, FileFormatWarning, warn

_TRACK_TYPES = ("wiggle_0","bedGraph")


class WiggleReader(object):
    """Read `wiggle`_ and `bedGraph`_ files line-by-line, returning tuples
    of `(chromosome, start, stop, value)`. Coordinates are zero-indexed and
    half-open, regardless of input format.

    Parameters
    ----------
    fh : file-like
        Open text stream

    Attributes
    ----------
    data_format : str
        Format of the most recently read data line: `'bedGraph'`,
        `'variableStep'` or `'fixedStep'`

    track_info : dict
        Key-value pairs from the most recent `track` line
    """
    def __init__(self,fh):
        self.fh = fh
        self.data_format = "bedGraph"
        self.track_info  = {}
        self.line_num    = 0
        self._reset()

    def _reset(self):
        self.chrom   = None
        self.step    = 1
        self.span    = 1
        self.counter = 1 # wiggle coordinates are 1-indexed

    def __iter__(self):
        return self

    @staticmethod
    def _parse_keys(items):
        """Parse `key=value` tokens of a `track` or data declaration line

        Parameters
        ----------
        items : list
            Whitespace-split tokens of the line, excluding the first

        Returns
        -------
        dict
        """
        dtmp = {}
        for item in items:
            if item.startswith("description") or item.startswith("name=\""):
                break
            key, _, val = item.partition("=")
            dtmp[key] = val if val != "" else "true"
        return dtmp

    def _error(self,message):
        name = getattr(self.fh,"name",repr(self.fh))
        return MalformedFileError(name,message,line_num=self.line_num)

    def __next__(self):
        """Return the next data interval. Declaration lines are consumed internally.

        Returns
        -------
        str
            chromosome name

        int
            start position, 0-indexed

        int
            end position, 0-indexed, half-open

        float
            value on chromosome between start and end
        """
        while True:
            line = next(self.fh)
            self.line_num += 1
            items = line.split()
            if len(items) == 0 or items[0].startswith("#") or items[0] == "browser":
                continue

            if items[0] == "track":
                self.track_info = self._parse_keys(items[1:])
                track_type = self.track_info.get("type","wiggle_0")
                if track_type not in _TRACK_TYPES:
                    warn("Unexpected track type '%s' at line %s. Reading as wiggle or bedGraph." % (track_type,self.line_num),
                         FileFormatWarning)
                continue

            if items[0] in ("variableStep","fixedStep"):
                self._reset()
                self.data_format = items[0]
                info = self._parse_keys(items[1:])
                if "chrom" not in info:
                    raise self._error("%s declaration without chrom" % items[0])
                self.chrom   = info["chrom"]
                self.span    = int(info.get("span",1))
                self.step    = int(info.get("step",1))
                self.counter = int(info.get("start",1))
                continue

            try:
                if len(items) == 4:
                    # bedGraph coordinates are already 0-based, half-open
                    self._reset()
                    self.data_format = "bedGraph"
                    return (items[0], int(items[1]), int(items[2]), float(items[3]))

                if self.data_format == "variableStep" and len(items) == 2:
                    start = int(items[0]) - 1
                    return (self.chrom, start, start + self.span, float(items[1]))

                if self.data_format == "fixedStep" and len(items) == 1:
                    start = self.counter - 1
                    self.counter += self.step
                    return (self.chrom, start, start + self.span, float(items[0]))
            except ValueError:
                raise self._error("Could not parse numbers in line: %s" % line.strip())

            raise self._error("Unrecognized %s data line: %s" % (self.data_format,line.strip()))
