#!/usr/bin/env python
"""Functions used by multiple readers and scripts in :data:`nucleomap`

Functions
---------
:func:`read_chrom_sizes`
    Read a UCSC-style `chrom.sizes` file into an ordered dictionary
"""
from collections import OrderedDict

from nucleomap.util.io.filters import CommentReader, SkipBlankReader
from nucleomap.util.services.exceptions import MalformedFileError


def read_chrom_sizes(fh):
    """Read chromosome lengths from a two-column, tab- or space-delimited
    `chrom.sizes` file, as produced by UCSC's `fetchChromSizes`. Blank lines
    and lines beginning with `'#'` are ignored.

    Parameters
    ----------
    fh : file-like
        Open text stream

    Returns
    -------
    :class:`collections.OrderedDict`
        Chromosome names mapped to integer lengths, in file order

    Raises
    ------
    MalformedFileError
        If a line does not have two columns, or the length is not an integer
    """
    name = getattr(fh,"name",repr(fh))
    lengths = OrderedDict()
    for n, line in enumerate(CommentReader(SkipBlankReader(fh))):
        items = line.split()
        if len(items) != 2:
            raise MalformedFileError(name,"Expected two columns, found %s: %s" % (len(items),line.strip()),line_num=n+1)
        try:
            lengths[items[0]] = int(items[1])
        except ValueError:
            raise MalformedFileError(name,"Non-integer length for chromosome '%s'" % items[0],line_num=n+1)

    return lengths
