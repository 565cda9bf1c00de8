#!/usr/bin/env python
"""Opening input and output files for command-line scripts.

Output tables written by :data:`nucleomap` scripts begin with a commented
header recording when and how the script was run. :func:`read_pl_table`
skips this header when reading the tables back.

Important methods
-----------------
:py:func:`opener`
    Open a plain, gzipped or bzipped file, choosing by extension

:py:func:`argsopener`
    Open an output file and write the command-line arguments to its header

:py:func:`read_pl_table`
    Read a script's output table into a :class:`pandas.DataFrame`

:py:func:`get_short_name`
    Strip directories or module paths from a name

:py:class:`NullWriter`
    Writer that discards everything written to it
"""
import sys
import os
import re
import bz2
import gzip
import datetime
import pandas as pd
from nucleomap.util.io.filters import AbstractWriter

_COMPRESSED_OPENERS = { ".gz"  : gzip.open,
                        ".bz2" : bz2.open,
                      }


class NullWriter(AbstractWriter):
    """Writer that sends output to :obj:`os.devnull`. Used as the default
    progress stream wherever a `printer` is optional.
    """

    def __init__(self):
        AbstractWriter.__init__(self,open(os.devnull,"w"))

    def filter(self,data):
        return data

    def __repr__(self):
        return "NullWriter()"


def opener(filename,mode="r",**kwargs):
    """Open `filename`, decompressing or compressing it on the fly if it
    ends with `'.gz'` or `'.bz2'`. Compressed files are opened in text mode
    unless `mode` asks for bytes.

    Parameters
    ----------
    filename : str
        File to open

    mode : str, optional
        `'r'`, `'w'`, or `'a'`, optionally with `'b'` or `'t'` (Default: `'r'`)

    **kwargs
        Passed to the underlying open function

    Returns
    -------
    file-like
    """
    for ext, func in _COMPRESSED_OPENERS.items():
        if filename.endswith(ext):
            if "b" not in mode and "t" not in mode:
                mode += "t"
            return func(filename,mode,**kwargs)

    return open(filename,mode,**kwargs)

def read_pl_table(filename,**kwargs):
    """Read a tab-delimited table written by a :data:`nucleomap` script.
    Lines beginning with `'#'` are skipped and the first remaining line
    is used as the header.

    Parameters
    ----------
    filename : str
        Table to read. May be gzipped or bzipped

    kwargs : keyword arguments
        Passed to :func:`pandas.read_csv`, overriding the defaults
        `sep="\\t"`, `comment="#"`, `index_col=None` and `header=0`

    Returns
    -------
    :class:`pandas.DataFrame`
    """
    args = dict(sep="\t",comment="#",index_col=None,header=0)
    args.update(kwargs)
    return pd.read_csv(filename,**args)

def get_short_name(inpt,separator=os.path.sep,terminator=""):
    """Return the last component of a path or dotted module name, minus
    `terminator` if it ends with one. Used to name scripts in progress messages.

    Examples
    --------
    >>> get_short_name("/home/jdoe/map_nucleosomes.py",terminator=".py")
    'map_nucleosomes'

    >>> get_short_name("nucleomap.bin.map_nucleosomes",separator=r"\\.")
    'map_nucleosomes'

    Parameters
    ----------
    inpt : str
        Path or module name

    separator : str, optional
        Component separator, escaped for use in a regex character class
        (Default: :obj:`os.path.sep`)

    terminator : str, optional
        Suffix to remove (Default: `""`)

    Returns
    -------
    str
    """
    if terminator and inpt.endswith(terminator):
        inpt = inpt[:-len(terminator)]

    match = re.search(r"([^%s]+)$" % separator,inpt)
    return inpt if match is None else match.group(1)

def argsopener(filename,namespace,mode="w",**kwargs):
    """Open an output file with :func:`opener` and write a header recording
    the time, command line, and parsed arguments of the running script

    Parameters
    ----------
    filename : str
        File to open

    namespace : :py:class:`argparse.Namespace`
        Parsed command-line arguments

    mode : str, optional
        `'w'` or `'a'` (Default: `'w'`)

    **kwargs
        Passed to :func:`opener`

    Returns
    -------
    file-like
    """
    if "w" not in mode and "a" not in mode:
        mode += "w"
    fout = opener(filename,mode,**kwargs)
    fout.write(args_to_comment(namespace))
    return fout

def args_to_comment(namespace):
    """Format parsed arguments as a block of `'##'`-prefixed header lines

    Parameters
    ----------
    namespace  : :py:class:`argparse.Namespace`

    Returns
    -------
    str
    """
    body = pretty_print_dict(vars(namespace)).split("\n")[1:-2]
    ltmp = ["## date = '%s'" % datetime.datetime.today(),
            "## execstr = '%s'" % " ".join(sys.argv),
            "## args = {  "]
    ltmp.extend(["##" + X for X in body])
    ltmp.append("##        }")
    return "\n".join(ltmp) + "\n"

def pretty_print_dict(dtmp):
    """Format a flat dictionary one key per line, sorted by key, with
    values aligned in a column

    Parameters
    ----------
    dtmp : dict

    Returns
    -------
    str
    """
    if len(dtmp) == 0:
        return "{\n}\n"

    width = 2 + max(len(K) for K in dtmp)
    fmtstr = "          {0:<%s} : {1}," % width
    ltmp = []
    for key in sorted(dtmp):
        val = dtmp[key]
        if isinstance(val,str):
            val = "'%s'" % val
        ltmp.append(fmtstr.format("'%s'" % key,val))

    return "{\n%s\n}\n" % "\n".join(ltmp)
