#!/usr/bin/env python
"""Filters that sit between a script and a text stream, rewriting or dropping
lines as they pass through.

Readers
-------
:class:`AbstractReader`
    Iterate over a stream, passing each line through :meth:`~AbstractReader.filter`

:class:`SkipBlankReader`
    Drop lines holding only whitespace

:class:`CommentReader`
    Drop lines whose first non-whitespace character is `'#'`, remembering them

Writers
-------
:class:`AbstractWriter`
    Pass each write through :meth:`~AbstractWriter.filter` before it reaches the stream

:class:`ColorWriter`
    Offers :func:`termcolor.colored` to subclasses when writing to a terminal

:class:`NameDateWriter`
    Stamp each message with a program name and the time. Scripts keep one of
    these as `printer`, writing progress to :obj:`sys.stderr`


Examples
--------
Read a `chrom.sizes` file, ignoring comments and blank lines::

    >>> with open("chrom.sizes") as fh:
    >>>     for line in CommentReader(SkipBlankReader(fh)):
    >>>         chrom, length = line.split()

Report progress::

    >>> printer = NameDateWriter("map_nucleosomes")
    >>> printer.write("Scanning chromosome chrI ...")
"""
import sys
import datetime
from abc import abstractmethod
from io import IOBase

import termcolor

if hasattr(sys.stderr,"isatty") and sys.stderr.isatty():
    colored = termcolor.colored
else:
    colored = lambda x, **kwargs: str(x)


#===============================================================================
# INDEX: readers
#===============================================================================

class AbstractReader(IOBase):
    """Base class for line filters on input streams. Subclasses implement
    :meth:`filter`, which may call :meth:`__next__` to drop the current line.

    Parameters
    ----------
    stream : file-like
        Open text stream
    """

    def __init__(self,stream):
        self.stream = stream

    def readable(self):
        return True

    def __iter__(self):
        return self

    def __next__(self):
        return self.filter(next(self.stream))

    def readlines(self):
        """Return all remaining lines that pass the filter"""
        return list(self)

    def close(self):
        if hasattr(self.stream,"close"):
            self.stream.close()

    @abstractmethod
    def filter(self,line):
        pass


class SkipBlankReader(AbstractReader):
    """Drop whitespace-only lines"""

    def filter(self,line):
        while line.strip() == "":
            line = next(self.stream)
        return line


class CommentReader(AbstractReader):
    """Drop comment lines, which begin with `'#'` after any leading whitespace.
    Their stripped text is collected in :attr:`comments`, in file order.
    """

    def __init__(self,stream):
        AbstractReader.__init__(self,stream)
        self.comments = []

    def get_comments(self):
        """Return comments passed over so far

        Returns
        -------
        list
        """
        return self.comments

    def filter(self,line):
        while line.lstrip().startswith("#"):
            self.comments.append(line.strip())
            line = next(self.stream)
        return line


#===============================================================================
# INDEX: writers
#===============================================================================

class AbstractWriter(IOBase):
    """Base class for filters on output streams. Each call to :meth:`write`
    sends its argument through :meth:`filter` first.

    Parameters
    ----------
    stream : file-like
        Stream open for writing
    """

    def __init__(self,stream):
        self.stream = stream

    def writable(self):
        return True

    def isatty(self):
        return hasattr(self.stream,"isatty") and self.stream.isatty()

    def write(self,data):
        self.stream.write(self.filter(data))

    def flush(self):
        self.stream.flush()

    def close(self):
        if not self.closed:
            IOBase.close(self)
            self.stream.close()

    @abstractmethod
    def filter(self,data):
        pass


class ColorWriter(AbstractWriter):
    """Writer whose :meth:`color` applies ANSI colors only when the underlying
    stream is a terminal, and otherwise returns text unchanged
    """

    def __init__(self,stream=None):
        AbstractWriter.__init__(self,stream=stream)
        if self.isatty():
            self.color = termcolor.colored

    def color(self,text,**kwargs):
        return text


class NameDateWriter(ColorWriter):
    """Write each message on its own line, as `name [date time]: message`

    Parameters
    ----------
    name : str
        Program name, usually from :func:`~nucleomap.util.io.openers.get_short_name`

    line_delimiter : str, optional
        Line ending (Default: `'\\n'`)

    stream : file-like, optional
        Output stream (Default: :obj:`sys.stderr`)
    """

    def __init__(self,name,line_delimiter="\n",stream=None):
        ColorWriter.__init__(self,stream=sys.stderr if stream is None else stream)
        self.name = name
        self.delimiter = line_delimiter
        bracket = lambda x: self.color(x,color="blue",attrs=["bold"])
        self.fmtstr = "".join([bracket(name),
                               " ",
                               bracket("["),
                               self.color("{0}",color="green"),
                               " ",
                               self.color("{1}",color="green",attrs=["bold"]),
                               bracket("]"),
                               ": {2}",
                               line_delimiter])

    def filter(self,line):
        now = datetime.datetime.now()
        return self.fmtstr.format(now.strftime("%Y-%m-%d"),
                                  now.strftime("%H:%M:%S"),
                                  line.strip(self.delimiter))

    def __call__(self,line):
        self.write(line)
