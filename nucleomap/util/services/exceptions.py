#!/usr/bin/env python
"""Custom exceptions and warnings, a `"onceperfamily"` warnings filter action,
and colored formatting of warning output.

The `onceperfamily` action
--------------------------
`onceperfamily` groups warning messages into families by regular expression,
and shows only the first warning that matches each family. Python's native
`once` action, by contrast, shows each distinct string once, so warnings that
embed e.g. chromosome names would each be shown.

Use :func:`filterwarnings` to create the filter, and :func:`warn` to
issue warnings that respect it.


Exception types
---------------
|ConfigurationError|
    Raised when a nucleosome-calling run cannot start, e.g. because no
    threshold was given or no chromosomes are available

|MalformedFileError|
    Raised when a file cannot be parsed


Warning types
-------------
|ArgumentWarning|
    Nonsensical but recoverable command-line arguments

|FileFormatWarning|
    Slightly malformed but usable files

|DataWarning|
    Data with unexpected but recoverable values, or results that are
    valid but suspicious (e.g. no nucleosomes found)
"""
import re
import warnings
import inspect
import linecache
import textwrap
from nucleomap.util.io.filters import colored

_wrapper = textwrap.TextWrapper(break_long_words=False,width=77)


#===============================================================================
# INDEX: Warning and exception classes
#===============================================================================

class ConfigurationError(ValueError):
    """Raised when parameters or inputs make a run impossible"""
    pass


class MalformedFileError(Exception):
    """Exception class for when files cannot be parsed as they should be

    Parameters
    ----------
    filename : str
        Name of file causing problem

    message : str
        Message explaining how the file is malformed.

    line_num : int or None, optional
        Number of line causing problems
    """

    def __init__(self,filename,message,line_num=None):
        Exception.__init__(self,filename,message,line_num)
        self.filename = filename
        self.msg      = message
        self.line_num = line_num

    def __str__(self):
        if self.line_num is None:
            return "Error opening file '%s': %s" % (self.filename, self.msg)

        return "Error opening file '%s' at line %s: %s" % (self.filename, self.line_num, self.msg)


class ArgumentWarning(Warning):
    """Warning for nonsensical but recoverable combinations of command-line arguments"""
    pass


class FileFormatWarning(Warning):
    """Warning for slightly malformed but usable files"""
    pass


class DataWarning(Warning):
    """Warning for unexpected attributes of data, or suspicious results"""
    pass


#===============================================================================
# INDEX: extensions to Python warnings
#===============================================================================

nm_once_registry = {}
"""Registry of `onceperfamily` warnings that have been seen in the current execution context"""

nm_filters = []
"""`onceperfamily` filters, checked by :func:`warn` before Python's own filters"""

def filterwarnings(action,message="",category=Warning,module="",lineno=0,append=False):
    """Insert an entry into the warnings filter. Behaves as :func:`warnings.filterwarnings`,
    with the additional action `'onceperfamily'`, which shows only the first
    warning whose message matches the regex `message`

    Parameters
    ----------
    action : str
        One of `"error"`, `"ignore"`, `"always"`, `"default"`, `"module"`,
        `"once"`, or `"onceperfamily"`

    message : str, optional
        Regex matched against the start of warning messages (Default: match all)

    category : Warning or subclass, optional
        Type of warning. (Default: :class:`Warning`)

    module : str, optional
        Regex matched against module names (Default: match all)

    lineno : int, optional
        If nonzero, match only warnings issued at this line

    append : bool, optional
        If `True`, add filter to end of filter list instead of the beginning
    """
    if action != "onceperfamily":
        warnings.filterwarnings(action,message=message,
                                category=category,module=module,
                                lineno=lineno,append=append)
        return

    tup = (action,re.compile(message,re.I),category,re.compile(module),lineno)
    if tup in nm_filters:
        return

    if append:
        nm_filters.append(tup)
    else:
        nm_filters.insert(0,tup)

def warn(message,category=None,stacklevel=1):
    """Issue a warning, respecting `onceperfamily` filters created by :func:`filterwarnings`

    Parameters
    ----------
    message : str
        Message

    category: :class:`Warning`, or subclass, optional
        Type of warning (Default: :class:`UserWarning`)

    stacklevel : int
        Frame, counting outward from the caller of :func:`warn`, to which
        the warning is attributed
    """
    if category is None:
        category = UserWarning

    frame = inspect.stack()[stacklevel]
    filename, lineno = frame[1], frame[2]
    module = inspect.getmodulename(filename) or filename
    for _, pat, filter_category, mod, filter_line in nm_filters:
        if pat.match(message) and issubclass(category,filter_category) and\
           mod.match(module) and (filter_line == 0 or filter_line == lineno):
            key = (pat.pattern,filter_category,mod.pattern,filter_line)
            if key in nm_once_registry:
                return

            nm_once_registry[key] = 1
            break

    warnings.warn_explicit(message,category,filename,lineno,module=module)

def formatwarning(message,category,filename,lineno,file=None,line=None):
    """Colorize and lay out warnings for readability. Replaces :func:`warnings.formatwarning`

    Parameters
    ----------
    message : str
        Warning message

    category : Warning
        Class (not instance) of warning

    filename : str
        Name of file issuing warning

    lineno : int
        Line in file issuing warning

    file : file-like, optional
        Ignored

    line : str, optional
        Source line issuing the warning. If `None`, lines surrounding
        `lineno` are read from `filename`

    Returns
    -------
    str
    """
    sep     = colored("-"*75,color="cyan")
    message = str(message)
    if "\n" not in message:
        message = _wrapper.fill(message)

    message = colored(message,color="white",attrs=["bold"])
    name    = colored(category.__name__,color="cyan",attrs=["bold"])

    if line is None:
        fmtstr = "{0: >%ss} {1}" % len(str(lineno+3))
        lines  = []
        for x in range(max(0,lineno-2),lineno+3):
            tmpline = linecache.getline(filename,x).strip("\n")
            if tmpline:
                attrs = ["bold"] if x == lineno else []
                lines.append(fmtstr.format(colored(x,color="green",attrs=attrs),
                                           colored(tmpline,attrs=attrs)))
        line = "\n".join(lines)

    location = "in %s, line %s:" % (colored(filename,color="cyan"),lineno)

    return "\n".join([sep,name,message,location,"",line,"",sep,""])


warnings.formatwarning = formatwarning
