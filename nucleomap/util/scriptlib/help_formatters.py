#!/usr/bin/env python
"""Post-processors that turn module docstrings into command-line help, by
removing `reStructuredText`_ markup and substitutions, and truncating
at `numpydoc`_ section tokens.
"""
import re

_SECTION_TOKENS = ("Parameters",
                   "Returns",
                   "Yields",
                   "Raises",
                   "Attributes",
                   "See also",
                  )

pyrst_pattern = re.compile(r"(?P<spacing>^|\s+)(?::(?P<domain>[^:`<>]+))?:(?P<role>[^:`]*):`(?P<argument>[^`<>]+)(?: +<(?P<pointer>[^`]+)>)?`")
"""Matches `reStructuredText`_ roles of the form ``:domain:role:`argument```
or ``:role:`argument```, when preceded by whitespace or the start of a line
"""

subst_pattern = re.compile(r"\|([^|]*)\|")
"""Matches `reStructuredText`_ substitutions of form ``|substitution|``"""

link_pattern = re.compile(r"`([^`<>]+)( <[^`]+>)?`_")
"""Matches `reStructuredText`_ links of forms ```Linkname`_`` and ```Link text <url>`_``"""

_separator = "\n" + (78*"-") + "\n"


def shorten_help(inp):
    """Strip markup from a docstring and truncate it at the first
    `numpydoc`_ section token

    Parameters
    ----------
    inp : str
        Docstring to format

    Returns
    -------
    str
    """
    inp = pyrst_pattern.sub(r"\g<spacing>\g<argument>",inp)
    inp = subst_pattern.sub(r"\g<1>",inp)
    inp = link_pattern.sub(r"\g<1>",inp)

    cut = len(inp)
    for token in _SECTION_TOKENS:
        idx = inp.find("%s\n---" % token)
        if idx != -1:
            cut = min(cut,idx)

    return inp[:cut].strip() + "\n"

def format_module_docstring(inp):
    """Format a module docstring for use as command-line help,
    surrounded by separators

    Parameters
    ----------
    inp : str
        Module docstring

    Returns
    -------
    str
    """
    return _separator + "\n" + shorten_help(inp) + "\n" + _separator
