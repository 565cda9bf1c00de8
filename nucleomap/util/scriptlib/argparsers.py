#!/usr/bin/env python
"""Command-line options shared by :data:`nucleomap`'s scripts.

Each option set is built by a parser factory, whose `get_parser()` method
returns an :class:`argparse.ArgumentParser` suitable for use as a `parent`
of a script's own parser. After parsing, the same factory turns the
parsed options into the objects the script needs:

    ===========================================================   ======================================
    **Options**                                                   **Factory**
    -----------------------------------------------------------   --------------------------------------
    Warning verbosity (`-q`, `-v`)                                :class:`BaseParser`

    Occupancy data in `wiggle`_, `bedGraph`_ or `BAM`_ files      :class:`ScoreSourceParser`
    ===========================================================   ======================================


Example
-------
Combine the option sets in a script, then build a score source::

    >>> sp = ScoreSourceParser()
    >>> bp = BaseParser()
    >>> parser = argparse.ArgumentParser(parents=[bp.get_parser(),sp.get_parser()])
    >>> parser.add_argument("outbase",type=str)
    >>> args = parser.parse_args()
    >>> bp.get_base_ops_from_args(args)
    >>> source = sp.get_score_source_from_args(args,printer=printer)

Two scripts needing two sets of the same options can give one factory a
`prefix`, e.g. `ScoreSourceParser(prefix="control_")` adds
`--control_count_files` and so on.
"""
import sys
import argparse

from nucleomap.util.services.exceptions import MalformedFileError, ArgumentWarning,\
                                               DataWarning, FileFormatWarning, filterwarnings, warn
from nucleomap.util.io.openers import opener, NullWriter
from nucleomap.genomics.score_source import SparseScoreSource, BAMMidpointScoreSource,\
                                            DEFAULT_MIN_FRAGMENT, DEFAULT_MAX_FRAGMENT
from nucleomap.readers.common import read_chrom_sizes

_DEFAULT_SCORE_SOURCE_PARSER_TITLE = "occupancy data options"
_DEFAULT_SCORE_SOURCE_PARSER_DESCRIPTION = \
"""Open per-nucleotide occupancy data, such as counts of nucleosomal fragment
midpoints in wiggle or bedGraph files, or paired-end read alignments in a
sorted & indexed BAM file, from which fragment midpoints are counted."""


#===============================================================================
# INDEX: Parser factory base class
#===============================================================================

class Parser(object):
    """Base class for parser factories. Subclasses fill :attr:`arguments`
    with `(name, options)` tuples, where `options` is a dictionary of
    keyword arguments for :meth:`argparse.ArgumentParser.add_argument`

    Parameters
    ----------
    groupname : str or None, optional
        If given, options are placed in an argument group

    prefix : str, optional
        Prepended to each option name after the dashes (Default: `""`)

    disabled : list, optional
        Option names, without dashes or prefix, to leave out of the parser
    """

    def __init__(self,groupname=None,prefix="",disabled=None):
        self.groupname = groupname
        self.prefix    = prefix
        self.disabled  = [] if disabled is None else disabled
        self.arguments = []

    def get_parser(self,title=None,description=None,**kwargs):
        """Build an :class:`argparse.ArgumentParser` holding this factory's
        options. The parser has no `-h` option of its own, so that it may be
        used as a parent

        Parameters
        ----------
        title : str, optional
            Title of the argument group in help output

        description : str, optional
            Description of the argument group in help output

        kwargs : keyword arguments
            Passed to :class:`argparse.ArgumentParser`

        Returns
        -------
        :class:`argparse.ArgumentParser`
        """
        parser = argparse.ArgumentParser(add_help=False,**kwargs)
        if self.groupname is None:
            parser.description = description
            group = parser
        else:
            group = parser.add_argument_group(title=title,description=description)

        for name, opts in self.arguments:
            if name not in self.disabled:
                group.add_argument("--%s%s" % (self.prefix,name),**opts)

        return parser


#===============================================================================
# INDEX: Occupancy data parser
#===============================================================================

class ScoreSourceParser(Parser):
    """Options for opening per-nucleotide occupancy data, given either as
    counts in one or more `wiggle`_/`bedGraph`_ files or as fragment
    alignments in a single paired-end `BAM`_ file

    Parameters
    ----------
    prefix : str, optional
        Prepended to each option name (Default: `""`)

    disabled : list, optional
        Option names to leave out

    input_choices : tuple, optional
        Permitted values of `--countfile_format`

    groupname : str, optional
        Argument group name
    """

    def __init__(self,prefix="",disabled=None,
                 input_choices=("wiggle","BAM"),
                 groupname="score_source_options"):
        Parser.__init__(self,groupname=groupname,prefix=prefix,disabled=disabled)
        self.input_choices = input_choices
        self.arguments = [
            ("count_files"     , dict(type=str,
                                      default=[],
                                      nargs="+",
                                      help="One or more wiggle or bedGraph files of fragment midpoint counts, "+
                                           "which will be pooled, or a single paired-end BAM file.")),
            ("countfile_format", dict(choices=input_choices,
                                      default="wiggle",
                                      help="Format of file containing counts or alignments (Default: %(default)s)")),
            ("chrom_sizes"     , dict(type=str,
                                      default=None,
                                      metavar="FILE",
                                      help="Two-column file of chromosome names and lengths. "+
                                           "Chromosomes not listed take as length their last position "+
                                           "with data (wiggle files only)")),
            ("min_length"      , dict(type=int,
                                      default=DEFAULT_MIN_FRAGMENT,
                                      metavar="N",
                                      help="Minimum fragment length required to be included"+
                                           " (BAM files only. Default: %(default)s)")),
            ("max_length"      , dict(type=int,
                                      default=DEFAULT_MAX_FRAGMENT,
                                      metavar="N",
                                      help="Maximum fragment length permitted to be included"+
                                           " (BAM files only. Default: %(default)s)")),
            ]

    def get_parser(self,
                   title=_DEFAULT_SCORE_SOURCE_PARSER_TITLE,
                   description=_DEFAULT_SCORE_SOURCE_PARSER_DESCRIPTION,
                   **kwargs):
        """Return an :py:class:`~argparse.ArgumentParser` that opens
        count (`wiggle`_, `bedGraph`_) or alignment (`BAM`_) files

        Parameters
        ----------
        title : str, optional
            title for option group (used in command-line help screen)

        description : str, optional
            description of parser (used in command-line help screen)

        Returns
        -------
        :class:`argparse.ArgumentParser`
        """
        return Parser.get_parser(self,title=title,description=description,**kwargs)

    def get_score_source_from_args(self,args,printer=None):
        """Return a |SparseScoreSource| or |BAMMidpointScoreSource|
        from arguments parsed by :meth:`get_parser`

        Exits the program with status 1 if no input file is given,
        or if input files cannot be opened or parsed.

        Parameters
        ----------
        args : :py:class:`argparse.Namespace`
            Arguments from the parser

        printer : file-like, optional
            A stream to which stderr-like info can be written (default: |NullWriter|)

        Returns
        -------
        |SparseScoreSource| or |BAMMidpointScoreSource|
        """
        args = PrefixNamespaceWrapper(args,self.prefix)
        if printer is None:
            printer = NullWriter()

        if len(args.count_files) == 0:
            printer.write("Please include at least one input file.")
            sys.exit(1)

        if args.countfile_format == "BAM":
            if len(args.count_files) > 1:
                printer.write("Only one BAM file may be given. Exiting.")
                sys.exit(1)

            if args.min_length > args.max_length:
                printer.write("Minimum fragment length (%s) exceeds maximum (%s). Exiting." % (args.min_length,args.max_length))
                sys.exit(1)

            if args.chrom_sizes is not None:
                warn("Ignoring `--%schrom_sizes`; chromosome lengths are taken from the BAM header." % self.prefix,
                              ArgumentWarning)

            fn = args.count_files[0]
            try:
                source = BAMMidpointScoreSource(fn,min_length=args.min_length,max_length=args.max_length)
            except ValueError:
                printer.write("Input BAM file not indexed. Please index via:")
                printer.write("")
                printer.write("    samtools index %s" % fn)
                printer.write("")
                printer.write("Exiting.")
                sys.exit(1)
            except (IOError, OSError) as e:
                printer.write("Could not open BAM file '%s': %s. Exiting." % (fn,e))
                sys.exit(1)

            printer.write("Counting midpoints of %s-%s bp fragments in %s ..." % (args.min_length,args.max_length,fn))
            return source

        chr_lengths = None
        try:
            if args.chrom_sizes is not None:
                with opener(args.chrom_sizes) as fh:
                    chr_lengths = read_chrom_sizes(fh)

            source = SparseScoreSource(chr_lengths=chr_lengths)
            for count_file in args.count_files:
                printer.write("Opening wiggle file %s ..." % count_file)
                with opener(count_file) as fh:
                    source.add_from_wiggle(fh)
        except (IOError, OSError) as e:
            printer.write("Could not open input file: %s. Exiting." % e)
            sys.exit(1)
        except MalformedFileError as e:
            printer.write("%s. Exiting." % e)
            sys.exit(1)

        printer.write("Counted %s total." % source.sum())
        return source


#===============================================================================
# INDEX: Parser for basic options
#===============================================================================

class BaseParser(Parser):
    """Options controlling how warnings are reported. Unlike other factories,
    these options take single-dash short forms and ignore `prefix`
    """

    def __init__(self,groupname="base_options",prefix="",disabled=None):
        Parser.__init__(self,groupname=groupname,prefix=prefix,disabled=disabled)

    def get_parser(self,title="warning/error options",description=None):
        """Return an :py:class:`~argparse.ArgumentParser` with `-q` and `-v` options

        Returns
        -------
        :class:`argparse.ArgumentParser`
        """
        p = argparse.ArgumentParser(add_help=False)
        g = p.add_argument_group(title=title,description=description)

        g.add_argument("-q","--quiet",dest="warnlevel",action="store_const",const=-1,
                       help="Suppress all warning messages. Cannot use with '-v'.")
        g.add_argument("-v","--verbose",dest="warnlevel",action="count",
                       help="Increase verbosity. With '-v', show every warning. With '-vv', turn warnings into exceptions. Cannot use with '-q'. (Default: show each type of warning once)")

        p.set_defaults(warnlevel=0)

        return p

    def get_base_ops_from_args(self,args):
        """Set warning filters from the verbosity requested in `args`

        Parameters
        ----------
        args : :py:class:`argparse.Namespace`
            Arguments from the parser
        """
        args = PrefixNamespaceWrapper(args,self.prefix)
        warnlevel = args.warnlevel
        actions = ["ignore",
                   "onceperfamily",
                   "always",
                   "error"]

        if warnlevel >= len(actions) - 1:
            warnlevel = len(actions) - 2

        action = actions[warnlevel+1]
        for type_, msg in NUCLEOMAP_WARNINGS:
            filterwarnings(action,message=msg,category=type_)


NUCLEOMAP_WARNINGS = [

    # nucleosomes
    (DataWarning,"No nucleosomes found"),
    (ArgumentWarning,"Debug traces are not written"),

    # verification
    (DataWarning,"No Occupancy column"),

    # argparsers
    (ArgumentWarning,"Ignoring `--"),

    # wiggle
    (FileFormatWarning,"Unexpected track type"),
]


#===============================================================================
# INDEX: Utility classes
#===============================================================================

class PrefixNamespaceWrapper(object):
    """Wrapper class to facilitate processing of :py:class:`~argparse.Namespace`
    objects created by parsers with non-empty ``prefix`` values,
    as if no prefix had been used.

    Attributes
    ----------
    namespace : :py:class:`~argparse.Namespace`
        Result of calling :py:meth:`argparse.ArgumentParser.parse_args`

    prefix : str
        Prefix that will be prepended to names of attributes of `self.namespace`
        before they are fetched
    """

    def __init__(self,namespace,prefix):
        self.namespace = namespace
        self.prefix = prefix

    def __getattr__(self,k):
        """Fetch an attribute from `self.namespace`, prepending `self.prefix` to `k`

        Parameters
        ----------
        k : str
            Attribute to fetch
        """
        return getattr(self.namespace,"%s%s" % (self.prefix,k))
