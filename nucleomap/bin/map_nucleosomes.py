#!/usr/bin/env python
"""Call nucleosome positions from per-nucleotide occupancy data, typically
counts of nucleosomal fragment midpoints from MNase-seq.

Each chromosome is scanned from left to right in windows. When the maximum
signal in a window meets `--threshold`, its position is taken as a nucleosome
dyad, verified against the surrounding 50 bp, and reported as a 147 bp
nucleosome. The next window begins `--buffer` bp after the called nucleosome.
Mitochondrial and other organellar chromosomes (names matching `chrM`, `MT`,
`mito` and the like) are skipped.

Occupancy data may be given as `wiggle`_ or `bedGraph`_ files of midpoint
counts, which are pooled, or as a single paired-end `BAM`_ file, from which
midpoints of fragments between `--min_length` and `--max_length` are counted.


Output files
------------
    OUTBASE.txt
        Tab-delimited table of nucleosomes, with columns:

        ============   =======================================================
        Column         Contains
        ------------   -------------------------------------------------------
        Chromosome     Chromosome name
        Start          First position of nucleosome (1-indexed)
        Stop           Last position of nucleosome (1-indexed, inclusive)
        Midpoint       Dyad position
        NucleosomeID   Identifier, e.g. `NucI:1050`
        Occupancy      Sum of signal within 37 bp of the dyad
        Fuzziness      Standard deviation of signal around the dyad, or `.`
                       if there was no signal
        ============   =======================================================

    OUTBASE.gff
        Nucleosomes in `GFF3`_ format, if `--gff` is given

    OUTBASE.debug.txt
        Trace of every window examined, if `--debug` is given

where `OUTBASE` is given by the user. If no nucleosomes are found,
no table is written.
"""
import os
import warnings
import inspect
import sys
import argparse

from nucleomap.util.scriptlib.argparsers import ScoreSourceParser, BaseParser
from nucleomap.util.io.filters import NameDateWriter
from nucleomap.util.io.openers import get_short_name, argsopener, opener
from nucleomap.util.scriptlib.help_formatters import format_module_docstring
from nucleomap.util.services.exceptions import ConfigurationError, DataWarning, ArgumentWarning, warn
from nucleomap.genomics.nucleosomes import call_nucleosomes, TABLE_COLUMNS,\
                                           DEFAULT_WINDOW, DEFAULT_BUFFER

warnings.simplefilter("once")
printer = NameDateWriter(get_short_name(inspect.stack()[-1][1]))


def main(argv=sys.argv[1:]):
    """Command-line program

    Parameters
    ----------
    argv : list, optional
        A list of command-line arguments, which will be processed
        as if the script were called from the command line if
        :py:func:`main` is called directly.

        Default: sys.argv[1:] (actually command-line arguments)
    """
    sp = ScoreSourceParser()
    bp = BaseParser()
    parser = argparse.ArgumentParser(description=format_module_docstring(__doc__),
                                     formatter_class=argparse.RawDescriptionHelpFormatter,
                                     parents=[bp.get_parser(),sp.get_parser()])
    parser.add_argument("outbase",type=str,
                        help="Base name for output files")

    call_opts = parser.add_argument_group(title="nucleosome calling options")
    call_opts.add_argument("--threshold",type=float,default=None,
                           help="Minimum signal at a peak required to call a nucleosome (required)")
    call_opts.add_argument("--window",type=int,default=DEFAULT_WINDOW,metavar="N",
                           help="Size of scan window, in bp (Default: %(default)s)")
    call_opts.add_argument("--buffer",type=int,default=DEFAULT_BUFFER,metavar="N",
                           help="Space between a called nucleosome and the next window, in bp (Default: %(default)s)")
    call_opts.add_argument("--processes",type=int,default=1,metavar="N",
                           help="Number of processes to use. Chromosomes are scanned in parallel (Default: %(default)s)")
    call_opts.add_argument("--debug",action="store_true",default=False,
                           help="Write a trace of every window examined to OUTBASE.debug.txt (single process only)")

    gff_opts = parser.add_argument_group(title="GFF3 output options")
    gff_opts.add_argument("--gff",action="store_true",default=False,
                          help="Also write nucleosomes to OUTBASE.gff")
    gff_opts.add_argument("--type",type=str,default=None,
                          help="GFF feature type (Default: `<dataset>_nucleosome`, where dataset is "+
                               "the name of the first count file)")
    gff_opts.add_argument("--source",type=str,default="map_nucleosomes",
                          help="GFF source (Default: %(default)s)")

    args = parser.parse_args(argv)
    bp.get_base_ops_from_args(args)
    source = sp.get_score_source_from_args(args,printer=printer)

    debug = None
    if args.debug and args.processes > 1:
        warn("Debug traces are not written when running in multiple processes.",ArgumentWarning)
    elif args.debug:
        debug_file = "%s.debug.txt" % args.outbase
        printer.write("Writing window traces to %s ..." % debug_file)
        debug = argsopener(debug_file,args,"w")

    try:
        calls = call_nucleosomes(source,
                                 args.threshold,
                                 window=args.window,
                                 buffer=args.buffer,
                                 processes=args.processes,
                                 debug=debug,
                                 printer=printer)
    except ConfigurationError as e:
        printer.write("%s Exiting." % e)
        sys.exit(1)
    finally:
        if debug is not None:
            debug.close()

    printer.write("Identified %s nucleosomes." % len(calls))
    if len(calls) == 0:
        warn("No nucleosomes found at threshold %s. No output written." % args.threshold,DataWarning)
        return

    table_file = "%s.txt" % args.outbase
    printer.write("Writing nucleosomes to %s ..." % table_file)
    with argsopener(table_file,args,"w") as fout:
        fout.write("\t".join(TABLE_COLUMNS) + "\n")
        for call in calls:
            fout.write(call.as_row())

    if args.gff:
        if args.type is None:
            dataset = os.path.basename(args.count_files[0]).split(".")[0]
            feature_type = "%s_nucleosome" % dataset
        else:
            feature_type = args.type

        gff_file = "%s.gff" % args.outbase
        printer.write("Writing nucleosomes to %s ..." % gff_file)
        with opener(gff_file,"w") as fout:
            fout.write("##gff-version 3\n")
            for call in calls:
                fout.write(call.as_gff3(source=args.source,feature_type=feature_type))

    printer.write("Done!")


if __name__ == "__main__":
    main()
