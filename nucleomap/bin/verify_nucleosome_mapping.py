#!/usr/bin/env python
"""Check a nucleosome map made by `map_nucleosomes` for overlapping or
off-center calls, and optionally remove calls that overlap heavily.

Two checks are made on each nucleosome:

  #. Whether it overlaps the next nucleosome on the same chromosome,
     and by how much

  #. Whether the maximum signal within `--radius` bp of its midpoint lies
     within `--tolerance` bp of the midpoint (`centered`) or further away
     (`offset`)

A summary of both checks is printed. With `--filter`, one nucleosome of each
pair overlapping by more than `--max_overlap` bp is removed: the offset one if
only one is offset, the more offset one if both are, and the one with lower
occupancy if both are centered.

The same occupancy data used to call the nucleosomes should be given.


Output files
------------
    OUTFILE
        The input table, minus any filtered nucleosomes, with additional columns:

        ======================   ==============================================
        Column                   Contains
        ----------------------   ----------------------------------------------
        overlap_length           Overlap with next nucleosome in bp, or `.`
        center_peak_mapping      `centered` or `offset`, or `.` if no signal
        center_peak_offset       Distance from midpoint to signal maximum
        ======================   ==============================================
"""
import warnings
import inspect
import sys
import argparse

from nucleomap.util.scriptlib.argparsers import ScoreSourceParser, BaseParser
from nucleomap.util.io.filters import NameDateWriter
from nucleomap.util.io.openers import get_short_name, argsopener
from nucleomap.util.scriptlib.help_formatters import format_module_docstring
from nucleomap.util.services.exceptions import MalformedFileError, DataWarning, warn
from nucleomap.genomics.verification import read_nucleosome_table, verify_table,\
                                            summarize_verification, filter_overlaps,\
                                            CENTER_RADIUS, CENTER_TOLERANCE,\
                                            DEFAULT_MAX_OVERLAP

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
    parser.add_argument("infile",type=str,
                        help="Nucleosome table from map_nucleosomes")
    parser.add_argument("outfile",type=str,
                        help="Output filename")
    parser.add_argument("--radius",type=int,default=CENTER_RADIUS,metavar="N",
                        help="Distance from midpoint to search for signal maximum, in bp (Default: %(default)s)")
    parser.add_argument("--tolerance",type=int,default=CENTER_TOLERANCE,metavar="N",
                        help="Largest distance from midpoint at which a signal maximum "+
                             "is considered centered, in bp (Default: %(default)s)")
    parser.add_argument("--filter",action="store_true",default=False,
                        help="Remove nucleosomes overlapping by more than `--max_overlap`")
    parser.add_argument("--max_overlap",type=int,default=DEFAULT_MAX_OVERLAP,metavar="N",
                        help="Largest overlap permitted with `--filter`, in bp (Default: %(default)s)")

    args = parser.parse_args(argv)
    bp.get_base_ops_from_args(args)

    try:
        table = read_nucleosome_table(args.infile)
    except (IOError, OSError) as e:
        printer.write("Could not open input file: %s. Exiting." % e)
        sys.exit(1)
    except MalformedFileError as e:
        printer.write("%s. Exiting." % e)
        sys.exit(1)

    printer.write("Loaded %s nucleosomes from %s ..." % (len(table),args.infile))
    source = sp.get_score_source_from_args(args,printer=printer)

    printer.write("Checking overlaps and centering ...")
    table = verify_table(source,table,radius=args.radius,tolerance=args.tolerance)

    summary = summarize_verification(table)
    printer.write("There were %s overlapping nucleosomes out of %s (%.0f%%)" % (summary["overlap_count"],
                                                                                 summary["total"],
                                                                                 summary["overlap_percent"]))
    printer.write("  the overlap mean was %.0f +/- %.0f bp" % (summary["overlap_mean"],summary["overlap_std"]))
    printer.write("There were %s (%.0f%%) centered nucleosomes and %s off-center nucleosomes" % (summary["centered_count"],
                                                                                                summary["centered_percent"],
                                                                                                summary["offcenter_count"]))
    printer.write("  the peak offset distance mean was %.0f +/- %.0f bp" % (summary["offset_mean"],summary["offset_std"]))

    if args.filter:
        if "Occupancy" not in table.columns:
            warn("No Occupancy column in '%s'. Cannot filter overlapping nucleosomes." % args.infile,DataWarning)
        else:
            before = len(table)
            table, offset_count, occupancy_count = filter_overlaps(table,max_overlap=args.max_overlap)
            printer.write("%s nucleosomes were filtered out due to extensive overlap" % (before - len(table)))
            printer.write("  %s were removed because they were offset" % offset_count)
            printer.write("  %s were removed because of low occupancy" % occupancy_count)

    printer.write("Writing %s nucleosomes to %s ..." % (len(table),args.outfile))
    with argsopener(args.outfile,args,"w") as fout:
        table.to_csv(fout,sep="\t",header=True,index=False,na_rep=".")

    printer.write("Done!")


if __name__ == "__main__":
    main()
