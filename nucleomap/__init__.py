#!/usr/bin/env python
"""Welcome to nucleomap!

This package calls nucleosome positions from per-nucleotide occupancy data,
such as counts of nucleosomal fragment midpoints from MNase-seq. To this end,
it provides:

  #. Command-line scripts that call nucleosomes and check the resulting
     maps (see |bin|)

  #. A sliding-window nucleosome caller, and score sources that read occupancy
     data from `wiggle`_, `bedGraph`_ and `BAM`_ files (see |genomics| and
     |readers|)

  #. Tools to facilitate writing command-line scripts (see |scriptlib|)


Package overview
----------------
nucleomap is divided into the following subpackages:

    ==============    =========================================================
    Package           Contents
    --------------    ---------------------------------------------------------
    |bin|             Command-line scripts
    |genomics|        Nucleosome caller, score sources, and map verification
    |readers|         Parsers for wiggle, bedGraph and chrom.sizes files
    |util|            Utilities (e.g. exceptions, argument parsers, file openers)
    |test|            Unit and functional tests
    ==============    =========================================================

"""
__version__ = "0.1.0"

from nucleomap.genomics.score_source import SparseScoreSource, BAMMidpointScoreSource
from nucleomap.genomics.nucleosomes import NucleosomeCall, NucleosomeCaller, call_nucleosomes, calls_to_table

from nucleomap.util.io.openers import read_pl_table

from nucleomap.util.services.exceptions import formatwarning
