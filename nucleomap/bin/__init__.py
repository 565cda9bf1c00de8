#!/usr/bin/env python
"""Command-line scripts for calling and checking nucleosome positions

    ================================   =============================================================================
    **Script**                         **Description**
    --------------------------------   -----------------------------------------------------------------------------
    |map_nucleosomes|                  Call nucleosome positions from per-nucleotide occupancy data, such as
                                       counts of nucleosomal fragment midpoints, by scanning each chromosome
                                       in sliding windows

    |verify_nucleosome_mapping|        Check a nucleosome map for overlapping or off-center calls,
                                       and optionally remove heavily overlapping calls
    ================================   =============================================================================

Each script is installed as an executable, and prints its documentation
when called with `--help`.
"""
