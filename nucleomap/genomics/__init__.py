#!/usr/bin/env python
"""This package contains the nucleosome caller and the data sources it reads.

Package overview
================

    ==================================================  ==================================================================
    **Submodule**                                        **Description**
    --------------------------------------------------  ------------------------------------------------------------------
    :py:mod:`~nucleomap.genomics.score_source`           Per-nucleotide occupancy data, read from `wiggle`_, `bedGraph`_
                                                         or paired-end `BAM`_ files

    :py:mod:`~nucleomap.genomics.nucleosomes`            Sliding-window nucleosome caller

    :py:mod:`~nucleomap.genomics.verification`           Overlap and centering checks of called nucleosomes,
                                                         and removal of overlapping calls
    ==================================================  ==================================================================
"""
