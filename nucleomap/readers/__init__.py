#!/usr/bin/env python
"""Parsers for the file types consumed by :data:`nucleomap`. Readers behave as
iterators and report data in 0-indexed, half-open coordinates, following
Python conventions. Conversion to the 1-based positions used for nucleosome
calling happens in :mod:`nucleomap.genomics.score_source`.

    =================================    =======================================
    **Module**                           **Contents**
    ---------------------------------    ---------------------------------------
    :py:mod:`nucleomap.readers.wiggle`   `bedGraph`_ and `Wiggle`_ occupancy data
    :py:mod:`nucleomap.readers.common`   `chrom.sizes` files and shared helpers
    =================================    =======================================
"""
