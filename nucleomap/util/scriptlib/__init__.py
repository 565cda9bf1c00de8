#!/usr/bin/env python
"""Library components for writing command-line scripts

Package overview
================

    ===================================================    =========================
    **Package module**                                     **Contents**
    ---------------------------------------------------    -------------------------
    :py:mod:`~nucleomap.util.scriptlib.argparsers`          :class:`~argparse.ArgumentParser` factories for opening occupancy data and setting warning levels
    :py:mod:`~nucleomap.util.scriptlib.help_formatters`     Utilities to reformat module docstrings for use as command-line help text
    ===================================================    =========================
"""
