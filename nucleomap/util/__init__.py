#!/usr/bin/env python
"""Miscellaneous utilities useful for scripting

Package overview
================

    ======================================   ================================================================
    **Subpackages**                          **Contents**
    --------------------------------------   ----------------------------------------------------------------
    :py:obj:`~nucleomap.util.io`              Wrappers for file I/O, and stream filters for logging
    :py:obj:`~nucleomap.util.scriptlib`       Tools for writing command-line scripts that use :data:`nucleomap`
    :py:obj:`~nucleomap.util.services`        Exceptions, warnings, and warning filters
    ======================================   ================================================================
"""
