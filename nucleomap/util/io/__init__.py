#!/usr/bin/env python
"""Tools for file I/O: openers for (compressed) files and stream filters
such as the timestamped writers used for progress reporting
"""
