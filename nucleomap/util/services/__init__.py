#!/usr/bin/env python
"""Exceptions, warning types, and warning filters used across :data:`nucleomap`"""
