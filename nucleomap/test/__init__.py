#!/usr/bin/env python
"""Unit and functional tests for :data:`nucleomap`"""
