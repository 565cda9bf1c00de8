#!/usr/bin/env python
"""Setup script for nucleomap. Command-line scripts in `nucleomap/bin`
are detected automatically and installed as console scripts.
"""
import os
from setuptools import setup, find_packages

nucleomap_version = "0.1.0"


#===============================================================================
# Package metadata
#===============================================================================

with open("README.rst") as f:
    long_description = f.read()

install_requires = [
    "numpy>=1.16",
    "pandas>=1.0",
    "pysam>=0.15",
    "termcolor",
]


def get_scripts():
    """Detect command-line scripts automatically

    Returns
    -------
    list
        list of strings describing command-line scripts
    """
    binscripts = [
        X.replace(".py", "") for X in filter(
            lambda x: x.endswith(".py") and  "__init__" not in x,
            os.listdir(os.path.join("nucleomap",  "bin")),
        )
    ]
    return ["%s = nucleomap.bin.%s:main" % (X, X) for X in binscripts]


#===============================================================================
# Program body
#===============================================================================

setup(

    name             = "nucleomap",
    version          = nucleomap_version,
    long_description =  long_description,
    long_description_content_type = "text/x-rst",

    description      = "Sliding-window nucleosome calling from MNase-seq occupancy data",
    license          = "BSD 3-Clause",
    keywords         = "nucleosome mnase-seq chromatin sequencing genomics biology",
    platforms        = "OS Independent",

    classifiers      = [
         'Development Status :: 4 - Beta',
         'Programming Language :: Python :: 3',

         'Topic :: Scientific/Engineering :: Bio-Informatics',

         'Intended Audience :: Science/Research',
         'Intended Audience :: Developers',

         'License :: OSI Approved :: BSD License',
         'Operating System :: POSIX',
         'Natural Language :: English',
    ],

    zip_safe = False,
    packages = find_packages(),

    entry_points = {
        "console_scripts" : get_scripts()
    },

    install_requires = install_requires,
    extras_require   = {
        "test" : ["pytest"],
    },

) # yapf: disable
