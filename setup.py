# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from setuptools import setup, find_packages
from glob import glob

__version__ = "0.1.0-dev"

classes = """
    Development Status :: 3 - Alpha
    License :: OSI Approved :: BSD License
    Topic :: Scientific/Engineering :: Bio-Informatics
    Topic :: Software Development :: Libraries :: Application Frameworks
    Topic :: Software Development :: Libraries :: Python Modules
    Programming Language :: Python
    Programming Language :: Python :: 3
    Operating System :: POSIX :: Linux
    Operating System :: MacOS :: MacOS X
"""

long_description = ("Plate management for amplicon sequencing runs: DNA, PCR "
                    "and index plates, pools, sample sheets and liquid "
                    "handler files")

classifiers = [s.strip() for s in classes.split('\n') if s]

setup(name='seqcontrol',
      long_description=long_description,
      version=__version__,
      license='BSD',
      description='A plate manager for amplicon sequencing runs',
      packages=find_packages(),
      include_package_data=True,
      package_data={
        'seqcontrol.db': ['support_files/patches/*.sql']},
      scripts=glob('scripts/*'),
      python_requires='>=3.6',
      extras_require={'test': ['pytest', 'pep8', 'mock']},
      install_requires=['click', 'tornado', 'psycopg2-binary', 'numpy',
                        'pandas', 'natsort'],
      classifiers=classifiers
      )
