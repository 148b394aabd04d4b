#!/usr/bin/env python3
# -*- mode: python; -*-
#
# Copyright 2026 Canonical, Ltd.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This package is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <http://www.gnu.org/licenses/>.

"""
provisioner
===========
Confirmation-gated storage provisioning sequencer
"""

from setuptools import setup, find_packages

import os
import sys


with open(os.path.join(os.path.dirname(__file__),
                       'provisionercore', '__init__.py')) as init:
    ns = {}
    exec(init.read(), ns)
    version = ns['__version__']

if sys.argv[-1] == 'clean':
    print("Cleaning up ...")
    os.system('rm -rf provisioner.egg-info build dist')
    sys.exit()

setup(name='provisioner',
      version=version,
      description="Confirmation-gated storage provisioning sequencer",
      long_description=__doc__,
      license="AGPLv3+",
      packages=find_packages(
          include=["provisioner", "provisioner.*",
                   "provisionercore", "provisionercore.*"]),
      python_requires='>=3.8',
      install_requires=[
          'attrs',
          'PyYAML',
      ],
      extras_require={
          'test': ['parameterized', 'pytest'],
      },
      entry_points={
          'console_scripts': [
              'provisioner = provisioner.cmd.run:main',
          ],
      },
      data_files=[])
