# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

__version__ = "0.1.0-dev"
