# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import re
from collections import namedtuple
from string import ascii_uppercase

from seqcontrol.db.exceptions import SeqcontrolInvalidWellPositionError


LETTERS = ascii_uppercase

PlateShape = namedtuple('PlateShape', ['num_rows', 'num_columns'])

PLATE_96 = PlateShape(8, 12)
PLATE_384 = PlateShape(16, 24)

_POSITION_RE = re.compile(r'^([A-Z])(\d{1,2})$')


def format_well_position(row, column):
    """Formats a well position in its canonical form

    Parameters
    ----------
    row : int
        The 1-based row number
    column : int
        The 1-based column number

    Returns
    -------
    str
        The canonical position, e.g. 'A01'
    """
    return '%s%02d' % (LETTERS[row - 1], column)


def parse_well_position(position, shape=PLATE_96):
    """Parses a textual well position

    Parameters
    ----------
    position : str
        The position to parse. Letter case, column zero-padding and
        surrounding whitespace are ignored, so 'a1', 'A01' and ' A1 ' are
        the same position
    shape : PlateShape, optional
        The plate grid the position must fall in. Default: 96-well plate

    Returns
    -------
    (int, int)
        The 1-based row and column numbers

    Raises
    ------
    SeqcontrolInvalidWellPositionError
        If the position can't be parsed or falls outside of the grid
    """
    if not isinstance(position, str):
        raise SeqcontrolInvalidWellPositionError(position)
    match = _POSITION_RE.match(position.strip().upper())
    if match is None:
        raise SeqcontrolInvalidWellPositionError(position)
    row = LETTERS.index(match.group(1)) + 1
    column = int(match.group(2))
    if row > shape.num_rows or not 1 <= column <= shape.num_columns:
        raise SeqcontrolInvalidWellPositionError(position)
    return row, column


def normalize_well_position(position, shape=PLATE_96):
    """Returns the canonical form of a well position

    Raises
    ------
    SeqcontrolInvalidWellPositionError
        If the position can't be parsed or falls outside of the grid
    """
    return format_well_position(*parse_well_position(position, shape))


def is_valid_well_position(position, shape=PLATE_96):
    """Whether the position falls inside the plate grid"""
    try:
        parse_well_position(position, shape)
    except SeqcontrolInvalidWellPositionError:
        return False
    return True


def well_positions(shape=PLATE_96, order='row'):
    """Enumerates all the positions of a plate

    Parameters
    ----------
    shape : PlateShape, optional
        The plate grid. Default: 96-well plate
    order : {'row', 'column'}, optional
        Whether to walk the plate row by row (A01, A02, ...) or column by
        column (A01, B01, ...). Default: 'row'

    Returns
    -------
    list of str
        The canonical positions

    Raises
    ------
    ValueError
        If order is not recognized
    """
    rows = range(1, shape.num_rows + 1)
    columns = range(1, shape.num_columns + 1)
    if order == 'row':
        return [format_well_position(r, c) for r in rows for c in columns]
    elif order == 'column':
        return [format_well_position(r, c) for c in columns for r in rows]
    raise ValueError("Unknown plate walking order: %s" % order)


def position_to_index(position, shape=PLATE_96):
    """Zero-based row-major index of a position in the plate"""
    row, column = parse_well_position(position, shape)
    return (row - 1) * shape.num_columns + (column - 1)


def index_to_position(index, shape=PLATE_96):
    """Position at the zero-based row-major index of the plate

    Raises
    ------
    ValueError
        If the index falls outside of the plate
    """
    if not 0 <= index < shape.num_rows * shape.num_columns:
        raise ValueError("Well index %s out of range" % index)
    row, column = divmod(index, shape.num_columns)
    return format_well_position(row + 1, column + 1)


def sort_by_position(wells, shape=PLATE_96):
    """Sorts well records in row-major plate order"""
    return sorted(wells,
                  key=lambda w: position_to_index(w['position'], shape))
