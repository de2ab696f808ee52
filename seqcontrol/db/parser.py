# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging
from io import StringIO
from math import isfinite

import pandas as pd

from seqcontrol.db.exceptions import (
    SeqcontrolValidationError, SeqcontrolInvalidWellPositionError)
from seqcontrol.db.protocol import WELL_TYPES
from seqcontrol.db.well import normalize_well_position, PLATE_96


# Accepted header spellings, after lowercasing and dropping '_' and ' '
DNA_WELL_COLUMNS = {
    'position': ('position', ),
    'sample_id': ('sampleid', ),
    'well_type': ('welltype', ),
    'dna_concentration': ('dnaconcentrationngul', 'dnaconcentration',
                          'concentration'),
    'notes': ('notes', ),
}

PCR_WELL_COLUMNS = {
    'position': ('position', ),
    'sample_label': ('samplelabel', ),
    'assay_type': ('assaytype', ),
    'well_type': ('welltype', ),
    'notes': ('notes', ),
}

INDEX_WELL_COLUMNS = {
    'position': ('position', ),
    'i5_name': ('i5name', ),
    'i5_sequence': ('i5sequence', ),
    'i7_name': ('i7name', ),
    'i7_sequence': ('i7sequence', ),
    'merged_sequence': ('mergedsequence', ),
}

# Names used in the error messages for the required columns
_DISPLAY_NAMES = {
    'position': 'position',
    'i5_name': 'i5Name',
    'i5_sequence': 'i5Sequence',
    'i7_name': 'i7Name',
    'i7_sequence': 'i7Sequence',
}


def _normalize_header(name):
    return name.strip().lower().replace('_', '').replace(' ', '')


def _read_table(text, columns, required):
    """Reads the CSV text into a DataFrame keyed by the canonical columns

    Parameters
    ----------
    text : str
        The CSV contents
    columns : dict of {str: tuple of str}
        The canonical column names and their accepted spellings
    required : list of str
        The canonical columns that must be present

    Returns
    -------
    (pd.DataFrame, list of int)
        The table, with every canonical column present and every cell a
        stripped string, and the 1-based line number of each table row

    Raises
    ------
    SeqcontrolValidationError
        If the text has no data rows, a required column is missing or the
        text is not parseable CSV
    """
    lines = (text or '').strip().splitlines()
    if len(lines) < 2:
        raise SeqcontrolValidationError(
            'CSV must contain a header row and at least one data row')

    # The header is line 1, blank lines keep their number but are skipped
    data_lines = []
    line_numbers = []
    for idx, line in enumerate(lines[1:], start=2):
        if line.strip():
            data_lines.append(line)
            line_numbers.append(idx)
    if not data_lines:
        raise SeqcontrolValidationError(
            'CSV must contain a header row and at least one data row')

    try:
        df = pd.read_csv(StringIO('\n'.join([lines[0]] + data_lines)),
                         dtype=str, keep_default_na=False, index_col=False,
                         skipinitialspace=True, skip_blank_lines=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise SeqcontrolValidationError('Malformed CSV: %s' % e)

    rename = {}
    for header in df.columns:
        key = _normalize_header(str(header))
        for canonical, spellings in columns.items():
            if key in spellings and canonical not in rename.values():
                rename[header] = canonical
                break
    df = df[list(rename)].rename(columns=rename)

    for canonical in required:
        if canonical not in df.columns:
            name = _DISPLAY_NAMES.get(canonical, canonical)
            article = 'an' if name[0] in 'aeiou' else 'a'
            raise SeqcontrolValidationError(
                'CSV must contain %s "%s" column' % (article, name),
                column=name)

    for canonical in columns:
        if canonical not in df.columns:
            df[canonical] = ''
    df = df.fillna('').apply(lambda col: col.astype(str).str.strip())
    return df, line_numbers


def _position(raw, line, shape, seen):
    """Normalizes the position of a row, rejecting bad or repeated ones

    `seen` holds the positions of the previous rows and is updated in place
    """
    try:
        position = normalize_well_position(raw, shape)
    except SeqcontrolInvalidWellPositionError:
        raise SeqcontrolInvalidWellPositionError(raw, line=line)
    if position in seen:
        raise SeqcontrolValidationError(
            'Duplicate well position "%s" on line %d' % (position, line),
            line=line, column='position')
    seen.add(position)
    return position


def _well_type(value, line):
    well_type = (value or 'SAMPLE').upper()
    if well_type not in WELL_TYPES:
        raise SeqcontrolValidationError(
            'Invalid well type "%s" on line %d' % (value, line),
            line=line, column='wellType')
    return well_type


def _concentration(value, line):
    if not value:
        return None
    try:
        conc = float(value)
    except ValueError:
        conc = None
    if conc is None or not isfinite(conc) or conc < 0:
        raise SeqcontrolValidationError(
            'Invalid concentration value "%s" on line %d' % (value, line),
            line=line, column='concentration')
    return conc


def parse_dna_wells_csv(text, shape=PLATE_96):
    """Parses the CSV contents of a DNA plate well import

    Parameters
    ----------
    text : str
        The CSV contents. Only the position column is required; sampleId,
        wellType, dnaConcentrationNgUl (or concentration) and notes are
        optional
    shape : PlateShape, optional
        The plate grid. Default: 96-well plate

    Returns
    -------
    list of dict
        The validated wells, in file order, with keys position, sample_id,
        well_type, dna_concentration and notes

    Raises
    ------
    SeqcontrolValidationError
        If any row of the file is invalid. No rows are returned in that case
    """
    df, line_numbers = _read_table(text, DNA_WELL_COLUMNS, ['position'])
    seen = set()
    wells = []
    for line, row in zip(line_numbers, df.to_dict('records')):
        position = _position(row['position'], line, shape, seen)
        wells.append({
            'position': position,
            'sample_id': row['sample_id'] or None,
            'well_type': _well_type(row['well_type'], line),
            'dna_concentration': _concentration(row['dna_concentration'],
                                                line),
            'notes': row['notes'] or None})
    logging.debug("Parsed %d DNA wells", len(wells))
    return wells


def parse_pcr_wells_csv(text, shape=PLATE_96):
    """Parses the CSV contents of a PCR plate well import

    Only the position column is required; sampleLabel, assayType, wellType
    and notes are optional. Returned wells have keys position, sample_label,
    assay_type, well_type and notes.

    Raises
    ------
    SeqcontrolValidationError
        If any row of the file is invalid
    """
    df, line_numbers = _read_table(text, PCR_WELL_COLUMNS, ['position'])
    seen = set()
    wells = []
    for line, row in zip(line_numbers, df.to_dict('records')):
        position = _position(row['position'], line, shape, seen)
        wells.append({
            'position': position,
            'sample_label': row['sample_label'] or None,
            'assay_type': row['assay_type'] or None,
            'well_type': _well_type(row['well_type'], line),
            'notes': row['notes'] or None})
    logging.debug("Parsed %d PCR wells", len(wells))
    return wells


def parse_index_wells_csv(text, shape=PLATE_96):
    """Parses the CSV contents of an index plate import

    The position, i5Name, i5Sequence, i7Name and i7Sequence columns are
    required. The merged sequence is taken from an optional mergedSequence
    column and otherwise is the i5 sequence followed by the i7 sequence.

    Raises
    ------
    SeqcontrolValidationError
        If a required column is missing or any row of the file is invalid
    """
    required = ['position', 'i5_name', 'i5_sequence', 'i7_name',
                'i7_sequence']
    df, line_numbers = _read_table(text, INDEX_WELL_COLUMNS, required)
    seen = set()
    wells = []
    for line, row in zip(line_numbers, df.to_dict('records')):
        position = _position(row['position'], line, shape, seen)
        for column in ('i5_sequence', 'i7_sequence'):
            if not row[column]:
                raise SeqcontrolValidationError(
                    'Missing %s on line %d' % (_DISPLAY_NAMES[column], line),
                    line=line, column=_DISPLAY_NAMES[column])
        wells.append({
            'position': position,
            'i5_name': row['i5_name'],
            'i5_sequence': row['i5_sequence'],
            'i7_name': row['i7_name'],
            'i7_sequence': row['i7_sequence'],
            'merged_sequence': (row['merged_sequence'] or
                                row['i5_sequence'] + row['i7_sequence'])})
    logging.debug("Parsed %d index wells", len(wells))
    return wells
