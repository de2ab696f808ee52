# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging

import numpy as np

from seqcontrol.db import base
from seqcontrol.db import sql_connection
from seqcontrol.db import run as run_module
from seqcontrol.db.exceptions import (
    SeqcontrolValidationError, SeqcontrolDuplicateError,
    SeqcontrolUnknownIdError, SeqcontrolInvalidWellPositionError)
from seqcontrol.db.parser import (
    parse_dna_wells_csv, parse_pcr_wells_csv, parse_index_wells_csv)
from seqcontrol.db.protocol import (
    DEFAULT_PROTOCOL, EXTRACTION_METHODS, PCR_RESULTS, POOLING_ACTIONS,
    get_assay_info)
from seqcontrol.db.status import validate_plate_transition
from seqcontrol.db.well import (
    PlateShape, PLATE_96, parse_well_position, normalize_well_position,
    is_valid_well_position)


class Plate(base.SeqcontrolObject):
    """Base class of the plates whose wells are stored by position

    Subclasses define the well table and its columns, and the CSV parser
    used to import their wells.
    """
    _well_table = None
    _well_columns = ()
    _parser = None

    @property
    def num_rows(self):
        """The number of rows"""
        return self._get_attr('num_rows')

    @property
    def num_columns(self):
        """The number of columns"""
        return self._get_attr('num_columns')

    @property
    def shape(self):
        """The plate grid

        Returns
        -------
        seqcontrol.db.well.PlateShape
        """
        with sql_connection.TRN as TRN:
            sql = "SELECT num_rows, num_columns FROM {} WHERE {} = %s".format(
                self._table, self._id_column)
            TRN.add(sql, [self.id])
            return PlateShape(*TRN.execute_fetchindex()[0])

    @property
    def wells(self):
        """The wells of the plate, in plate order

        Returns
        -------
        list of dict
            The well records, keyed by column name
        """
        with sql_connection.TRN as TRN:
            sql = """SELECT position, {}
                     FROM {}
                     WHERE {} = %s
                     ORDER BY position""".format(
                ', '.join(self._well_columns), self._well_table,
                self._id_column)
            TRN.add(sql, [self.id])
            return [dict(r) for r in TRN.execute_fetchindex()]

    def get_well(self, position):
        """Returns the well at the given position

        Parameters
        ----------
        position : str
            The well position, in any accepted spelling

        Returns
        -------
        dict or None
            The well record, or None if the position holds no well

        Raises
        ------
        SeqcontrolInvalidWellPositionError
            If the position falls outside of the plate
        """
        position = normalize_well_position(position, self.shape)
        with sql_connection.TRN as TRN:
            sql = """SELECT position, {}
                     FROM {}
                     WHERE {} = %s AND position = %s""".format(
                ', '.join(self._well_columns), self._well_table,
                self._id_column)
            TRN.add(sql, [self.id, position])
            res = TRN.execute_fetchindex()
            return dict(res[0]) if res else None

    @property
    def layout(self):
        """Returns a matrix containing the wells of the plate

        Returns
        -------
        list of list of dict
            num_rows lists of num_columns cells. Each cell holds the well
            record at that position, or None if the position is empty
        """
        return self._build_layout(self.wells, self.shape)

    @staticmethod
    def _build_layout(wells, shape):
        """Places the well records in a grid of the plate shape

        Parameters
        ----------
        wells : iterable of dict
            The well records, with a 'position' key
        shape : PlateShape
            The plate grid

        Returns
        -------
        list of list of dict
            The full plate grid, with None in the empty positions
        """
        layout = np.full((shape.num_rows, shape.num_columns), None,
                         dtype=object)
        for well in wells:
            row, col = parse_well_position(well['position'], shape)
            layout[row - 1, col - 1] = well
        return layout.tolist()

    def _lock(self, TRN):
        # Serializes concurrent full replacements of the same plate
        sql = "SELECT {0} FROM {1} WHERE {0} = %s FOR UPDATE".format(
            self._id_column, self._table)
        TRN.add(sql, [self.id])

    def _replace_wells(self, wells):
        """Replaces all the wells of the plate with the given ones

        Parameters
        ----------
        wells : list of dict
            The new well records. All of them must have the same keys,
            which must be columns of the well table
        """
        with sql_connection.TRN as TRN:
            self._lock(TRN)
            sql = "DELETE FROM {} WHERE {} = %s".format(
                self._well_table, self._id_column)
            TRN.add(sql, [self.id])
            if wells:
                columns = list(wells[0])
                sql = "INSERT INTO {} ({}, {}) VALUES (%s, {})".format(
                    self._well_table, self._id_column, ', '.join(columns),
                    ', '.join(['%s'] * len(columns)))
                TRN.add(sql, [[self.id] + [w[c] for c in columns]
                              for w in wells], many=True)
            TRN.execute()
        logging.info("Replaced the wells of %s %s with %d wells"
                     % (self._name, self.id, len(wells)))

    def import_wells(self, csv_text):
        """Replaces the wells of the plate with the contents of a CSV file

        The whole file is validated before the plate is touched, so a file
        with any invalid row leaves the plate unchanged.

        Parameters
        ----------
        csv_text : str
            The CSV contents

        Returns
        -------
        int
            The number of wells imported

        Raises
        ------
        SeqcontrolValidationError
            If the file is malformed or any row is invalid
        """
        wells = self._parser(csv_text, self.shape)
        self._replace_wells(wells)
        return len(wells)


class DNAPlate(Plate):
    """DNA extraction plate of a sequencing run

    Attributes
    ----------
    plate_identifier
    plate_barcode
    extraction_method
    client_project
    notes
    run
    wells
    layout
    """
    _table = 'seqcontrol.dna_plate'
    _id_column = 'dna_plate_id'
    _name = 'DNA plate'
    _well_table = 'seqcontrol.dna_plate_well'
    _well_columns = ('sample_id', 'well_type', 'dna_concentration', 'notes')
    _parser = staticmethod(parse_dna_wells_csv)

    @classmethod
    def create(cls, run, plate_identifier, plate_barcode=None,
               extraction_method='AUTOMATED', client_project=None,
               notes=None, shape=PLATE_96):
        """Creates a new DNA plate

        Parameters
        ----------
        run : seqcontrol.db.run.SequencingRun
            The run the plate belongs to
        plate_identifier : str
            The plate identifier
        plate_barcode : str, optional
            The barcode on the physical plate
        extraction_method : {'AUTOMATED', 'MANUAL', 'OTHER'}, optional
            How the DNA was extracted. Default: 'AUTOMATED'
        client_project : str, optional
            The client project the samples belong to
        notes : str, optional
            Plate notes
        shape : PlateShape, optional
            The plate grid. Default: 96-well plate

        Returns
        -------
        DNAPlate
            The newly created plate

        Raises
        ------
        SeqcontrolValidationError
            If the extraction method is not recognized
        """
        if extraction_method not in EXTRACTION_METHODS:
            raise SeqcontrolValidationError(
                'Invalid extraction method "%s"' % extraction_method,
                column='extraction_method')
        with sql_connection.TRN as TRN:
            sql = """INSERT INTO seqcontrol.dna_plate
                        (sequencing_run_id, plate_identifier, plate_barcode,
                         extraction_method, client_project, notes, num_rows,
                         num_columns)
                     VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                     RETURNING dna_plate_id"""
            TRN.add(sql, [run.id, plate_identifier, plate_barcode,
                          extraction_method, client_project, notes,
                          shape.num_rows, shape.num_columns])
            return cls(TRN.execute_fetchlast())

    @property
    def plate_identifier(self):
        return self._get_attr('plate_identifier')

    @property
    def plate_barcode(self):
        return self._get_attr('plate_barcode')

    @property
    def extraction_method(self):
        return self._get_attr('extraction_method')

    @property
    def client_project(self):
        return self._get_attr('client_project')

    @property
    def notes(self):
        return self._get_attr('notes')

    @notes.setter
    def notes(self, value):
        self._set_attr('notes', value)

    @property
    def run(self):
        """The sequencing run the plate belongs to"""
        return run_module.SequencingRun(self._get_attr('sequencing_run_id'))

    @property
    def sample_count(self):
        """The number of SAMPLE wells in the plate"""
        with sql_connection.TRN as TRN:
            sql = """SELECT COUNT(1)
                     FROM seqcontrol.dna_plate_well
                     WHERE dna_plate_id = %s AND well_type = 'SAMPLE'"""
            TRN.add(sql, [self.id])
            return TRN.execute_fetchlast()


class IndexPlate(Plate):
    """Reusable library of index adapter sequences

    Index plates are not tied to a sequencing run; any number of PCR plates
    can take their indices from the same index plate.
    """
    _table = 'seqcontrol.index_plate'
    _id_column = 'index_plate_id'
    _name = 'Index plate'
    _well_table = 'seqcontrol.index_well'
    _well_columns = ('i5_name', 'i5_sequence', 'i7_name', 'i7_sequence',
                     'merged_sequence')
    _parser = staticmethod(parse_index_wells_csv)

    _EDITABLE_COLUMNS = frozenset(_well_columns)

    @classmethod
    def create(cls, plate_name, description=None, shape=PLATE_96):
        """Creates a new index plate

        Raises
        ------
        SeqcontrolDuplicateError
            If an index plate with the same name already exists
        """
        with sql_connection.TRN as TRN:
            if cls._attr_exists('plate_name', plate_name):
                raise SeqcontrolDuplicateError(
                    cls._name, [('plate_name', plate_name)])
            sql = """INSERT INTO seqcontrol.index_plate
                        (plate_name, description, num_rows, num_columns)
                     VALUES (%s, %s, %s, %s)
                     RETURNING index_plate_id"""
            TRN.add(sql, [plate_name, description, shape.num_rows,
                          shape.num_columns])
            return cls(TRN.execute_fetchlast())

    @property
    def plate_name(self):
        return self._get_attr('plate_name')

    @property
    def description(self):
        return self._get_attr('description')

    @property
    def is_active(self):
        return self._get_attr('is_active')

    @is_active.setter
    def is_active(self, value):
        self._set_attr('is_active', value)

    @staticmethod
    def _merge_index_well(well, changes):
        """Applies the changes to an index well record

        The merged sequence is recomputed as the i5 sequence followed by the
        i7 sequence whenever either of them changes, unless the changes set
        the merged sequence explicitly.

        Parameters
        ----------
        well : dict
            The current index well record
        changes : dict
            The new column values

        Returns
        -------
        dict
            The updated record

        Raises
        ------
        SeqcontrolValidationError
            If the changes include a column that can't be edited or clear a
            sequence
        """
        unknown = set(changes) - IndexPlate._EDITABLE_COLUMNS
        if unknown:
            raise SeqcontrolValidationError(
                "Index well attribute(s) not recognized: %s"
                % ', '.join(sorted(unknown)))
        for column in ('i5_sequence', 'i7_sequence'):
            if column in changes and not changes[column]:
                raise SeqcontrolValidationError(
                    "%s can't be empty" % column, column=column)
        result = dict(well)
        result.update(changes)
        if 'i5_sequence' in changes or 'i7_sequence' in changes:
            result['merged_sequence'] = (
                changes.get('merged_sequence') or
                result['i5_sequence'] + result['i7_sequence'])
        return result

    def update_well(self, position, **changes):
        """Edits a single index well

        Parameters
        ----------
        position : str
            The well position
        changes : dict
            The new values of any of i5_name, i5_sequence, i7_name,
            i7_sequence and merged_sequence

        Returns
        -------
        dict
            The updated well record

        Raises
        ------
        SeqcontrolUnknownIdError
            If the plate holds no well at position
        SeqcontrolValidationError
            If the changes are not valid
        """
        with sql_connection.TRN as TRN:
            well = self.get_well(position)
            if well is None:
                raise SeqcontrolUnknownIdError(
                    'Index well', '%s:%s' % (self.id, position))
            well = self._merge_index_well(well, changes)
            sql = """UPDATE seqcontrol.index_well
                     SET i5_name = %s, i5_sequence = %s, i7_name = %s,
                         i7_sequence = %s, merged_sequence = %s
                     WHERE index_plate_id = %s AND position = %s"""
            TRN.add(sql, [well['i5_name'], well['i5_sequence'],
                          well['i7_name'], well['i7_sequence'],
                          well['merged_sequence'], self.id,
                          well['position']])
            TRN.execute()
        return well


class PCRPlate(Plate):
    """Amplicon PCR plate of a sequencing run

    Attributes
    ----------
    plate_identifier
    assay_type
    status
    dna_plate
    index_plate
    is_redo
    redo_of_plate
    gel_notes
    notes
    run
    wells
    layout
    """
    _table = 'seqcontrol.pcr_plate'
    _id_column = 'pcr_plate_id'
    _name = 'PCR plate'
    _well_table = 'seqcontrol.pcr_plate_well'
    _well_columns = ('sample_label', 'assay_type', 'well_type',
                     'i5_sequence', 'i7_sequence', 'merged_index_sequence',
                     'pcr_result', 'pooling_action', 'notes')
    _parser = staticmethod(parse_pcr_wells_csv)

    @classmethod
    def create(cls, run, plate_identifier, assay_type, dna_plate=None,
               redo_of_plate=None, notes=None, shape=PLATE_96):
        """Creates a new PCR plate

        Parameters
        ----------
        run : seqcontrol.db.run.SequencingRun
            The run the plate belongs to
        plate_identifier : str
            The plate identifier
        assay_type : str
            The PCR assay code, e.g. 'ASSAY_16S'
        dna_plate : DNAPlate, optional
            The DNA plate the wells come from
        redo_of_plate : PCRPlate, optional
            The plate this one repeats. The new plate is flagged as a redo
        notes : str, optional
            Plate notes
        shape : PlateShape, optional
            The plate grid. Default: 96-well plate

        Returns
        -------
        PCRPlate
            The newly created plate
        """
        with sql_connection.TRN as TRN:
            sql = """INSERT INTO seqcontrol.pcr_plate
                        (sequencing_run_id, plate_identifier, assay_type,
                         dna_plate_id, is_redo, redo_of_plate_id, notes,
                         num_rows, num_columns)
                     VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                     RETURNING pcr_plate_id"""
            TRN.add(sql, [run.id, plate_identifier, assay_type,
                          dna_plate.id if dna_plate is not None else None,
                          redo_of_plate is not None,
                          redo_of_plate.id if redo_of_plate is not None
                          else None,
                          notes, shape.num_rows, shape.num_columns])
            return cls(TRN.execute_fetchlast())

    @property
    def plate_identifier(self):
        return self._get_attr('plate_identifier')

    @property
    def assay_type(self):
        return self._get_attr('assay_type')

    @property
    def status(self):
        return self._get_attr('status')

    @property
    def is_redo(self):
        return self._get_attr('is_redo')

    @property
    def redo_of_plate(self):
        """The plate this one repeats, if any"""
        plate_id = self._get_attr('redo_of_plate_id')
        return PCRPlate(plate_id) if plate_id is not None else None

    @property
    def dna_plate(self):
        """The DNA plate the wells were populated from, if any"""
        plate_id = self._get_attr('dna_plate_id')
        return DNAPlate(plate_id) if plate_id is not None else None

    @property
    def index_plate(self):
        """The index plate the indices were assigned from, if any"""
        plate_id = self._get_attr('index_plate_id')
        return IndexPlate(plate_id) if plate_id is not None else None

    @property
    def gel_notes(self):
        return self._get_attr('gel_notes')

    @gel_notes.setter
    def gel_notes(self, value):
        self._set_attr('gel_notes', value)

    @property
    def notes(self):
        return self._get_attr('notes')

    @notes.setter
    def notes(self, value):
        self._set_attr('notes', value)

    @property
    def run(self):
        """The sequencing run the plate belongs to"""
        return run_module.SequencingRun(self._get_attr('sequencing_run_id'))

    @property
    def run_id(self):
        return self._get_attr('sequencing_run_id')

    def update_status(self, status):
        """Moves the plate to the next status of the plate workflow

        Parameters
        ----------
        status : str
            The new status

        Raises
        ------
        SeqcontrolTransitionError
            If the plate can't move from its current status to status
        """
        with sql_connection.TRN:
            current = self.status
            validate_plate_transition(current, status)
            self._set_attr('status', status)
        logging.info("PCR plate %s moved from %s to %s"
                     % (self.id, current, status))

    @staticmethod
    def _propagate_wells(dna_wells, assay_info, shape=PLATE_96):
        """Builds the PCR wells that amplify the given DNA wells

        Parameters
        ----------
        dna_wells : list of dict
            The DNA well records
        assay_info : seqcontrol.db.protocol.AssayInfo
            The assay run on the plate
        shape : PlateShape, optional
            The PCR plate grid. Default: 96-well plate

        Returns
        -------
        list of dict
            One pending, normally pooled PCR well per DNA well, at the same
            position

        Raises
        ------
        SeqcontrolValidationError
            If there are no DNA wells or a DNA well falls outside of the PCR
            plate grid
        """
        if not dna_wells:
            raise SeqcontrolValidationError('Source DNA plate has no wells')
        for well in dna_wells:
            if not is_valid_well_position(well['position'], shape):
                raise SeqcontrolValidationError(
                    'DNA well "%s" falls outside of the %dx%d PCR plate'
                    % (well['position'], shape.num_rows, shape.num_columns),
                    column='position')
        return [{'position': w['position'],
                 'sample_label': ('%s%s' % (w['sample_id'], assay_info.suffix)
                                  if w['sample_id'] else None),
                 'assay_type': assay_info.label,
                 'well_type': w['well_type'],
                 'pcr_result': 'PCR_PENDING',
                 'pooling_action': 'POOL_NORMAL'}
                for w in dna_wells]

    def populate_from_dna_plate(self, dna_plate, assay_type=None,
                                protocol=DEFAULT_PROTOCOL):
        """Replaces the wells of the plate with the wells of a DNA plate

        Every well previously on the plate is discarded, including its index
        assignment and PCR results.

        Parameters
        ----------
        dna_plate : DNAPlate
            The source plate
        assay_type : str, optional
            The assay code. Default: the plate's assay
        protocol : seqcontrol.db.protocol.Protocol, optional
            The laboratory constants holding the known assays

        Returns
        -------
        int
            The number of wells created

        Raises
        ------
        SeqcontrolValidationError
            If the DNA plate has no wells or holds wells outside of the
            grid of this plate
        """
        with sql_connection.TRN as TRN:
            if assay_type is None:
                assay_type = self.assay_type
            assay_info = get_assay_info(assay_type, protocol.assays)
            wells = self._propagate_wells(dna_plate.wells, assay_info,
                                          self.shape)
            self._replace_wells(wells)
            sql = """UPDATE seqcontrol.pcr_plate SET dna_plate_id = %s
                     WHERE pcr_plate_id = %s"""
            TRN.add(sql, [dna_plate.id, self.id])
            TRN.execute()
        return len(wells)

    @staticmethod
    def _match_indices(pcr_wells, index_wells):
        """Matches PCR wells with the index wells at the same position

        Parameters
        ----------
        pcr_wells : list of dict
            The PCR well records
        index_wells : list of dict
            The index well records

        Returns
        -------
        list of dict
            The index columns of each matched PCR well, keyed by position.
            PCR wells with no index well at their position are left out

        Raises
        ------
        SeqcontrolValidationError
            If there are no index wells
        """
        if not index_wells:
            raise SeqcontrolValidationError(
                'Index plate reference has no wells')
        lookup = {w['position']: w for w in index_wells}
        matched = []
        for well in pcr_wells:
            index = lookup.get(well['position'])
            if index is None:
                continue
            matched.append({
                'position': well['position'],
                'i5_sequence': index['i5_sequence'],
                'i7_sequence': index['i7_sequence'],
                'merged_index_sequence': (
                    index['merged_sequence'] or
                    index['i5_sequence'] + index['i7_sequence'])})
        return matched

    def assign_indices(self, index_plate):
        """Copies the indices of an index plate onto the matching wells

        Parameters
        ----------
        index_plate : IndexPlate
            The index plate

        Returns
        -------
        int
            The number of wells that received indices

        Raises
        ------
        SeqcontrolValidationError
            If the index plate has no wells
        """
        with sql_connection.TRN as TRN:
            self._lock(TRN)
            matched = self._match_indices(self.wells, index_plate.wells)
            if matched:
                sql = """UPDATE seqcontrol.pcr_plate_well
                         SET i5_sequence = %s, i7_sequence = %s,
                             merged_index_sequence = %s
                         WHERE pcr_plate_id = %s AND position = %s"""
                TRN.add(sql, [[m['i5_sequence'], m['i7_sequence'],
                               m['merged_index_sequence'], self.id,
                               m['position']] for m in matched], many=True)
            sql = """UPDATE seqcontrol.pcr_plate SET index_plate_id = %s
                     WHERE pcr_plate_id = %s"""
            TRN.add(sql, [index_plate.id, self.id])
            TRN.execute()
        logging.info("Assigned indices of index plate %s to %d wells of PCR "
                     "plate %s" % (index_plate.id, len(matched), self.id))
        return len(matched)

    @staticmethod
    def _validate_well_updates(updates, positions, shape):
        """Validates a batch of PCR well updates

        Parameters
        ----------
        updates : list of dict
            Each update holds a 'position' and any of 'pcr_result',
            'pooling_action' and 'notes'
        positions : set of str
            The positions holding a well
        shape : PlateShape
            The plate grid

        Returns
        -------
        list of dict
            The updates, with canonical positions

        Raises
        ------
        SeqcontrolValidationError
            If any update is invalid. Nothing is returned in that case
        """
        allowed = {'pcr_result': PCR_RESULTS,
                   'pooling_action': POOLING_ACTIONS,
                   'notes': None}
        result = []
        seen = set()
        for idx, update in enumerate(updates, start=1):
            update = dict(update)
            try:
                position = normalize_well_position(
                    update.pop('position', None), shape)
            except SeqcontrolInvalidWellPositionError as e:
                raise SeqcontrolValidationError(
                    '%s in update %d' % (e, idx), column='position')
            if position not in positions:
                raise SeqcontrolValidationError(
                    'No well at position "%s" in update %d'
                    % (position, idx), column='position')
            if position in seen:
                raise SeqcontrolValidationError(
                    'Duplicate well position "%s" in update %d'
                    % (position, idx), column='position')
            seen.add(position)
            for key, value in update.items():
                if key not in allowed:
                    raise SeqcontrolValidationError(
                        'Attribute %s not recognized in update %d'
                        % (key, idx), column=key)
                if allowed[key] is not None and value not in allowed[key]:
                    raise SeqcontrolValidationError(
                        'Invalid %s "%s" in update %d' % (key, value, idx),
                        column=key)
            update['position'] = position
            result.append(update)
        return result

    def update_wells(self, updates):
        """Updates the PCR result, pooling action or notes of several wells

        The whole batch is validated before any well is modified.

        Parameters
        ----------
        updates : list of dict
            Each update holds a 'position' and any of 'pcr_result',
            'pooling_action' and 'notes'

        Returns
        -------
        int
            The number of wells whose values changed. Updates that repeat
            the current values of a well are not counted

        Raises
        ------
        SeqcontrolValidationError
            If any update refers to an empty position or holds an invalid
            value
        """
        with sql_connection.TRN as TRN:
            self._lock(TRN)
            current = {w['position']: w for w in self.wells}
            updates = self._validate_well_updates(updates, set(current),
                                                  self.shape)
            changed = 0
            for update in updates:
                well = current[update['position']]
                columns = sorted(k for k in update
                                 if k != 'position' and update[k] != well[k])
                if not columns:
                    continue
                changed += 1
                sql = """UPDATE seqcontrol.pcr_plate_well SET {}
                         WHERE pcr_plate_id = %s AND position = %s""".format(
                    ', '.join('%s = %%s' % c for c in columns))
                TRN.add(sql, [update[c] for c in columns] +
                        [self.id, update['position']])
            TRN.execute()
        logging.info("Updated %d wells of PCR plate %s" % (changed, self.id))
        return changed
