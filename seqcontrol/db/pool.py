# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging

import pandas as pd
from psycopg2.extras import Json

from seqcontrol.db import base
from seqcontrol.db import sql_connection
from seqcontrol.db import plate as plate_module
from seqcontrol.db import run as run_module
from seqcontrol.db.exceptions import (
    SeqcontrolDuplicateError, SeqcontrolUnknownIdError)
from seqcontrol.db.protocol import (
    DEFAULT_PROTOCOL, POOLED_ACTIONS, REQUIRED_CONTROLS)
from seqcontrol.db.sheet import TransferSheet


class Pool(base.SeqcontrolObject):
    """A group of PCR plates pooled together for sequencing

    Attributes
    ----------
    pool_name
    assay_ratios
    notes
    run
    plates
    """
    _table = 'seqcontrol.pool'
    _id_column = 'pool_id'
    _name = 'Pool'

    @classmethod
    def create(cls, run, pool_name, assay_ratios=None, notes=None):
        """Creates a new pool in a sequencing run

        Parameters
        ----------
        run : seqcontrol.db.run.SequencingRun
            The run the pool belongs to
        pool_name : str
            The pool name, unique within the run
        assay_ratios : dict of {str: float}, optional
            Relative amount of each assay in the pool
        notes : str, optional
            Pool notes

        Returns
        -------
        Pool
            The newly created pool

        Raises
        ------
        SeqcontrolDuplicateError
            If the run already has a pool with the same name
        """
        with sql_connection.TRN as TRN:
            sql = """SELECT EXISTS(
                        SELECT 1 FROM seqcontrol.pool
                        WHERE sequencing_run_id = %s AND pool_name = %s)"""
            TRN.add(sql, [run.id, pool_name])
            if TRN.execute_fetchlast():
                raise SeqcontrolDuplicateError(
                    cls._name, [('pool_name', pool_name),
                                ('sequencing_run_id', run.id)])
            sql = """INSERT INTO seqcontrol.pool
                        (sequencing_run_id, pool_name, assay_ratios, notes)
                     VALUES (%s, %s, %s, %s)
                     RETURNING pool_id"""
            TRN.add(sql, [run.id, pool_name, Json(assay_ratios or {}),
                          notes])
            return cls(TRN.execute_fetchlast())

    @property
    def pool_name(self):
        return self._get_attr('pool_name')

    @property
    def assay_ratios(self):
        return self._get_attr('assay_ratios')

    @property
    def notes(self):
        return self._get_attr('notes')

    @notes.setter
    def notes(self, value):
        self._set_attr('notes', value)

    @property
    def run(self):
        """The sequencing run the pool belongs to"""
        return run_module.SequencingRun(self._get_attr('sequencing_run_id'))

    @property
    def plates(self):
        """The PCR plates assigned to the pool

        Returns
        -------
        list of seqcontrol.db.plate.PCRPlate
        """
        with sql_connection.TRN as TRN:
            sql = """SELECT pcr_plate_id
                     FROM seqcontrol.pool_plate_assignment
                     WHERE pool_id = %s
                     ORDER BY pcr_plate_id"""
            TRN.add(sql, [self.id])
            return [plate_module.PCRPlate(i)
                    for i in TRN.execute_fetchflatten()]

    def assign_plate(self, pcr_plate):
        """Adds a PCR plate of the same run to the pool

        Parameters
        ----------
        pcr_plate : seqcontrol.db.plate.PCRPlate
            The plate to add

        Raises
        ------
        SeqcontrolUnknownIdError
            If the plate doesn't belong to the pool's run
        SeqcontrolDuplicateError
            If the plate is already in the pool
        """
        with sql_connection.TRN as TRN:
            if pcr_plate.run_id != self._get_attr('sequencing_run_id'):
                raise SeqcontrolUnknownIdError(
                    'PCR plate in this run', pcr_plate.id)
            if pcr_plate in self.plates:
                raise SeqcontrolDuplicateError(
                    'Pool plate assignment', [('pool_id', self.id),
                                              ('pcr_plate_id', pcr_plate.id)])
            sql = """INSERT INTO seqcontrol.pool_plate_assignment
                        (pool_id, pcr_plate_id)
                     VALUES (%s, %s)"""
            TRN.add(sql, [self.id, pcr_plate.id])
            TRN.execute()
        logging.info("PCR plate %s assigned to pool %s"
                     % (pcr_plate.id, self.id))

    def remove_plate(self, pcr_plate):
        """Takes a PCR plate out of the pool

        Raises
        ------
        SeqcontrolUnknownIdError
            If the plate is not in the pool
        """
        with sql_connection.TRN as TRN:
            sql = """DELETE FROM seqcontrol.pool_plate_assignment
                     WHERE pool_id = %s AND pcr_plate_id = %s
                     RETURNING pcr_plate_id"""
            TRN.add(sql, [self.id, pcr_plate.id])
            if not TRN.execute_fetchindex():
                raise SeqcontrolUnknownIdError(
                    'Pool plate assignment', '%s:%s' % (self.id,
                                                        pcr_plate.id))
        logging.info("PCR plate %s removed from pool %s"
                     % (pcr_plate.id, self.id))

    def _plate_records(self):
        """The assigned plates as plain records, in plate order"""
        with sql_connection.TRN:
            return [{'pcr_plate_id': p.id,
                     'plate_identifier': p.plate_identifier,
                     'wells': p.wells,
                     'shape': p.shape} for p in self.plates]

    @staticmethod
    def _find_index_collisions(plates):
        """Finds the merged index sequences shared by several pooled wells

        Parameters
        ----------
        plates : list of dict
            The pooled plates, with the keys 'pcr_plate_id',
            'plate_identifier' and 'wells'

        Returns
        -------
        list of dict
            One record per shared sequence, with the keys 'merged_sequence'
            and 'wells', in order of first appearance. Each well is described
            by its 'pcr_plate_id', 'plate_identifier', 'position' and
            'sample_label'
        """
        columns = ['pcr_plate_id', 'plate_identifier', 'position',
                   'sample_label', 'merged_index_sequence']
        rows = [[p['pcr_plate_id'], p['plate_identifier'], w['position'],
                 w['sample_label'], w['merged_index_sequence']]
                for p in plates for w in p['wells']
                if w['pooling_action'] in POOLED_ACTIONS and
                w['merged_index_sequence']]
        if not rows:
            return []

        df = pd.DataFrame(rows, columns=columns)
        shared = df[df.duplicated('merged_index_sequence', keep=False)]
        collisions = []
        for sequence in shared['merged_index_sequence'].unique():
            idx = shared.index[shared['merged_index_sequence'] == sequence]
            collisions.append({
                'merged_sequence': sequence,
                'wells': [dict(zip(columns[:-1], rows[i][:-1]))
                          for i in idx]})
        return collisions

    def index_collisions(self):
        """Finds the pooled wells that would be indistinguishable

        Only wells that go into the physical pool and have a merged index
        sequence are considered. Calling this method doesn't modify anything.

        Returns
        -------
        list of dict
            The collisions, empty if every pooled sequence is unique
        """
        return self._find_index_collisions(self._plate_records())

    @staticmethod
    def _find_missing_controls(plates, required=REQUIRED_CONTROLS):
        """Finds the plates lacking a required control well type

        Parameters
        ----------
        plates : list of dict
            The pooled plates, with the keys 'pcr_plate_id',
            'plate_identifier' and 'wells'
        required : iterable of str, optional
            The control well types every plate must hold

        Returns
        -------
        list of dict
            One warning per non-compliant plate, with the keys
            'pcr_plate_id', 'plate_identifier', 'missing_controls' and
            'message'
        """
        warnings = []
        for plate in plates:
            well_types = {w['well_type'] for w in plate['wells']}
            missing = [c for c in required if c not in well_types]
            if missing:
                warnings.append({
                    'pcr_plate_id': plate['pcr_plate_id'],
                    'plate_identifier': plate['plate_identifier'],
                    'missing_controls': missing,
                    'message': 'PCR plate "%s" is missing: %s'
                               % (plate['plate_identifier'],
                                  ', '.join(missing))})
        return warnings

    def control_warnings(self):
        """Checks that every plate of the pool holds the required controls

        Returns
        -------
        list of dict
            The warnings, empty if every plate is compliant
        """
        return self._find_missing_controls(self._plate_records())

    def generate_transfer_csv(self, protocol=DEFAULT_PROTOCOL):
        """Generates the liquid handler CSV that builds the pool

        Parameters
        ----------
        protocol : seqcontrol.db.protocol.Protocol, optional
            The laboratory constants holding the transfer volume and the deck
            slots

        Returns
        -------
        str
            The liquid handler CSV
        """
        sheet = TransferSheet(plates=self._plate_records(),
                              transfer_volume=protocol.transfer_volume_ul,
                              source_slot=protocol.source_slot,
                              dest_slot=protocol.dest_slot)
        logging.info("Generating the transfer file of pool %s" % self.id)
        return sheet.generate()
