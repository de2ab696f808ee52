# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging

from seqcontrol.db import base
from seqcontrol.db import sql_connection
from seqcontrol.db import plate as plate_module
from seqcontrol.db import pool as pool_module
from seqcontrol.db.exceptions import SeqcontrolDuplicateError
from seqcontrol.db.protocol import DEFAULT_PROTOCOL
from seqcontrol.db.reagent import (
    calculate_reagent_requirements, calculate_pcr_reagent_requirements)
from seqcontrol.db.sheet import SampleSheet
from seqcontrol.db.status import validate_run_transition


class SequencingRun(base.SeqcontrolObject):
    """A sequencing batch and the plates and pools that make it up

    Attributes
    ----------
    run_identifier
    status
    date_started
    notes
    created_on
    dna_plates
    pcr_plates
    pools
    """
    _table = 'seqcontrol.sequencing_run'
    _id_column = 'sequencing_run_id'
    _name = 'Sequencing run'

    @classmethod
    def iter(cls):
        """Iterates over all the sequencing runs, newest first"""
        with sql_connection.TRN as TRN:
            sql = """SELECT sequencing_run_id
                     FROM seqcontrol.sequencing_run
                     ORDER BY created_on DESC, sequencing_run_id DESC"""
            TRN.add(sql)
            for run_id in TRN.execute_fetchflatten():
                yield cls(run_id)

    @classmethod
    def create(cls, run_identifier, date_started=None, notes=None):
        """Creates a new sequencing run

        Parameters
        ----------
        run_identifier : str
            The run identifier
        date_started : datetime.date, optional
            The date the run started
        notes : str, optional
            Run notes

        Returns
        -------
        SequencingRun
            The newly created run, in SETUP status

        Raises
        ------
        SeqcontrolDuplicateError
            If a run with the same identifier already exists
        """
        with sql_connection.TRN as TRN:
            if cls._attr_exists('run_identifier', run_identifier):
                raise SeqcontrolDuplicateError(
                    cls._name, [('run_identifier', run_identifier)])
            sql = """INSERT INTO seqcontrol.sequencing_run
                        (run_identifier, date_started, notes)
                     VALUES (%s, %s, %s)
                     RETURNING sequencing_run_id"""
            TRN.add(sql, [run_identifier, date_started, notes])
            return cls(TRN.execute_fetchlast())

    @property
    def run_identifier(self):
        return self._get_attr('run_identifier')

    @property
    def status(self):
        return self._get_attr('status')

    @property
    def date_started(self):
        return self._get_attr('date_started')

    @date_started.setter
    def date_started(self, value):
        self._set_attr('date_started', value)

    @property
    def notes(self):
        return self._get_attr('notes')

    @notes.setter
    def notes(self, value):
        self._set_attr('notes', value)

    @property
    def created_on(self):
        return self._get_attr('created_on')

    def update_status(self, status):
        """Moves the run to the next status of the run workflow

        Parameters
        ----------
        status : str
            The new status

        Raises
        ------
        SeqcontrolTransitionError
            If the run can't move from its current status to status
        """
        with sql_connection.TRN:
            current = self.status
            validate_run_transition(current, status)
            self._set_attr('status', status)
        logging.info("Sequencing run %s moved from %s to %s"
                     % (self.id, current, status))

    def _children(self, table, id_column):
        with sql_connection.TRN as TRN:
            sql = """SELECT {0} FROM {1}
                     WHERE sequencing_run_id = %s
                     ORDER BY {0}""".format(id_column, table)
            TRN.add(sql, [self.id])
            return TRN.execute_fetchflatten()

    @property
    def dna_plates(self):
        """The DNA plates of the run

        Returns
        -------
        list of seqcontrol.db.plate.DNAPlate
        """
        return [plate_module.DNAPlate(i) for i in self._children(
            'seqcontrol.dna_plate', 'dna_plate_id')]

    @property
    def pcr_plates(self):
        """The PCR plates of the run

        Returns
        -------
        list of seqcontrol.db.plate.PCRPlate
        """
        return [plate_module.PCRPlate(i) for i in self._children(
            'seqcontrol.pcr_plate', 'pcr_plate_id')]

    @property
    def pools(self):
        """The pools of the run

        Returns
        -------
        list of seqcontrol.db.pool.Pool
        """
        return [pool_module.Pool(i) for i in self._children(
            'seqcontrol.pool', 'pool_id')]

    def generate_sample_sheet(self, date=None, protocol=DEFAULT_PROTOCOL):
        """Generates the Illumina sample sheet of the run

        Parameters
        ----------
        date : datetime.date, optional
            The date written in the header. Default: today
        protocol : seqcontrol.db.protocol.Protocol, optional
            The laboratory constants

        Returns
        -------
        str
            The sample sheet, with one [Data] row per pooled SAMPLE well of
            the run's PCR plates
        """
        with sql_connection.TRN:
            plates = [{'plate_identifier': p.plate_identifier,
                       'wells': p.wells,
                       'shape': p.shape} for p in self.pcr_plates]
            sheet = SampleSheet(run_identifier=self.run_identifier,
                                plates=plates, date=date,
                                investigator_name=protocol.investigator_name,
                                read_length=protocol.read_length)
        logging.info("Generating the sample sheet of sequencing run %s"
                     % self.id)
        return sheet.generate()

    def reagent_requirements(self, protocol=DEFAULT_PROTOCOL):
        """Computes the reagents needed to process the run

        Extraction reagents are computed from the SAMPLE wells of the DNA
        plates, PCR reagents from the non-EMPTY wells of the PCR plates.

        Parameters
        ----------
        protocol : seqcontrol.db.protocol.Protocol, optional
            The laboratory constants

        Returns
        -------
        dict
            With the keys 'sample_count', 'reaction_count', 'extraction' and
            'pcr', the last two being lists of ReagentRequirement
        """
        with sql_connection.TRN as TRN:
            sql = """SELECT COUNT(1)
                     FROM seqcontrol.dna_plate_well
                        JOIN seqcontrol.dna_plate USING (dna_plate_id)
                     WHERE sequencing_run_id = %s AND well_type = 'SAMPLE'"""
            TRN.add(sql, [self.id])
            sample_count = TRN.execute_fetchlast()
            sql = """SELECT COUNT(1)
                     FROM seqcontrol.pcr_plate_well
                        JOIN seqcontrol.pcr_plate USING (pcr_plate_id)
                     WHERE sequencing_run_id = %s AND well_type != 'EMPTY'"""
            TRN.add(sql, [self.id])
            reaction_count = TRN.execute_fetchlast()

        return {
            'sample_count': sample_count,
            'reaction_count': reaction_count,
            'extraction': calculate_reagent_requirements(
                sample_count, protocol.reagent_formulas),
            'pcr': calculate_pcr_reagent_requirements(
                reaction_count, protocol.pcr_overage_factor,
                protocol.master_mix_ul, protocol.primer_ul)}
