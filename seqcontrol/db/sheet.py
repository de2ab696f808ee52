# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging
from datetime import datetime

from seqcontrol.db.protocol import POOLED_ACTIONS
from seqcontrol.db.well import well_positions, sort_by_position, PLATE_96


class Sheet:
    """Base class for the text files handed to instruments

    Subclasses receive the plates they export as a list of dicts with the
    keys 'plate_identifier' and 'wells', where 'wells' holds the PCR well
    records of the plate, and optionally 'shape', the plate grid (default:
    96-well plate).
    """
    @staticmethod
    def get_date_format():
        return '%Y-%m-%d'

    @staticmethod
    def _format_volume(volume):
        """Formats a volume as plain decimal text: 5, 10, 2.5"""
        volume = float(volume)
        if volume.is_integer():
            return str(int(volume))
        return str(volume)

    @staticmethod
    def _pooled_wells(plates):
        """Yields (plate, well) for every pooled well, plate then position"""
        for plate in plates:
            shape = plate.get('shape', PLATE_96)
            for well in sort_by_position(plate['wells'], shape):
                if well['pooling_action'] in POOLED_ACTIONS:
                    yield plate, well

    def generate(self):
        raise NotImplementedError()


class TransferSheet(Sheet):
    """Liquid handler picklist moving every pooled well into the pool plate

    Parameters
    ----------
    plates : list of dict
        The PCR plates of the pool, in transfer order
    transfer_volume : float
        Volume moved per well, in microliters. Wells flagged POOL_DOUBLE
        get twice this volume
    source_slot : str
        Deck slot of the PCR plates
    dest_slot : str
        Deck slot of the pool plate
    dest_shape : PlateShape, optional
        The pool plate grid. Default: 96-well plate
    """
    HEADER = ('New Tip,Source Labware,Source Slot,Source Well,'
              'Source Aspiration Height,Dest Labware,Dest Slot,Dest Well,'
              'Dest Dispense Height,Volume (in ul)')

    def __init__(self, **kwargs):
        # assume keys exist, and let KeyErrors pass up to the user
        self.plates = kwargs['plates']
        self.transfer_volume = kwargs['transfer_volume']
        self.source_slot = kwargs['source_slot']
        self.dest_slot = kwargs['dest_slot']
        self.dest_shape = kwargs.get('dest_shape', PLATE_96)

    def generate(self, sep=','):
        """Generates the liquid handler CSV

        Returns
        -------
        str
            The CSV contents, one transfer per pooled well
        """
        dest_wells = well_positions(self.dest_shape)
        rows = [self.HEADER]
        transfers = list(self._pooled_wells(self.plates))
        if len(transfers) > len(dest_wells):
            # Destination wells are reused once the pool plate is exhausted
            logging.warning(
                "Transferring %d wells into a %d-well pool plate, destination "
                "wells will receive more than one transfer"
                % (len(transfers), len(dest_wells)))
        for idx, (plate, well) in enumerate(transfers):
            volume = self.transfer_volume
            if well['pooling_action'] == 'POOL_DOUBLE':
                volume = volume * 2
            rows.append(sep.join([
                'Yes', plate['plate_identifier'], str(self.source_slot),
                well['position'], '1', 'Destination', str(self.dest_slot),
                dest_wells[idx % len(dest_wells)], '1',
                self._format_volume(volume)]))
        return '\n'.join(rows)


class SampleSheet(Sheet):
    """Illumina sample sheet of a sequencing run

    Parameters
    ----------
    run_identifier : str
        The run identifier, used as experiment name and sample project
    plates : list of dict
        The PCR plates of the run
    date : datetime.date or datetime.datetime, optional
        The date written in the header. Default: today
    investigator_name : str
        The investigator written in the header
    read_length : int
        The number of cycles of each read
    """
    DATA_COLUMNS = ('Sample_ID', 'Sample_Name', 'Sample_Plate',
                    'Sample_Well', 'I7_Index_ID', 'index', 'I5_Index_ID',
                    'index2', 'Sample_Project', 'Description')

    def __init__(self, **kwargs):
        # assume keys exist, and let KeyErrors pass up to the user
        self.run_identifier = kwargs['run_identifier']
        self.plates = kwargs['plates']
        self.investigator_name = kwargs['investigator_name']
        self.read_length = kwargs['read_length']
        self.date = kwargs.get('date') or datetime.now()

    def generate(self):
        """Generates the Illumina compatible sample sheet

        Only pooled SAMPLE wells are written to the [Data] section, controls
        are left out.

        Returns
        -------
        str
            The illumina-formatted sample sheet
        """
        data = [','.join(self.DATA_COLUMNS)]
        data.extend(self._format_sample_sheet_data(
            self.plates, self.run_identifier))
        return self._format_sample_sheet('\n'.join(data))

    @staticmethod
    def _format_sample_sheet_data(plates, run_identifier, sep=','):
        """Formats the [Data] rows of the sample sheet

        Parameters
        ----------
        plates : list of dict
            The PCR plates of the run
        run_identifier : str
            The run identifier, written as Sample_Project
        sep : str, optional
            The sample sheet separator

        Returns
        -------
        list of str
            One row per pooled SAMPLE well
        """
        rows = []
        for plate, well in Sheet._pooled_wells(plates):
            if well['well_type'] != 'SAMPLE':
                continue
            label = well['sample_label']
            sample_id = label or '%s_%s' % (plate['plate_identifier'],
                                            well['position'])
            rows.append(sep.join([
                sample_id, label or '', plate['plate_identifier'],
                well['position'], '', well['i7_sequence'] or '', '',
                well['i5_sequence'] or '', run_identifier,
                well['assay_type'] or '']))
        return rows

    def _format_sample_sheet(self, data, sep=','):
        """Formats the Illumina sample sheet sections around the data

        Parameters
        ----------
        data : str
            The [Data] component of the sample sheet, header line included

        Returns
        -------
        sample_sheet : str
            the sample sheet string
        """
        sample_sheet_dict = {
            'IEMFileVersion': '5',
            'Investigator Name': self.investigator_name,
            'Experiment Name': self.run_identifier,
            'Date': self.date.strftime(Sheet.get_date_format()),
            'Workflow': 'GenerateFASTQ',
            'Application': 'FASTQ Only',
            'Chemistry': 'Amplicon',
            'read1': self.read_length,
            'read2': self.read_length,
            'ReverseComplement': '0',
            'data': data}

        template = (
            '[Header]\nIEMFileVersion{sep}{IEMFileVersion}\n'
            'Investigator Name{sep}{Investigator Name}\n'
            'Experiment Name{sep}{Experiment Name}\nDate{sep}{Date}\n'
            'Workflow{sep}{Workflow}\nApplication{sep}{Application}\n'
            'Chemistry{sep}{Chemistry}\n\n[Reads]\n{read1}\n{read2}\n\n'
            '[Settings]\nReverseComplement{sep}{ReverseComplement}\n\n'
            '[Data]\n{data}'
        )
        return template.format(**sample_sheet_dict, **{'sep': sep})
