# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from datetime import date
from types import GeneratorType
from unittest import main

from seqcontrol.db.testing import SeqcontrolTestCase
from seqcontrol.db.exceptions import (
    SeqcontrolDuplicateError, SeqcontrolTransitionError,
    SeqcontrolUnknownIdError)
from seqcontrol.db.plate import DNAPlate, IndexPlate, PCRPlate
from seqcontrol.db.pool import Pool
from seqcontrol.db.protocol import DEFAULT_PROTOCOL, ReagentFormula
from seqcontrol.db.run import SequencingRun
from seqcontrol.db.status import RUN_STATUSES


class TestSequencingRun(SeqcontrolTestCase):
    def test_create(self):
        run = SequencingRun.create('RUN_CREATE', date_started=date(2021, 5, 1),
                                   notes='MiSeq')
        self.assertEqual(run.run_identifier, 'RUN_CREATE')
        self.assertEqual(run.status, 'SETUP')
        self.assertEqual(run.date_started, date(2021, 5, 1))
        self.assertEqual(run.notes, 'MiSeq')
        self.assertIsNotNone(run.created_on)
        self.assertEqual(run.dna_plates, [])
        self.assertEqual(run.pcr_plates, [])
        self.assertEqual(run.pools, [])

        run.notes = 'NovaSeq'
        self.assertEqual(run.notes, 'NovaSeq')
        run.date_started = date(2021, 5, 2)
        self.assertEqual(run.date_started, date(2021, 5, 2))

        with self.assertRaises(SeqcontrolDuplicateError):
            SequencingRun.create('RUN_CREATE')

    def test_unknown_id(self):
        with self.assertRaises(SeqcontrolUnknownIdError):
            SequencingRun(1000000)

    def test_iter(self):
        run = SequencingRun.create('RUN_ITER')
        obs = SequencingRun.iter()
        self.assertIsInstance(obs, GeneratorType)
        self.assertIn(run, list(obs))

    def test_update_status(self):
        run = SequencingRun.create('RUN_STATUS')
        for status in RUN_STATUSES[1:]:
            run.update_status(status)
            self.assertEqual(run.status, status)
        with self.assertRaises(SeqcontrolTransitionError):
            run.update_status('SETUP')
        self.assertEqual(run.status, 'SEQUENCED')

    def test_update_status_skip(self):
        run = SequencingRun.create('RUN_STATUS_SKIP')
        with self.assertRaisesRegex(
                SeqcontrolTransitionError,
                'Cannot transition sequencing run from SETUP to POOLED'):
            run.update_status('POOLED')
        self.assertEqual(run.status, 'SETUP')

    def test_children(self):
        run = SequencingRun.create('RUN_CHILDREN')
        dna_plate = DNAPlate.create(run, 'RUN_CHILDREN_DNA')
        pcr_1 = PCRPlate.create(run, 'RUN_CHILDREN_PCR_1', 'ASSAY_16S')
        pcr_2 = PCRPlate.create(run, 'RUN_CHILDREN_PCR_2', 'ASSAY_ITS')
        pool = Pool.create(run, 'RUN_CHILDREN_POOL')
        self.assertEqual(run.dna_plates, [dna_plate])
        self.assertEqual(run.pcr_plates, [pcr_1, pcr_2])
        self.assertEqual(run.pools, [pool])

    def test_generate_sample_sheet(self):
        run = SequencingRun.create('RUN_SHEET')
        dna_plate = DNAPlate.create(run, 'RUN_SHEET_DNA')
        dna_plate.import_wells("position,sampleId,wellType\n"
                               "A1,S1,SAMPLE\n"
                               "A2,S2,SAMPLE\n"
                               "H12,,NTC\n")
        index_plate = IndexPlate.create('RUN_SHEET_IDX')
        index_plate.import_wells(
            "position,i5Name,i5Sequence,i7Name,i7Sequence\n"
            "A1,i5-1,AAAA,i7-1,TTTT\n"
            "A2,i5-2,CCCC,i7-2,GGGG\n"
            "H12,i5-3,ACGT,i7-3,TGCA\n")
        plate = PCRPlate.create(run, 'RUN_SHEET_PCR', 'ASSAY_16S')
        plate.populate_from_dna_plate(dna_plate)
        plate.assign_indices(index_plate)
        plate.update_wells([{'position': 'A2',
                             'pooling_action': 'DO_NOT_POOL'}])

        protocol = DEFAULT_PROTOCOL._replace(investigator_name='Jane Doe',
                                             read_length=151)
        obs = run.generate_sample_sheet(date=date(2021, 6, 7),
                                        protocol=protocol)
        lines = obs.split('\n')
        self.assertIn('Investigator Name,Jane Doe', lines)
        self.assertIn('Experiment Name,RUN_SHEET', lines)
        self.assertIn('Date,2021-06-07', lines)
        data = lines[lines.index('[Data]') + 2:]
        self.assertEqual(
            data,
            ['S1_16s,S1_16s,RUN_SHEET_PCR,A01,,TTTT,,AAAA,RUN_SHEET,16S'])

    def test_reagent_requirements(self):
        run = SequencingRun.create('RUN_REAGENTS')
        dna_plate = DNAPlate.create(run, 'RUN_REAGENTS_DNA')
        dna_plate.import_wells("position,sampleId,wellType\n"
                               "A1,S1,SAMPLE\n"
                               "A2,S2,SAMPLE\n"
                               "G12,,EMPTY\n"
                               "H12,,NTC\n")
        plate = PCRPlate.create(run, 'RUN_REAGENTS_PCR', 'ASSAY_16S')
        plate.populate_from_dna_plate(dna_plate)

        protocol = DEFAULT_PROTOCOL._replace(
            reagent_formulas=(ReagentFormula('Buffer', 100, 'µL', 1.5), ),
            pcr_overage_factor=1.5)
        obs = run.reagent_requirements(protocol=protocol)
        self.assertEqual(obs['sample_count'], 2)
        self.assertEqual(obs['reaction_count'], 3)
        self.assertEqual(len(obs['extraction']), 1)
        self.assertAlmostEqual(obs['extraction'][0].quantity, 0.3)
        # ceil(3 * 1.5) = 5 reactions
        self.assertAlmostEqual(obs['pcr'][0].quantity, 0.125)


if __name__ == '__main__':
    main()
