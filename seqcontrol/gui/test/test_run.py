# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from unittest import main

from mock import patch, Mock
from tornado.escape import json_decode

from seqcontrol.gui.testing import TestHandlerBase
from seqcontrol.db.exceptions import (
    SeqcontrolUnknownIdError, SeqcontrolTransitionError)
from seqcontrol.db.reagent import ReagentRequirement


class TestRunHandlers(TestHandlerBase):
    def setUp(self):
        super(TestRunHandlers, self).setUp()
        self.run = Mock(id=1, run_identifier='RUN_1', status='POOLED')
        run_patcher = patch('seqcontrol.gui.handlers.run.SequencingRun',
                            return_value=self.run)
        self.run_class = run_patcher.start()
        self.addCleanup(run_patcher.stop)

    def test_get_run_list_handler(self):
        self.run_class.iter.return_value = iter([self.run])
        response = self.get('/run_list')
        self.assertEqual(response.code, 200)
        self.assertEqual(json_decode(response.body),
                         {'data': [[1, 'RUN_1', 'POOLED']]})

    def test_get_run_handler(self):
        self.run.dna_plates = [Mock(id=1, plate_identifier='DNA_1')]
        self.run.pcr_plates = [Mock(id=2, plate_identifier='PCR_1',
                                    status='PLATE_DONE')]
        pool = Mock(id=3)
        pool.pool_name = 'Pool 1'
        self.run.pools = [pool]
        response = self.get('/run/1/')
        self.assertEqual(response.code, 200)
        exp = {'run_id': 1, 'run_identifier': 'RUN_1', 'status': 'POOLED',
               'available_transitions': ['SUBMITTED'],
               'dna_plates': [[1, 'DNA_1']],
               'pcr_plates': [[2, 'PCR_1', 'PLATE_DONE']],
               'pools': [[3, 'Pool 1']]}
        self.assertEqual(json_decode(response.body), exp)

    def test_get_run_handler_unknown(self):
        self.run_class.side_effect = SeqcontrolUnknownIdError(
            'Sequencing run', 100)
        response = self.get('/run/100/')
        self.assertEqual(response.code, 404)
        self.assertEqual(json_decode(response.body)['message'],
                         "Sequencing run 100 doesn't exist")

    def test_post_run_status_handler(self):
        response = self.post('/run/1/status', {'status': 'SUBMITTED'})
        self.assertEqual(response.code, 200)
        self.assertEqual(json_decode(response.body),
                         {'run_id': 1, 'status': 'SUBMITTED',
                          'available_transitions': ['SEQUENCED']})
        self.run.update_status.assert_called_once_with('SUBMITTED')

    def test_post_run_status_handler_conflict(self):
        self.run.update_status.side_effect = SeqcontrolTransitionError(
            'sequencing run', 'POOLED', 'SETUP')
        response = self.post('/run/1/status', {'status': 'SETUP'})
        self.assertEqual(response.code, 409)
        self.assertEqual(
            json_decode(response.body)['message'],
            'Cannot transition sequencing run from POOLED to SETUP')

    def test_get_run_sample_sheet_handler(self):
        self.run.generate_sample_sheet.return_value = '[Header]\n[Data]'
        response = self.get('/run/1/sample_sheet')
        self.assertEqual(response.code, 200)
        self.assertEqual(response.body.decode('utf-8'), '[Header]\n[Data]')
        self.assertRegex(response.headers['Content-Disposition'],
                         r'attachment; filename=\d{4}-\d{2}-\d{2}_RUN_1_'
                         r'samplesheet\.csv')

    def test_get_run_reagents_handler(self):
        self.run.reagent_requirements.return_value = {
            'sample_count': 10, 'reaction_count': 12,
            'extraction': [ReagentRequirement('Buffer', 0.056, 'mL'),
                           ReagentRequirement('Grit', 600, 'mg')],
            'pcr': [ReagentRequirement('PCR Master Mix', 0.325, 'mL')]}
        response = self.get('/run/1/reagents')
        self.assertEqual(response.code, 200)
        exp = {'run_id': 1, 'sample_count': 10, 'reaction_count': 12,
               'extraction': [{'reagent_name': 'Buffer', 'quantity': 0.056,
                               'unit': 'mL'},
                              {'reagent_name': 'Grit', 'quantity': 600,
                               'unit': 'mg'}],
               'pcr': [{'reagent_name': 'PCR Master Mix', 'quantity': 0.325,
                        'unit': 'mL'}]}
        self.assertEqual(json_decode(response.body), exp)

    def test_not_found_handler(self):
        response = self.get('/does/not/exist')
        self.assertEqual(response.code, 404)


if __name__ == '__main__':
    main()
