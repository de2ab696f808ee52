# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from unittest import main

from mock import patch, Mock
from tornado.escape import json_decode, json_encode
from tornado.web import HTTPError

from seqcontrol.gui.testing import TestHandlerBase
from seqcontrol.gui.handlers.plate import (
    _get_plate, plate_layout_get_request, pcr_plate_wells_patch_request,
    index_well_patch_request)
from seqcontrol.db.exceptions import (
    SeqcontrolUnknownIdError, SeqcontrolValidationError,
    SeqcontrolTransitionError, SeqcontrolInvalidWellPositionError)


def _mock_class(name, **attributes):
    plate = Mock(**attributes)
    plate_class = Mock(return_value=plate)
    plate_class._name = name
    return plate_class, plate


class TestUtils(TestHandlerBase):
    def test_get_plate(self):
        plate_class, plate = _mock_class('DNA plate', id=3)
        with patch('seqcontrol.gui.handlers.plate.DNAPlate', plate_class):
            self.assertIs(_get_plate('dna', '3'), plate)
        plate_class.assert_called_once_with(3)

    def test_get_plate_error(self):
        plate_class, plate = _mock_class('PCR plate')
        plate_class.side_effect = SeqcontrolUnknownIdError('PCR plate', 100)
        with patch('seqcontrol.gui.handlers.plate.PCRPlate', plate_class):
            with self.assertRaisesRegex(HTTPError,
                                        "PCR plate 100 doesn't exist"):
                _get_plate('pcr', '100')

        with self.assertRaisesRegex(HTTPError, 'not recognized'):
            _get_plate('tube', '1')

    def test_get_plate_invalid_id(self):
        with self.assertRaises(SeqcontrolValidationError) as ctx:
            _get_plate('dna', 'abc')
        self.assertEqual(str(ctx.exception), 'Invalid plate id "abc"')

    def test_plate_layout_get_request(self):
        layout = [[{'position': 'A01', 'sample_id': 'S1'}, None]]
        plate_class, plate = _mock_class('Index plate', id=5, num_rows=1,
                                         num_columns=2, layout=layout)
        with patch('seqcontrol.gui.handlers.plate.IndexPlate', plate_class):
            obs = plate_layout_get_request('index', '5')
        exp = {'plate_id': 5, 'plate_type': 'index', 'num_rows': 1,
               'num_columns': 2, 'layout': layout}
        self.assertEqual(obs, exp)

    def test_pcr_plate_wells_patch_request_error(self):
        for updates in [None, {'position': 'A1'}, ['A1']]:
            with self.assertRaisesRegex(HTTPError, 'list of objects'):
                pcr_plate_wells_patch_request('1', updates)

    def test_index_well_patch_request_error(self):
        with self.assertRaisesRegex(HTTPError, 'must be an object'):
            index_well_patch_request('1', 'A1', ['i5_name'])


class TestPlateHandlers(TestHandlerBase):
    def test_get_plate_layout_handler(self):
        layout = [[{'position': 'A01', 'sample_id': 'S1'}, None],
                  [None, {'position': 'B02', 'sample_id': None}]]
        plate_class, plate = _mock_class('DNA plate', id=3, num_rows=2,
                                         num_columns=2, layout=layout)
        with patch('seqcontrol.gui.handlers.plate.DNAPlate', plate_class):
            response = self.get('/plate/dna/3/layout')
        self.assertEqual(response.code, 200)
        obs = json_decode(response.body)
        self.assertEqual(obs['plate_id'], 3)
        self.assertEqual(obs['layout'], layout)

    def test_get_plate_layout_handler_unknown(self):
        plate_class, plate = _mock_class('DNA plate')
        plate_class.side_effect = SeqcontrolUnknownIdError('DNA plate', 100)
        with patch('seqcontrol.gui.handlers.plate.DNAPlate', plate_class):
            response = self.get('/plate/dna/100/layout')
        self.assertEqual(response.code, 404)
        obs = json_decode(response.body)
        self.assertEqual(obs['message'], "DNA plate 100 doesn't exist")

        response = self.get('/plate/tube/1/layout')
        self.assertEqual(response.code, 404)
        response = self.get('/plate/dna/abc/layout')
        self.assertEqual(response.code, 404)

    def test_post_plate_wells_handler(self):
        plate_class, plate = _mock_class('DNA plate', id=3)
        plate.import_wells.return_value = 2
        csv_text = "position,sampleId\nA1,S1\nA2,S2\n"
        with patch('seqcontrol.gui.handlers.plate.DNAPlate', plate_class):
            response = self.post('/plate/dna/3/wells', {'csv': csv_text})
        self.assertEqual(response.code, 200)
        self.assertEqual(json_decode(response.body),
                         {'plate_id': 3, 'well_count': 2})
        plate.import_wells.assert_called_once_with(csv_text)

    def test_post_plate_wells_handler_invalid(self):
        plate_class, plate = _mock_class('DNA plate', id=3)
        plate.import_wells.side_effect = SeqcontrolValidationError(
            'Duplicate well position "A01" on line 3', line=3,
            column='position')
        with patch('seqcontrol.gui.handlers.plate.DNAPlate', plate_class):
            response = self.post('/plate/dna/3/wells',
                                 {'csv': "position\nA1\nA01\n"})
        self.assertEqual(response.code, 400)
        obs = json_decode(response.body)
        self.assertEqual(obs, {'status': 400,
                               'message': 'Duplicate well position "A01" '
                                          'on line 3',
                               'line': 3, 'column': 'position'})

    def test_post_plate_wells_handler_missing_argument(self):
        response = self.post('/plate/dna/3/wells', {'other': 'value'})
        self.assertEqual(response.code, 400)

    def test_patch_plate_wells_handler(self):
        plate_class, plate = _mock_class('PCR plate', id=4)
        plate.update_wells.return_value = 1
        updates = [{'position': 'A1', 'pcr_result': 'PASS'}]
        with patch('seqcontrol.gui.handlers.plate.PCRPlate', plate_class):
            response = self.patch('/plate/pcr/4/wells',
                                  {'updates': json_encode(updates)})
        self.assertEqual(response.code, 200)
        self.assertEqual(json_decode(response.body),
                         {'plate_id': 4, 'well_count': 1})
        plate.update_wells.assert_called_once_with(updates)

    def test_patch_plate_wells_handler_error(self):
        response = self.patch('/plate/dna/4/wells',
                              {'updates': json_encode([])})
        self.assertEqual(response.code, 405)

        response = self.patch('/plate/pcr/4/wells', {'updates': '[{'})
        self.assertEqual(response.code, 400)

    def test_post_pcr_plate_populate_handler(self):
        pcr_class, pcr_plate = _mock_class('PCR plate', id=4)
        dna_class, dna_plate = _mock_class('DNA plate', id=3)
        pcr_plate.populate_from_dna_plate.return_value = 96
        with patch('seqcontrol.gui.handlers.plate.PCRPlate', pcr_class), \
                patch('seqcontrol.gui.handlers.plate.DNAPlate', dna_class):
            response = self.post('/plate/pcr/4/populate',
                                 {'dna_plate_id': 3,
                                  'assay_type': 'ASSAY_ITS'})
        self.assertEqual(response.code, 200)
        self.assertEqual(json_decode(response.body),
                         {'plate_id': 4, 'well_count': 96})
        args, kwargs = pcr_plate.populate_from_dna_plate.call_args
        self.assertEqual(args, (dna_plate, ))
        self.assertEqual(kwargs['assay_type'], 'ASSAY_ITS')

    def test_post_pcr_plate_populate_handler_empty_source(self):
        pcr_class, pcr_plate = _mock_class('PCR plate', id=4)
        dna_class, dna_plate = _mock_class('DNA plate', id=3)
        pcr_plate.populate_from_dna_plate.side_effect = \
            SeqcontrolValidationError('Source DNA plate has no wells')
        with patch('seqcontrol.gui.handlers.plate.PCRPlate', pcr_class), \
                patch('seqcontrol.gui.handlers.plate.DNAPlate', dna_class):
            response = self.post('/plate/pcr/4/populate',
                                 {'dna_plate_id': 3})
        self.assertEqual(response.code, 400)
        obs = json_decode(response.body)
        self.assertEqual(obs['message'], 'Source DNA plate has no wells')
        self.assertIsNone(obs['line'])

    def test_post_pcr_plate_populate_handler_invalid_id(self):
        pcr_class, pcr_plate = _mock_class('PCR plate', id=4)
        with patch('seqcontrol.gui.handlers.plate.PCRPlate', pcr_class):
            response = self.post('/plate/pcr/4/populate',
                                 {'dna_plate_id': 'abc'})
        self.assertEqual(response.code, 400)
        obs = json_decode(response.body)
        self.assertEqual(obs['message'], 'Invalid plate id "abc"')
        self.assertFalse(pcr_plate.populate_from_dna_plate.called)

    def test_post_pcr_plate_indices_handler(self):
        pcr_class, pcr_plate = _mock_class('PCR plate', id=4)
        index_class, index_plate = _mock_class('Index plate', id=2)
        pcr_plate.assign_indices.return_value = 90
        with patch('seqcontrol.gui.handlers.plate.PCRPlate', pcr_class), \
                patch('seqcontrol.gui.handlers.plate.IndexPlate',
                      index_class):
            response = self.post('/plate/pcr/4/indices',
                                 {'index_plate_id': 2})
        self.assertEqual(response.code, 200)
        self.assertEqual(json_decode(response.body),
                         {'plate_id': 4, 'well_count': 90})
        pcr_plate.assign_indices.assert_called_once_with(index_plate)

    def test_post_pcr_plate_status_handler(self):
        pcr_class, pcr_plate = _mock_class('PCR plate', id=4)
        with patch('seqcontrol.gui.handlers.plate.PCRPlate', pcr_class):
            response = self.post('/plate/pcr/4/status',
                                 {'status': 'GEL_CHECKED'})
        self.assertEqual(response.code, 200)
        self.assertEqual(json_decode(response.body),
                         {'plate_id': 4, 'status': 'GEL_CHECKED',
                          'available_transitions': ['POOLING_ASSIGNED']})
        pcr_plate.update_status.assert_called_once_with('GEL_CHECKED')

    def test_post_pcr_plate_status_handler_conflict(self):
        pcr_class, pcr_plate = _mock_class('PCR plate', id=4)
        pcr_plate.update_status.side_effect = SeqcontrolTransitionError(
            'PCR plate', 'PLATE_SETUP', 'PLATE_DONE')
        with patch('seqcontrol.gui.handlers.plate.PCRPlate', pcr_class):
            response = self.post('/plate/pcr/4/status',
                                 {'status': 'PLATE_DONE'})
        self.assertEqual(response.code, 409)
        obs = json_decode(response.body)
        self.assertEqual(
            obs['message'],
            'Cannot transition PCR plate from PLATE_SETUP to PLATE_DONE')

    def test_patch_index_well_handler(self):
        index_class, index_plate = _mock_class('Index plate', id=2)
        well = {'position': 'A01', 'i5_name': 'i5-1', 'i5_sequence': 'AAAA',
                'i7_name': 'i7-1', 'i7_sequence': 'GGGG',
                'merged_sequence': 'AAAAGGGG'}
        index_plate.update_well.return_value = well
        with patch('seqcontrol.gui.handlers.plate.IndexPlate', index_class):
            response = self.patch(
                '/plate/index/2/well/A1',
                {'changes': json_encode({'i7_sequence': 'GGGG'})})
        self.assertEqual(response.code, 200)
        self.assertEqual(json_decode(response.body),
                         {'plate_id': 2, 'well': well})
        index_plate.update_well.assert_called_once_with(
            'A1', i7_sequence='GGGG')

    def test_patch_index_well_handler_invalid_position(self):
        index_class, index_plate = _mock_class('Index plate', id=2)
        index_plate.update_well.side_effect = \
            SeqcontrolInvalidWellPositionError('Z99')
        with patch('seqcontrol.gui.handlers.plate.IndexPlate', index_class):
            response = self.patch(
                '/plate/index/2/well/Z99',
                {'changes': json_encode({'i7_sequence': 'GGGG'})})
        self.assertEqual(response.code, 400)
        self.assertEqual(json_decode(response.body)['column'], 'position')


if __name__ == '__main__':
    main()
