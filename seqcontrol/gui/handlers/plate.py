# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from tornado.web import authenticated, HTTPError

from seqcontrol.gui.handlers.base import BaseHandler, parse_id
from seqcontrol.db.exceptions import SeqcontrolUnknownIdError
from seqcontrol.db.plate import DNAPlate, PCRPlate, IndexPlate
from seqcontrol.db.protocol import DEFAULT_PROTOCOL
from seqcontrol.db.status import get_available_plate_transitions


def _plate_class(plate_type):
    plate_classes = {'dna': DNAPlate, 'pcr': PCRPlate, 'index': IndexPlate}
    try:
        return plate_classes[plate_type]
    except KeyError:
        raise HTTPError(404, 'Plate type %s not recognized' % plate_type)


def _get_plate(plate_type, plate_id):
    """Returns the plate object if it exists

    Parameters
    ----------
    plate_type : {'dna', 'pcr', 'index'}
        The kind of plate
    plate_id : str
        The plate id

    Raises
    ------
    HTTPError
        404, if the plate doesn't exist
    """
    plate_class = _plate_class(plate_type)
    plate_id = parse_id(plate_id, 'plate id')
    try:
        plate = plate_class(plate_id)
    except SeqcontrolUnknownIdError:
        raise HTTPError(404, '%s %s doesn\'t exist'
                        % (plate_class._name, plate_id))
    return plate


def plate_layout_get_request(plate_type, plate_id):
    """Returns the grid of wells of a plate

    Parameters
    ----------
    plate_type : {'dna', 'pcr', 'index'}
        The kind of plate
    plate_id : str
        The plate id

    Returns
    -------
    dict
        With the plate id and shape, and the layout as a list of rows
    """
    plate = _get_plate(plate_type, plate_id)
    return {'plate_id': plate.id,
            'plate_type': plate_type,
            'num_rows': plate.num_rows,
            'num_columns': plate.num_columns,
            'layout': plate.layout}


def plate_wells_post_request(plate_type, plate_id, csv_text):
    """Replaces the wells of a plate with an uploaded CSV file"""
    plate = _get_plate(plate_type, plate_id)
    return {'plate_id': plate.id,
            'well_count': plate.import_wells(csv_text)}


def pcr_plate_wells_patch_request(plate_id, updates):
    """Applies a batch of well updates to a PCR plate

    Parameters
    ----------
    plate_id : str
        The PCR plate id
    updates : list of dict
        The well updates, keyed by position

    Raises
    ------
    HTTPError
        400, if updates is not a list of objects
    """
    if not isinstance(updates, list) or not all(
            isinstance(u, dict) for u in updates):
        raise HTTPError(400, 'Well updates must be a list of objects')
    plate = _get_plate('pcr', plate_id)
    return {'plate_id': plate.id,
            'well_count': plate.update_wells(updates)}


def pcr_plate_populate_post_request(plate_id, dna_plate_id, assay_type=None,
                                    protocol=DEFAULT_PROTOCOL):
    plate = _get_plate('pcr', plate_id)
    dna_plate = _get_plate('dna', dna_plate_id)
    well_count = plate.populate_from_dna_plate(
        dna_plate, assay_type=assay_type, protocol=protocol)
    return {'plate_id': plate.id, 'well_count': well_count}


def pcr_plate_indices_post_request(plate_id, index_plate_id):
    plate = _get_plate('pcr', plate_id)
    index_plate = _get_plate('index', index_plate_id)
    return {'plate_id': plate.id,
            'well_count': plate.assign_indices(index_plate)}


def pcr_plate_status_post_request(plate_id, status):
    """Moves a PCR plate to a new status

    Returns
    -------
    dict
        With the new status and the statuses reachable from it
    """
    plate = _get_plate('pcr', plate_id)
    plate.update_status(status)
    return {'plate_id': plate.id,
            'status': status,
            'available_transitions': get_available_plate_transitions(status)}


def index_well_patch_request(plate_id, position, changes):
    if not isinstance(changes, dict):
        raise HTTPError(400, 'Index well changes must be an object')
    plate = _get_plate('index', plate_id)
    return {'plate_id': plate.id,
            'well': plate.update_well(position, **changes)}


class PlateLayoutHandler(BaseHandler):
    @authenticated
    def get(self, plate_type, plate_id):
        self.write(plate_layout_get_request(plate_type, plate_id))


class PlateWellsHandler(BaseHandler):
    @authenticated
    def post(self, plate_type, plate_id):
        csv_text = self.get_argument('csv')
        self.write(plate_wells_post_request(plate_type, plate_id, csv_text))

    @authenticated
    def patch(self, plate_type, plate_id):
        if plate_type != 'pcr':
            raise HTTPError(405, 'Only the wells of PCR plates can be '
                                 'updated in bulk')
        updates = self.get_json_argument('updates')
        self.write(pcr_plate_wells_patch_request(plate_id, updates))


class PCRPlatePopulateHandler(BaseHandler):
    @authenticated
    def post(self, plate_id):
        dna_plate_id = self.get_argument('dna_plate_id')
        assay_type = self.get_argument('assay_type', None)
        self.write(pcr_plate_populate_post_request(
            plate_id, dna_plate_id, assay_type=assay_type,
            protocol=self.protocol))


class PCRPlateIndicesHandler(BaseHandler):
    @authenticated
    def post(self, plate_id):
        index_plate_id = self.get_argument('index_plate_id')
        self.write(pcr_plate_indices_post_request(plate_id, index_plate_id))


class PCRPlateStatusHandler(BaseHandler):
    @authenticated
    def post(self, plate_id):
        status = self.get_argument('status')
        self.write(pcr_plate_status_post_request(plate_id, status))


class IndexWellHandler(BaseHandler):
    @authenticated
    def patch(self, plate_id, position):
        changes = self.get_json_argument('changes', {})
        self.write(index_well_patch_request(plate_id, position, changes))
