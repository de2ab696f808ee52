# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from tornado.web import authenticated, HTTPError

from seqcontrol.gui.handlers.base import (
    BaseHandler, BaseDownloadHandler, parse_id)
from seqcontrol.db.exceptions import SeqcontrolUnknownIdError
from seqcontrol.db.plate import PCRPlate
from seqcontrol.db.pool import Pool
from seqcontrol.db.protocol import DEFAULT_PROTOCOL


def _get_pool(pool_id):
    """Returns the pool object if it exists

    Raises
    ------
    HTTPError
        404, if the pool doesn't exist
    """
    pool_id = parse_id(pool_id, 'pool id')
    try:
        pool = Pool(pool_id)
    except SeqcontrolUnknownIdError:
        raise HTTPError(404, 'Pool %s doesn\'t exist' % pool_id)
    return pool


def _get_pcr_plate(plate_id):
    plate_id = parse_id(plate_id, 'PCR plate id')
    try:
        plate = PCRPlate(plate_id)
    except SeqcontrolUnknownIdError:
        raise HTTPError(404, 'PCR plate %s doesn\'t exist' % plate_id)
    return plate


def pool_collisions_get_request(pool_id):
    """Returns the index collisions among the pooled wells of a pool"""
    pool = _get_pool(pool_id)
    return {'pool_id': pool.id, 'collisions': pool.index_collisions()}


def pool_control_warnings_get_request(pool_id):
    """Returns the plates of a pool that lack a required control"""
    pool = _get_pool(pool_id)
    return {'pool_id': pool.id, 'warnings': pool.control_warnings()}


def pool_transfer_file_get_request(pool_id, protocol=DEFAULT_PROTOCOL):
    """Generates the liquid handler file of a pool

    Returns
    -------
    tuple of (list of str, str)
        The pieces of the file name and the file contents
    """
    pool = _get_pool(pool_id)
    return ([pool.run.run_identifier, pool.pool_name, 'transfer'],
            pool.generate_transfer_csv(protocol=protocol))


def pool_plates_post_request(pool_id, pcr_plate_id):
    pool = _get_pool(pool_id)
    plate = _get_pcr_plate(pcr_plate_id)
    pool.assign_plate(plate)
    return {'pool_id': pool.id, 'plates': [p.id for p in pool.plates]}


def pool_plates_delete_request(pool_id, pcr_plate_id):
    pool = _get_pool(pool_id)
    plate = _get_pcr_plate(pcr_plate_id)
    pool.remove_plate(plate)
    return {'pool_id': pool.id, 'plates': [p.id for p in pool.plates]}


class PoolCollisionsHandler(BaseHandler):
    @authenticated
    def get(self, pool_id):
        self.write(pool_collisions_get_request(pool_id))


class PoolControlWarningsHandler(BaseHandler):
    @authenticated
    def get(self, pool_id):
        self.write(pool_control_warnings_get_request(pool_id))


class PoolTransferFileHandler(BaseDownloadHandler):
    @authenticated
    def get(self, pool_id):
        name_pieces, text = pool_transfer_file_get_request(
            pool_id, protocol=self.protocol)
        self.deliver_text(name_pieces, text, extension='csv')


class PoolPlatesHandler(BaseHandler):
    @authenticated
    def post(self, pool_id):
        pcr_plate_id = self.get_argument('pcr_plate_id')
        self.write(pool_plates_post_request(pool_id, pcr_plate_id))


class PoolPlateHandler(BaseHandler):
    @authenticated
    def delete(self, pool_id, pcr_plate_id):
        self.write(pool_plates_delete_request(pool_id, pcr_plate_id))
