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
from seqcontrol.db.protocol import DEFAULT_PROTOCOL
from seqcontrol.db.run import SequencingRun
from seqcontrol.db.status import get_available_run_transitions


def _get_run(run_id):
    """Returns the sequencing run object if it exists

    Raises
    ------
    HTTPError
        404, if the run doesn't exist
    """
    run_id = parse_id(run_id, 'run id')
    try:
        run = SequencingRun(run_id)
    except SeqcontrolUnknownIdError:
        raise HTTPError(404, 'Sequencing run %s doesn\'t exist' % run_id)
    return run


def run_list_get_request():
    return {'data': [[r.id, r.run_identifier, r.status]
                     for r in SequencingRun.iter()]}


def run_get_request(run_id):
    """Returns the summary of a sequencing run and its children"""
    run = _get_run(run_id)
    status = run.status
    return {'run_id': run.id,
            'run_identifier': run.run_identifier,
            'status': status,
            'available_transitions': get_available_run_transitions(status),
            'dna_plates': [[p.id, p.plate_identifier]
                           for p in run.dna_plates],
            'pcr_plates': [[p.id, p.plate_identifier, p.status]
                           for p in run.pcr_plates],
            'pools': [[p.id, p.pool_name] for p in run.pools]}


def run_status_post_request(run_id, status):
    run = _get_run(run_id)
    run.update_status(status)
    return {'run_id': run.id,
            'status': status,
            'available_transitions': get_available_run_transitions(status)}


def run_sample_sheet_get_request(run_id, protocol=DEFAULT_PROTOCOL):
    """Generates the sample sheet of a sequencing run

    Returns
    -------
    tuple of (list of str, str)
        The pieces of the file name and the file contents
    """
    run = _get_run(run_id)
    return ([run.run_identifier, 'samplesheet'],
            run.generate_sample_sheet(protocol=protocol))


def run_reagents_get_request(run_id, protocol=DEFAULT_PROTOCOL):
    """Returns the reagent quantities needed by a sequencing run"""
    run = _get_run(run_id)
    requirements = run.reagent_requirements(protocol=protocol)
    return {'run_id': run.id,
            'sample_count': requirements['sample_count'],
            'reaction_count': requirements['reaction_count'],
            'extraction': [r._asdict() for r in requirements['extraction']],
            'pcr': [r._asdict() for r in requirements['pcr']]}


class RunListHandler(BaseHandler):
    @authenticated
    def get(self):
        self.write(run_list_get_request())


class RunHandler(BaseHandler):
    @authenticated
    def get(self, run_id):
        self.write(run_get_request(run_id))


class RunStatusHandler(BaseHandler):
    @authenticated
    def post(self, run_id):
        status = self.get_argument('status')
        self.write(run_status_post_request(run_id, status))


class RunSampleSheetHandler(BaseDownloadHandler):
    @authenticated
    def get(self, run_id):
        name_pieces, text = run_sample_sheet_get_request(
            run_id, protocol=self.protocol)
        self.deliver_text(name_pieces, text, extension='csv')


class RunReagentsHandler(BaseHandler):
    @authenticated
    def get(self, run_id):
        self.write(run_reagents_get_request(
            run_id, protocol=self.protocol))
