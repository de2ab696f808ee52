# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from base64 import b64encode
from uuid import uuid4

import tornado.web

from seqcontrol.db.protocol import DEFAULT_PROTOCOL
from seqcontrol.gui.handlers.base import NotFoundHandler
from seqcontrol.gui.handlers.plate import (
    PlateLayoutHandler, PlateWellsHandler, PCRPlatePopulateHandler,
    PCRPlateIndicesHandler, PCRPlateStatusHandler, IndexWellHandler)
from seqcontrol.gui.handlers.pool import (
    PoolCollisionsHandler, PoolControlWarningsHandler,
    PoolTransferFileHandler, PoolPlatesHandler, PoolPlateHandler)
from seqcontrol.gui.handlers.run import (
    RunListHandler, RunHandler, RunStatusHandler, RunSampleSheetHandler,
    RunReagentsHandler)


PLATE_TYPES = r"(dna|pcr|index)"


class Application(tornado.web.Application):
    def __init__(self, protocol=DEFAULT_PROTOCOL, cookie_secret=None,
                 debug=False):
        handlers = [
            # Sequencing run handlers
            (r"/run_list", RunListHandler),
            (r"/run/([0-9]+)/status", RunStatusHandler),
            (r"/run/([0-9]+)/sample_sheet", RunSampleSheetHandler),
            (r"/run/([0-9]+)/reagents", RunReagentsHandler),
            (r"/run/([0-9]+)/", RunHandler),
            # Plate handlers
            (r"/plate/%s/([0-9]+)/layout" % PLATE_TYPES, PlateLayoutHandler),
            (r"/plate/%s/([0-9]+)/wells" % PLATE_TYPES, PlateWellsHandler),
            (r"/plate/pcr/([0-9]+)/populate", PCRPlatePopulateHandler),
            (r"/plate/pcr/([0-9]+)/indices", PCRPlateIndicesHandler),
            (r"/plate/pcr/([0-9]+)/status", PCRPlateStatusHandler),
            (r"/plate/index/([0-9]+)/well/([A-Za-z0-9]+)", IndexWellHandler),
            # Pool handlers
            (r"/pool/([0-9]+)/collisions", PoolCollisionsHandler),
            (r"/pool/([0-9]+)/control_warnings", PoolControlWarningsHandler),
            (r"/pool/([0-9]+)/transfer_file", PoolTransferFileHandler),
            (r"/pool/([0-9]+)/plates/([0-9]+)", PoolPlateHandler),
            (r"/pool/([0-9]+)/plates", PoolPlatesHandler)]

        # Add the not found handler - it should always be the last one
        handlers.append((r".*", NotFoundHandler))

        settings = {
            "debug": debug,
            # Without a configured secret, a new one is generated every time
            # the webserver starts and the existing sessions are lost
            "cookie_secret": (cookie_secret or
                              b64encode(uuid4().bytes + uuid4().bytes)),
            "login_url": "/auth/login/",
            "protocol": protocol
        }
        tornado.web.Application.__init__(self, handlers, **settings)
