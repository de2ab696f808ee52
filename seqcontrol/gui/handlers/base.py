# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging
import re
from datetime import datetime

from tornado.escape import json_decode
from tornado.web import RequestHandler, HTTPError, authenticated

from seqcontrol.db.exceptions import (
    SeqcontrolUnknownIdError, SeqcontrolValidationError,
    SeqcontrolConflictError)
from seqcontrol.db.protocol import DEFAULT_PROTOCOL


# Most specific first
ERROR_STATUS_CODES = ((SeqcontrolUnknownIdError, 404),
                      (SeqcontrolValidationError, 400),
                      (SeqcontrolConflictError, 409))


def error_status_code(error):
    """The HTTP status code of a seqcontrol error, None for other errors"""
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return None


def parse_id(value, name):
    """Converts an object id received in a request to an int

    Raises
    ------
    SeqcontrolValidationError
        If the value is not an integer, so the request is answered with 400
    """
    try:
        return int(value)
    except (TypeError, ValueError):
        raise SeqcontrolValidationError(
            'Invalid %s "%s"' % (name, value), column=name)


class BaseHandler(RequestHandler):
    """Base class for all seqcontrol's handlers"""

    def get_current_user(self):
        """Get the current connected user

        The user cookie is set by the login service in front of seqcontrol
        """
        username = self.get_secure_cookie("user")
        if username is not None:
            # strip off quotes added by get_secure_cookie and decode
            return username.strip(b"\"' ").decode()
        else:
            self.clear_cookie("user")
            return None

    @property
    def protocol(self):
        """The laboratory constants the application was started with"""
        return self.settings.get('protocol', DEFAULT_PROTOCOL)

    def get_json_argument(self, name, default=None):
        """Returns the JSON-decoded value of a request argument

        Raises
        ------
        HTTPError
            400, if the argument is not valid JSON
        """
        value = self.get_argument(name, None)
        if value is None:
            return default
        try:
            return json_decode(value)
        except ValueError:
            raise HTTPError(400, 'Argument %s is not valid JSON' % name)

    def log_exception(self, typ, value, tb):
        """Logs seqcontrol errors as warnings, everything else as errors"""
        if error_status_code(value) is not None:
            logging.warning("%s %s: %s" % (self.request.method,
                                           self.request.uri, value))
        else:
            super(BaseHandler, self).log_exception(typ, value, tb)

    def write_error(self, status_code, **kwargs):
        """Tornado's error handling callback

        Seqcontrol errors are reported with their own status code: 404 for
        unknown objects, 400 for invalid input and 409 for conflicts.
        """
        message = self._reason
        body = {}
        if "exc_info" in kwargs:
            error = kwargs["exc_info"][1]
            code = error_status_code(error)
            if code is not None:
                status_code = code
                self.set_status(code)
                message = str(error)
                if isinstance(error, SeqcontrolValidationError):
                    body['line'] = error.line
                    body['column'] = error.column
            elif isinstance(error, HTTPError) and error.log_message:
                message = error.log_message
        body['status'] = status_code
        body['message'] = message
        self.finish(body)

    def head(self):
        """Adds proper response for head requests"""
        self.finish()


class NotFoundHandler(BaseHandler):
    """Handler for 404 errors"""
    def get(self):
        self.set_status(404)
        self.finish({'status': 404, 'message': 'Not Found'})

    def head(self):
        self.set_status(404)
        self.finish()


class BaseDownloadHandler(BaseHandler):
    @staticmethod
    def get_filename_date_format():
        return '%Y-%m-%d'

    @staticmethod
    def generate_file_name(name_pieces, date=None, extension="txt"):
        date = date or datetime.now()
        date_str = datetime.strftime(
            date, BaseDownloadHandler.get_filename_date_format())
        munged_name_pieces = [re.sub('\\s+', '_', x) for x in name_pieces]
        munged_name_pieces.insert(0, date_str)
        name_str = "_".join(munged_name_pieces)
        result = name_str + "." + extension
        return result

    @authenticated
    def deliver_text(self, name_pieces, text, extension="txt",
                     content_type='text/csv'):
        output_name = self.generate_file_name(name_pieces,
                                              extension=extension)
        self._deliver_file(text, output_name, content_type)

    def _deliver_file(self, contents, file_name, content_type):
        self.set_header('Content-Type', content_type)
        self.set_header('Expires', '0')
        self.set_header('Cache-Control', 'no-cache')
        self.set_header('Content-Disposition', 'attachment; filename='
                        '%s' % file_name)
        self.write(contents)
        self.finish()
