# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from urllib.parse import urlencode

from mock import patch
from tornado.testing import AsyncHTTPTestCase

from seqcontrol.gui.webserver import Application
from seqcontrol.gui.handlers.base import BaseHandler


class TestHandlerBase(AsyncHTTPTestCase):
    def get_app(self):
        patcher = patch.object(BaseHandler, 'get_current_user',
                               return_value='test@foo.bar')
        patcher.start()
        self.addCleanup(patcher.stop)
        return Application(debug=False)

    # helpers from http://www.peterbe.com/plog/tricks-asynchttpclient-tornado
    def get(self, url, data=None, headers=None, doseq=True):
        if data is not None:
            if isinstance(data, dict):
                data = urlencode(data, doseq=doseq)
            if '?' in url:
                url += '&%s' % data
            else:
                url += '?%s' % data
        return self.fetch(url, method='GET', headers=headers)

    def post(self, url, data, headers=None, doseq=True):
        if data is not None:
            if isinstance(data, dict):
                data = urlencode(data, doseq=doseq)
        return self.fetch(url, method='POST', body=data, headers=headers)

    def patch(self, url, data, headers=None, doseq=True):
        if isinstance(data, dict):
            data = urlencode(data, doseq=doseq)
        # the http client only sets the form content type on POST requests
        headers = dict(headers or {})
        headers.setdefault('Content-Type',
                           'application/x-www-form-urlencoded')
        return self.fetch(url, method='PATCH', body=data, headers=headers)

    def delete(self, url, data=None, headers=None, doseq=True):
        if data is not None:
            if isinstance(data, dict):
                data = urlencode(data, doseq=doseq)
            if '?' in url:
                url += '&%s' % data
            else:
                url += '?%s' % data
        return self.fetch(url, method='DELETE', headers=headers)
