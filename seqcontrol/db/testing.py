# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from unittest import TestCase, SkipTest


def is_test_database_configured():
    """Whether a test database is configured

    Returns
    -------
    bool
        False if there is no configuration file or it describes a
        production environment
    """
    try:
        from seqcontrol.db.settings import seqcontrol_settings
    except (RuntimeError, OSError):
        return False
    return seqcontrol_settings.test_environment


def reset_test_db():
    """Resets the test database"""
    from seqcontrol.db.environment import reset_test_database
    reset_test_database()


class SeqcontrolTestCase(TestCase):
    """Base class for the tests that run against the test database

    The database is rebuilt before the first test of the class and after
    the last one.
    """
    _perform_reset = True

    @classmethod
    def setUpClass(cls):
        if not is_test_database_configured():
            raise SkipTest("No seqcontrol test database configured")
        reset_test_db()

    def do_not_reset_at_teardown(self):
        self.__class__._perform_reset = False

    @classmethod
    def tearDownClass(cls):
        if cls._perform_reset:
            reset_test_db()
        else:
            cls._perform_reset = True
