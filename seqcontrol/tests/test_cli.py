# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging
from os.path import join
from tempfile import TemporaryDirectory
from unittest import TestCase, main

from click.testing import CliRunner
from mock import patch

from seqcontrol.cli import cli, configure_logging
from seqcontrol.db.configuration_manager import ConfigurationManager


class TestCli(TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_config(self):
        with TemporaryDirectory() as tmp_dir:
            config_fp = join(tmp_dir, 'seqcontrol.cfg')
            result = self.runner.invoke(cli, [
                'config', '--config-fp', config_fp, '--test-env',
                '--db-host', 'db_host', '--db-port', '5433',
                '--db-name', 'db_name', '--db-user', 'db_user',
                '--db-password', 'db_password', '--db-admin-user', 'admin',
                '--db-admin-password', '', '--log-dir', tmp_dir,
                '--log-level', 'DEBUG'])
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn(config_fp, result.output)

            obs = ConfigurationManager(config_fp)
        self.assertTrue(obs.test_environment)
        self.assertEqual(obs.host, 'db_host')
        self.assertEqual(obs.port, 5433)
        self.assertEqual(obs.database, 'db_name')
        self.assertEqual(obs.password, 'db_password')
        self.assertIsNone(obs.admin_password)
        self.assertEqual(obs.log_level, 'DEBUG')
        self.assertIsNone(obs.cookie_secret)

    def test_config_invalid_log_level(self):
        result = self.runner.invoke(cli, ['config', '--log-level', 'LOUD'])
        self.assertNotEqual(result.exit_code, 0)

    def test_db_create(self):
        with patch('seqcontrol.db.environment.create_database') as create:
            result = self.runner.invoke(cli, ['db', 'create', '--verbose'])
        self.assertEqual(result.exit_code, 0, result.output)
        create.assert_called_once_with(verbose=True)

    def test_db_patch(self):
        with patch('seqcontrol.db.environment.patch_database') as patch_db:
            result = self.runner.invoke(cli, ['db', 'patch'])
        self.assertEqual(result.exit_code, 0, result.output)
        patch_db.assert_called_once_with(False)

    def test_configure_logging(self):
        with patch('seqcontrol.cli.logging.basicConfig') as basic_config:
            configure_logging('/tmp/logs', 'debug')
        _, kwargs = basic_config.call_args
        self.assertEqual(kwargs['filename'], '/tmp/logs/seqcontrol.log')
        self.assertEqual(kwargs['level'], logging.DEBUG)

        with patch('seqcontrol.cli.logging.basicConfig') as basic_config:
            configure_logging()
        _, kwargs = basic_config.call_args
        self.assertNotIn('filename', kwargs)
        self.assertEqual(kwargs['level'], logging.INFO)


if __name__ == '__main__':
    main()
