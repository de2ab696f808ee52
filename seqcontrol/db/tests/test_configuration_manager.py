# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from os import environ
from unittest import main, TestCase
from tempfile import NamedTemporaryFile

from mock import patch

from seqcontrol.db.configuration_manager import ConfigurationManager
from seqcontrol.db.protocol import DEFAULT_PROTOCOL


class TestConfigurationManager(TestCase):
    def test_create(self):
        with NamedTemporaryFile() as tmp_f:
            ConfigurationManager.create(
                tmp_f.name, True, 'db_host', 1, 'db_name', 'db_user',
                'db_password', 'db_admin_user', 'db_admin_password',
                '/path/to/logdir', 'aBcD')

            with open(tmp_f.name) as obs_f:
                obs = obs_f.read()

            obs = obs.splitlines()
            exp = EXP_CONFIG_FILE.splitlines()

            # Removing the first line as it contains a date that is generated
            # when the test is run
            self.assertEqual(obs[1:], exp)

    def test_init(self):
        with NamedTemporaryFile() as tmp_f:
            ConfigurationManager.create(
                tmp_f.name, True, 'db_host', 1, 'db_name', 'db_user', '',
                'db_admin_user', 'db_admin_password', '/path/to/logdir', '',
                log_level='DEBUG')
            obs = ConfigurationManager(tmp_f.name)

        self.assertTrue(obs.test_environment)
        self.assertEqual(obs.log_dir, '/path/to/logdir')
        self.assertEqual(obs.log_level, 'DEBUG')
        self.assertIsNone(obs.cookie_secret)
        self.assertEqual(obs.user, 'db_user')
        self.assertIsNone(obs.password)
        self.assertEqual(obs.admin_user, 'db_admin_user')
        self.assertEqual(obs.admin_password, 'db_admin_password')
        self.assertEqual(obs.database, 'db_name')
        self.assertEqual(obs.host, 'db_host')
        self.assertEqual(obs.port, 1)
        self.assertEqual(obs.protocol, DEFAULT_PROTOCOL)

    def test_init_sequencing_section(self):
        with NamedTemporaryFile('w') as tmp_f:
            tmp_f.write(CUSTOM_CONFIG_FILE)
            tmp_f.flush()
            obs = ConfigurationManager(tmp_f.name)

        self.assertFalse(obs.test_environment)
        self.assertEqual(obs.log_level, 'INFO')
        self.assertEqual(obs.protocol.pcr_overage_factor, 1.25)
        self.assertEqual(obs.protocol.transfer_volume_ul, 2.5)
        self.assertEqual(obs.protocol.investigator_name, 'Jane Doe')
        self.assertEqual(obs.protocol.read_length, 151)
        self.assertEqual(obs.protocol.master_mix_ul,
                         DEFAULT_PROTOCOL.master_mix_ul)

    def test_init_env_variable(self):
        with NamedTemporaryFile('w') as tmp_f:
            tmp_f.write(CUSTOM_CONFIG_FILE)
            tmp_f.flush()
            with patch.dict(environ, {'SEQCONTROL_CONFIG_FP': tmp_f.name}):
                obs = ConfigurationManager()
        self.assertEqual(obs.conf_fp, tmp_f.name)
        self.assertEqual(obs.database, 'seqcontrol')

    def test_init_error(self):
        with NamedTemporaryFile('w') as tmp_f:
            tmp_f.write("[main]\nTEST_ENVIRONMENT=True\n")
            tmp_f.flush()
            with self.assertRaisesRegex(RuntimeError, 'postgres'):
                ConfigurationManager(tmp_f.name)


EXP_CONFIG_FILE = """
# ------------------------- MAIN SETTINGS ----------------------------------
[main]
TEST_ENVIRONMENT=True
LOG_DIR=/path/to/logdir
LOG_LEVEL=INFO
COOKIE_SECRET=aBcD

# ----------------------- POSTGRES SETTINGS --------------------------------
[postgres]
USER=db_user
PASSWORD=db_password
ADMIN_USER=db_admin_user
ADMIN_PASSWORD=db_admin_password
DATABASE=db_name
HOST=db_host
PORT=1

# ---------------------- SEQUENCING SETTINGS -------------------------------
[sequencing]
PCR_OVERAGE_FACTOR=1.1
TRANSFER_VOLUME_UL=5
INVESTIGATOR_NAME=SeqControl
READ_LENGTH=301
"""

CUSTOM_CONFIG_FILE = """
[main]
TEST_ENVIRONMENT=False
LOG_DIR=

[postgres]
USER=seqcontrol
PASSWORD=
ADMIN_USER=postgres
ADMIN_PASSWORD=
DATABASE=seqcontrol
HOST=localhost
PORT=5432

[sequencing]
PCR_OVERAGE_FACTOR=1.25
TRANSFER_VOLUME_UL=2.5
INVESTIGATOR_NAME=Jane Doe
READ_LENGTH=151
"""


if __name__ == '__main__':
    main()
