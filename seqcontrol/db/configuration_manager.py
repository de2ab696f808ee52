# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from os import environ
from os.path import expanduser, exists
from datetime import datetime
from configparser import ConfigParser

from seqcontrol.db.protocol import DEFAULT_PROTOCOL


class ConfigurationManager(object):
    """Holds the seqcontrol configuration

    Attributes
    ----------
    test_environment : bool
        If true, we are in a test environment.
    log_dir : str
        Path to the directory where the log files are written
    log_level : str
        Minimum level of the logged messages
    cookie_secret : str
        Secret used to sign the web server cookies
    database : str
        The postgres database to connect to
    user : str
        The postgres user
    password : str
        The postgres password for the previous user
    admin_user : str
        The administrator user, which can be used to create/drop environments
    admin_password : str
        The postgres password for the admin_user
    host : str
        The host where the database lives
    port : int
        The port used to connect to the postgres database in the previous host
    protocol : seqcontrol.db.protocol.Protocol
        The laboratory constants, with the [sequencing] overrides applied

    Raises
    ------
    RuntimeError
        When the configuration file doesn't exist or misses a section
    """
    @staticmethod
    def create(config_fp, test_env, db_host, db_port, db_name, db_user,
               db_password, db_admin_user, db_admin_password, log_dir,
               cookie_secret, log_level='INFO'):
        """Creates a new seqcontrol configuration file

        Parameters
        ----------
        config_fp : str
            Path to the configuration file
        test_env : bool
            If true, a config file for a test environment will be created
        db_host : str
            The host where the database lives
        db_port : int
            The port used to connect to the postgres database in the previous
            host
        db_name : str
            The postgres database to connect to
        db_user : str
            The postgres user
        db_password : str
            The postgres password for the previous user
        db_admin_user : str
            The administrator user, which can be used to create/drop
            environments
        db_admin_password : str
            The postgres password for the admin_user
        log_dir : str
            Path to the log directory
        cookie_secret : str
            Secret used to sign the web server cookies
        log_level : str, optional
            Minimum level of the logged messages. Default: INFO
        """
        with open(config_fp, 'w') as f:
            f.write(CONFIG_TEMPLATE % {
                'test': test_env,
                'date': str(datetime.now()),
                'user': db_user,
                'admin_user': db_admin_user,
                'password': db_password,
                'admin_password': db_admin_password,
                'database': db_name,
                'host': db_host,
                'port': db_port,
                'logdir': log_dir,
                'loglevel': log_level,
                'cookie_secret': cookie_secret,
                'overage': DEFAULT_PROTOCOL.pcr_overage_factor,
                'volume': DEFAULT_PROTOCOL.transfer_volume_ul,
                'investigator': DEFAULT_PROTOCOL.investigator_name,
                'read_length': DEFAULT_PROTOCOL.read_length})

    def __init__(self, conf_fp=None):
        if conf_fp is None:
            try:
                conf_fp = environ['SEQCONTROL_CONFIG_FP']
            except KeyError:
                conf_fp = expanduser('~/.seqcontrol.cfg')
                if not exists(conf_fp):
                    raise RuntimeError(
                        'Please, configure seqcontrol using `seqcontrol '
                        'config`. If the config file is not in '
                        '`~/.seqcontrol.cfg`, please set the '
                        '`SEQCONTROL_CONFIG_FP` environment variable to the '
                        'configuration file')
        self.conf_fp = conf_fp

        # Parse the configuration file
        config = ConfigParser()
        with open(self.conf_fp, newline=None) as conf_file:
            config.read_file(conf_file)

        _required_sections = {'main', 'postgres'}
        if not _required_sections.issubset(set(config.sections())):
            missing = _required_sections - set(config.sections())
            raise RuntimeError(', '.join(missing))

        self._get_main(config)
        self._get_postgres(config)
        self._get_sequencing(config)

    def _get_main(self, config):
        """Get the main configuration"""
        self.test_environment = config.getboolean('main', 'TEST_ENVIRONMENT')
        self.log_dir = config.get('main', 'LOG_DIR', fallback='')
        self.log_level = config.get('main', 'LOG_LEVEL', fallback='INFO')
        self.cookie_secret = config.get('main', 'COOKIE_SECRET',
                                        fallback='') or None

    def _get_postgres(self, config):
        """Get the configuration of the postgres section"""
        section = config['postgres']
        self.user = section['USER']
        self.database = section['DATABASE']
        self.host = section['HOST']
        self.port = section.getint('PORT')
        # Empty values in the file mean "not set"
        self.password = section['PASSWORD'] or None
        self.admin_user = section['ADMIN_USER'] or None
        self.admin_password = section['ADMIN_PASSWORD'] or None

    def _get_sequencing(self, config):
        """Get the laboratory constants, falling back to the defaults"""
        protocol = DEFAULT_PROTOCOL
        if config.has_section('sequencing'):
            section = 'sequencing'
            protocol = protocol._replace(
                pcr_overage_factor=config.getfloat(
                    section, 'PCR_OVERAGE_FACTOR',
                    fallback=protocol.pcr_overage_factor),
                transfer_volume_ul=config.getfloat(
                    section, 'TRANSFER_VOLUME_UL',
                    fallback=protocol.transfer_volume_ul),
                investigator_name=config.get(
                    section, 'INVESTIGATOR_NAME',
                    fallback=protocol.investigator_name),
                read_length=config.getint(
                    section, 'READ_LENGTH', fallback=protocol.read_length))
        self.protocol = protocol


CONFIG_TEMPLATE = """# Configuration file generated by seqcontrol on %(date)s

# ------------------------- MAIN SETTINGS ----------------------------------
[main]
TEST_ENVIRONMENT=%(test)s
LOG_DIR=%(logdir)s
LOG_LEVEL=%(loglevel)s
COOKIE_SECRET=%(cookie_secret)s

# ----------------------- POSTGRES SETTINGS --------------------------------
[postgres]
USER=%(user)s
PASSWORD=%(password)s
ADMIN_USER=%(admin_user)s
ADMIN_PASSWORD=%(admin_password)s
DATABASE=%(database)s
HOST=%(host)s
PORT=%(port)s

# ---------------------- SEQUENCING SETTINGS -------------------------------
[sequencing]
PCR_OVERAGE_FACTOR=%(overage)s
TRANSFER_VOLUME_UL=%(volume)s
INVESTIGATOR_NAME=%(investigator)s
READ_LENGTH=%(read_length)s
"""
