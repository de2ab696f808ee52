# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging
from os import environ
from os.path import expanduser, join

import click


LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def configure_logging(log_dir=None, log_level='INFO'):
    """Sends the log records to LOG_DIR/seqcontrol.log, or stderr

    Parameters
    ----------
    log_dir : str, optional
        The directory holding the log file. Default: log to stderr
    log_level : str, optional
        The name of the minimum level logged. Default: 'INFO'
    """
    kwargs = {'format': LOG_FORMAT,
              'level': getattr(logging, log_level.upper(), logging.INFO)}
    if log_dir:
        kwargs['filename'] = join(log_dir, 'seqcontrol.log')
    logging.basicConfig(**kwargs)


@click.group()
def cli():
    pass


@cli.command()
@click.option('--config-fp', required=False, type=click.Path(),
              help='Path to the configuration file to create. Default: '
                   '$SEQCONTROL_CONFIG_FP, or ~/.seqcontrol.cfg')
@click.option('--test-env', is_flag=True, default=False,
              help='Configure a test environment. Its database is dropped '
                   'and rebuilt by the test suite')
@click.option('--db-host', prompt='Postgres host', default='localhost')
@click.option('--db-port', prompt='Postgres port', default=5432, type=int)
@click.option('--db-name', prompt='Database name', default='seqcontrol')
@click.option('--db-user', prompt='Postgres user', default='seqcontrol')
@click.option('--db-password', prompt='Postgres user password',
              hide_input=True, default='')
@click.option('--db-admin-user', prompt='Postgres admin user',
              default='postgres')
@click.option('--db-admin-password', prompt='Postgres admin user password',
              hide_input=True, default='')
@click.option('--log-dir', prompt='Logging directory',
              default=expanduser('~'))
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']))
@click.option('--cookie-secret', default='',
              help='Secret used to sign the session cookies. Default: a '
                   'new one every time the webserver starts')
def config(config_fp, test_env, db_host, db_port, db_name, db_user,
           db_password, db_admin_user, db_admin_password, log_dir,
           log_level, cookie_secret):
    """Generates the seqcontrol configuration file"""
    from seqcontrol.db.configuration_manager import ConfigurationManager

    if config_fp is None:
        config_fp = environ.get('SEQCONTROL_CONFIG_FP',
                                expanduser('~/.seqcontrol.cfg'))
    ConfigurationManager.create(config_fp, test_env, db_host, db_port,
                                db_name, db_user, db_password, db_admin_user,
                                db_admin_password, log_dir, cookie_secret,
                                log_level=log_level)
    click.echo('Configuration file written to %s' % config_fp)


@cli.group()
def db():
    """Database management commands"""
    pass


@db.command()
@click.option('--verbose', is_flag=True, default=False)
def create(verbose):
    """Creates the seqcontrol database and applies all the patches"""
    from seqcontrol.db.environment import create_database
    create_database(verbose=verbose)


@db.command()
@click.option('--verbose', is_flag=True, default=False)
def patch(verbose):
    """Applies the pending patches to the seqcontrol database"""
    from seqcontrol.db.environment import patch_database
    patch_database(verbose)


@cli.command('start-webserver')
@click.option('--port', required=False, type=int, default=8080,
              show_default=True, help='Port where the webserver will start')
@click.option('--debug', is_flag=True, default=False,
              help='Run tornado in debug mode')
def start_webserver(port, debug):
    """Starts the seqcontrol webserver"""
    from tornado.httpserver import HTTPServer
    from tornado.ioloop import IOLoop

    from seqcontrol.db.settings import seqcontrol_settings
    from seqcontrol.gui.webserver import Application

    configure_logging(seqcontrol_settings.log_dir,
                      seqcontrol_settings.log_level)
    app = Application(protocol=seqcontrol_settings.protocol,
                      cookie_secret=seqcontrol_settings.cookie_secret,
                      debug=debug)
    http_server = HTTPServer(app)
    http_server.listen(port)
    logging.info('Seqcontrol started on port %d' % port)
    click.echo('Seqcontrol started on port %d' % port)
    IOLoop.current().start()


if __name__ == '__main__':
    cli()
