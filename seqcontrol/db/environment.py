# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------
import logging
from os.path import join, dirname, abspath, basename
from glob import glob
from functools import partial

from natsort import natsorted

from seqcontrol.db import sql_connection


get_support_file = partial(join, join(dirname(abspath(__file__)),
                                      'support_files'))
PATCHES_DIR = get_support_file('patches')


def create_database(verbose=False):
    """Creates the database named in the configuration and patches it

    Parameters
    ----------
    verbose : bool, optional
        If true, print the current step. Default: False

    Raises
    ------
    RuntimeError
        If the database already exists
    """
    from seqcontrol.db.settings import seqcontrol_settings

    database = seqcontrol_settings.database
    conn = sql_connection.admin_connection()
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT datname FROM pg_database")
            if database in [row[0] for row in cur.fetchall()]:
                raise RuntimeError(
                    "Database %s already present on the system" % database)
            if verbose:
                print('Creating database %s' % database)
            cur.execute('CREATE DATABASE %s' % database)
    finally:
        conn.close()

    logging.info("Created database %s" % database)
    patch_database(verbose)


def patch_database(verbose, patches_dir=PATCHES_DIR):
    """Apply patches, if necessary, to the database"""
    with sql_connection.TRN:
        sql_connection.TRN.add("SELECT current_patch FROM seqcontrol.settings")
        try:
            current_patch = sql_connection.TRN.execute_fetchlast()
        except ValueError:
            # the system doesn't have the settings table so is unpatched
            current_patch = 'unpatched'

        current_sql_patch_fp = join(patches_dir, current_patch)

        sql_glob = join(patches_dir, '*.sql')
        sql_patch_files = natsorted(glob(sql_glob))

        if current_patch == 'unpatched':
            next_patch_index = 0
            sql_connection.TRN.add("CREATE SCHEMA IF NOT EXISTS seqcontrol")
            sql_connection.TRN.add("""CREATE TABLE seqcontrol.settings
                                      (current_patch varchar not null)""")
            sql_connection.TRN.add("""INSERT INTO seqcontrol.settings
                                      (current_patch) VALUES ('unpatched')""")
            sql_connection.TRN.execute()
        elif current_sql_patch_fp not in sql_patch_files:
            raise RuntimeError("Cannot find patch file %s" % current_patch)
        else:
            next_patch_index = sql_patch_files.index(current_sql_patch_fp) + 1

    patch_update_sql = "UPDATE seqcontrol.settings SET current_patch = %s"

    for sql_patch_fp in sql_patch_files[next_patch_index:]:
        sql_patch_filename = basename(sql_patch_fp)

        with sql_connection.TRN:
            with open(sql_patch_fp, newline=None) as patch_file:
                if verbose:
                    print('\tApplying patch %s...' % sql_patch_filename)
                sql_connection.TRN.add(patch_file.read())
                sql_connection.TRN.add(
                    patch_update_sql, [sql_patch_filename])

            sql_connection.TRN.execute()
        logging.info("Applied database patch %s" % sql_patch_filename)


def reset_test_database():
    """Drops the seqcontrol schema and rebuilds it from the patches

    Raises
    ------
    RuntimeError
        If not configured in a test environment
    """
    from seqcontrol.db.settings import seqcontrol_settings

    if not seqcontrol_settings.test_environment:
        raise RuntimeError(
            "Working on a production environment. Not resetting the "
            "database to protect the production data.")

    with sql_connection.TRN:
        sql_connection.TRN.add("DROP SCHEMA IF EXISTS seqcontrol CASCADE")
        sql_connection.TRN.execute()
    patch_database(verbose=False)
