# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

import logging
from itertools import chain

from psycopg2 import connect, ProgrammingError, OperationalError, errorcodes
from psycopg2.extras import DictCursor
from psycopg2.extensions import TRANSACTION_STATUS_IDLE


def _connection_args(admin=False, database=None):
    # Imported here so the database modules can be loaded without a
    # configuration file
    from seqcontrol.db.settings import seqcontrol_settings

    if admin:
        user = seqcontrol_settings.admin_user
        password = seqcontrol_settings.admin_password
    else:
        user = seqcontrol_settings.user
        password = seqcontrol_settings.password
    return {'user': user,
            'password': password,
            'database': database or seqcontrol_settings.database,
            'host': seqcontrol_settings.host,
            'port': seqcontrol_settings.port}


def admin_connection():
    """Opens an autocommit connection to the server's maintenance database

    Returns
    -------
    psycopg2.extensions.connection
        The connection, using the admin credentials
    """
    conn = connect(**_connection_args(admin=True, database='postgres'))
    conn.autocommit = True
    return conn


class Transaction(object):
    """A context manager that encapsulates a DB transaction

    A transaction is defined by a series of consecutive queries that need to
    be applied to the database as a single block. Queries are queued with
    `add` and run with any of the `execute*` methods; the block is committed
    when the outermost context exits and rolled back if it exits with an
    exception.

    Raises
    ------
    RuntimeError
        If the transaction methods are invoked outside a context.

    Notes
    -----
    When the execution leaves the context manager, any remaining queries in
    the transaction will be executed and committed.
    """

    def __init__(self):
        self._queries = []
        self._results = []
        self._contexts_entered = 0
        self._connection = None

    def _open_connection(self):
        # If the connection already exists and is not closed, don't do
        # anything
        if self._connection is not None and self._connection.closed == 0:
            return

        try:
            self._connection = connect(**_connection_args())
        except OperationalError as e:
            # catch the known common exceptions and raise runtime errors
            try:
                etype = str(e).split(':')[1].split()[0]
            except IndexError:
                # unanticipated error without a colon
                etype = ''
            if etype == 'database':
                etext = ('This is likely because the database `%s` has not '
                         'been created or has been dropped.'
                         % _connection_args()['database'])
            elif etype == 'role':
                etext = ('This is likely because the user string `%s` '
                         'supplied in your configuration file is incorrect '
                         'or not an authorized postgres user.'
                         % _connection_args()['user'])
            elif etype == 'Connection':
                etext = ('This is likely because postgres isn\'t '
                         'running. Check that postgres is correctly '
                         'installed and is running.')
            else:
                # unanticipated error with a colon
                etext = ''
            ebase = ('An OperationalError with the following message occurred'
                     '\n\n\t%s\n%s')
            raise RuntimeError(ebase % (str(e), etext))

    def close(self):
        if self._connection is not None:
            self._connection.close()

    def __enter__(self):
        self._open_connection()
        self._contexts_entered += 1
        return self

    def _clean_up(self, exc_type):
        if exc_type is not None:
            # An exception occurred during the execution of the transaction
            # Make sure that we leave the DB w/o any modification
            self.rollback()
        elif self._queries:
            # There are still queries to be executed, execute them
            # It is safe to use the execute method here, as internally is
            # wrapped in a try/except and rollbacks in case of failure
            self.execute()
            self.commit()
        elif self._connection.get_transaction_status() != \
                TRANSACTION_STATUS_IDLE:
            # There are no queries to be executed, however, the transaction
            # is still not committed. Commit it
            self.commit()

    def __exit__(self, exc_type, exc_value, traceback):
        # We only need to perform some action if this is the last context
        # that we are entering
        if self._contexts_entered == 1:
            # We need to wrap the entire function in a try/finally because
            # at the end we need to decrement _contexts_entered
            try:
                self._clean_up(exc_type)
            finally:
                self._contexts_entered -= 1
        else:
            self._contexts_entered -= 1

    def _raise_execution_error(self, sql, sql_args, error):
        """Rollbacks the current transaction and raises a useful error

        Raises
        ------
        ValueError
            An error with the error received, the SQL statement and its
            arguments
        """
        try:
            ec_lu = errorcodes.lookup(error.pgcode)
        except (KeyError, AttributeError, TypeError):
            ec_lu = 'N/A'
        self.rollback()
        raise ValueError("Error running SQL: %s. MSG: %s\n"
                         "SQL: %s\nARGS: %s"
                         % (ec_lu, str(error), sql, str(sql_args)))

    def add(self, sql, sql_args=None, many=False):
        """Add an sql query to the transaction

        Parameters
        ----------
        sql : str
            The sql query
        sql_args : list, tuple or dict of objects, optional
            The arguments to the sql query
        many : bool, optional
            Whether or not we should add the query multiple times to the
            transaction

        Raises
        ------
        TypeError
            If `sql_args` is provided and is not a list, tuple or dict
        RuntimeError
            If invoked outside a context

        Notes
        -----
        If `many` is true, `sql_args` should be a list of lists, tuples or
        dicts, in which each element of the list contains the parameters for
        one SQL query of the many. Each element on the list is all the
        parameters for a single one of the many queries added. The amount of
        SQL queries added to the list is len(sql_args).
        """
        if not self._contexts_entered:
            raise RuntimeError(
                "Operation not permitted. Transaction methods can only be "
                "invoked within the context manager.")

        if not many:
            sql_args = [sql_args]

        for args in sql_args:
            if args:
                if not isinstance(args, (list, tuple, dict)):
                    raise TypeError("sql_args should be a list, tuple or "
                                    "dict. Found %s" % type(args))
            self._queries.append((sql, args))

    def _execute(self):
        """Internal function that actually executes the transaction

        The `execute` function exposed in the API wraps this one to make sure
        that we catch any exception that happens in here and we rollback the
        transaction
        """
        with self._connection.cursor(cursor_factory=DictCursor) as cur:
            for sql, sql_args in self._queries:
                logging.debug("SQL: %s ARGS: %s" % (sql, sql_args))
                try:
                    cur.execute(sql, sql_args)
                except Exception as e:
                    # We catch any exception as we want to make sure that we
                    # rollback every time that something went wrong
                    self._raise_execution_error(sql, sql_args, e)

                try:
                    res = cur.fetchall()
                except ProgrammingError:
                    # At this execution point, we don't know if the sql query
                    # that we executed should retrieve values from the
                    # database or not, so it is safe to ignore the error
                    res = None
                except Exception as e:
                    self._raise_execution_error(sql, sql_args, e)

                self._results.append(res)

        self._queries = []
        return self._results

    def execute(self):
        """Executes the transaction

        Returns
        -------
        list of DictCursor
            The results of all the SQL queries in the transaction

        Raises
        ------
        RuntimeError
            If invoked outside a context

        Notes
        -----
        If any exception occurs during the execution transaction, a rollback
        is executed and no more queries from the transaction are performed
        """
        if not self._contexts_entered:
            raise RuntimeError(
                "Operation not permitted. Transaction methods can only be "
                "invoked within the context manager.")

        return self._execute()

    def execute_fetchlast(self):
        """Executes the transaction and returns the last result

        Returns
        -------
        object
            The first value of the last SQL query executed
        """
        return self.execute()[-1][0][0]

    def execute_fetchindex(self, idx=-1):
        """Executes the transaction and returns the results of the `idx` query

        Parameters
        ----------
        idx : int, optional
            The index of the query for which we want the result. Default: the
            last one

        Returns
        -------
        DictCursor
            The results of the `idx` query in the transaction
        """
        return self.execute()[idx]

    def execute_fetchflatten(self, idx=-1):
        """Executes the transaction and returns the flattened results of the
        `idx` query

        Parameters
        ----------
        idx : int, optional
            The index of the query for which we want the result. Default: the
            last one

        Returns
        -------
        list of values
            The flattened results of the `idx` query
        """
        return list(chain.from_iterable(self.execute()[idx]))

    def _reset_queue(self):
        self._queries = []
        self._results = []

    def commit(self):
        """Commits the transaction and reset the queries

        Raises
        ------
        RuntimeError
            If invoked outside a context
        """
        if not self._contexts_entered:
            raise RuntimeError(
                "Operation not permitted. Transaction methods can only be "
                "invoked within the context manager.")

        # Reset the queries and the results
        self._reset_queue()
        self._connection.commit()

    def rollback(self):
        """Rollbacks the transaction and reset the queries

        Raises
        ------
        RuntimeError
            If invoked outside a context
        """
        if not self._contexts_entered:
            raise RuntimeError(
                "Operation not permitted. Transaction methods can only be "
                "invoked within the context manager.")

        # Reset the queries and the results
        self._reset_queue()
        self._connection.rollback()

    @property
    def index(self):
        return len(self._queries) + len(self._results)


# Singleton pattern, create the transaction for the entire system
TRN = Transaction()
