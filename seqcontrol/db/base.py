# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from seqcontrol.db import sql_connection
from seqcontrol.db.exceptions import SeqcontrolUnknownIdError


class SeqcontrolObject(object):
    """Base class of the seqcontrol objects stored in the database

    Subclasses name the table holding their rows in `_table`, its primary
    key in `_id_column` and, optionally, the name used in the error
    messages in `_name`.

    Parameters
    ----------
    id_ : int
        The object id

    Raises
    ------
    SeqcontrolUnknownIdError
        If the id does not reference a known object
    """

    _table = None
    _id_column = None
    _name = None

    def __init__(self, id_):
        if not self.exists(id_):
            raise SeqcontrolUnknownIdError(self._name or self._table, id_)
        self._id = id_

    @classmethod
    def _attr_exists(cls, attr, value):
        """Returns whether the attribute with the given value exists

        Parameters
        ----------
        attr: str
            The attribute to check
        value : object
            The value to check for

        Returns
        -------
        bool
            Whether the given attribute value exists
        """
        with sql_connection.TRN as TRN:
            sql = "SELECT EXISTS(SELECT 1 FROM {} WHERE {} = %s)".format(
                cls._table, attr)
            TRN.add(sql, [value])
            return TRN.execute_fetchlast()

    def _get_attr(self, attr):
        """Returns the value of the given attribute

        Parameters
        ----------
        attr : str
            The attribute to retrieve

        Returns
        -------
        Object
            The attribute
        """
        with sql_connection.TRN as TRN:
            sql = "SELECT {} FROM {} WHERE {} = %s".format(attr, self._table,
                                                           self._id_column)
            TRN.add(sql, [self.id])
            return TRN.execute_fetchlast()

    def _set_attr(self, attr, value):
        """Sets the value of the given attribute

        Parameters
        ----------
        attr : str
            The attribute to set
        value : str
            The new value of the attribute
        """
        with sql_connection.TRN as TRN:
            sql = "UPDATE {} SET {} = %s WHERE {} = %s".format(
                self._table, attr, self._id_column)
            TRN.add(sql, [value, self.id])
            TRN.execute()

    @classmethod
    def exists(cls, id_):
        """Returns whether an object with the given id exists or not

        Parameters
        ----------
        id_ : int
            The id to test for

        Returns
        -------
        bool
            Whether the object with the given id exists or not
        """
        return cls._attr_exists(cls._id_column, id_)

    @property
    def id(self):
        """The object id"""
        return self._id

    def __eq__(self, other):
        """Objects are equal when they share type and id"""
        return type(self) == type(other) and self._id == other._id

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash((self._table, self._id))

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self._id)
