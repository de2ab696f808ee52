# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------


class SeqcontrolError(Exception):
    """Base class for all seqcontrol exceptions"""
    pass


class SeqcontrolUnknownIdError(SeqcontrolError):
    """Exception for error when an object doesn't exist in the DB

    Parameters
    ----------
    obj_name : str
        The name of the object
    obj_id : str
        The unknown id
    """
    def __init__(self, obj_name, obj_id):
        super(SeqcontrolUnknownIdError, self).__init__()
        self.args = ("%s with ID '%s' does not exist" % (obj_name, obj_id), )


class SeqcontrolValidationError(SeqcontrolError):
    """Exception for malformed or missing input

    Parameters
    ----------
    message : str
        The description of the problem
    line : int, optional
        The 1-based line number of the offending input line, if any
    column : str, optional
        The name of the offending column, if any
    """
    def __init__(self, message, line=None, column=None):
        super(SeqcontrolValidationError, self).__init__()
        self.line = line
        self.column = column
        self.args = (message, )


class SeqcontrolInvalidWellPositionError(SeqcontrolValidationError):
    """Exception for well positions outside of the plate grid

    Parameters
    ----------
    position : str
        The offending position
    line : int, optional
        The 1-based line number where the position was found
    """
    def __init__(self, position, line=None):
        if line is None:
            msg = 'Invalid well position "%s"' % position
        else:
            msg = 'Invalid well position "%s" on line %d' % (position, line)
        super(SeqcontrolInvalidWellPositionError, self).__init__(
            msg, line=line, column='position')
        self.position = position


class SeqcontrolConflictError(SeqcontrolError):
    """Exception for requests that conflict with the current state"""
    pass


class SeqcontrolDuplicateError(SeqcontrolConflictError):
    """Exception for error when duplicates occur

    Parameters
    ----------
    obj_name : str
        The name of the object
    attributes : list of (str, str)
        The duplicated attributes
    """
    def __init__(self, obj_name, attributes):
        super(SeqcontrolDuplicateError, self).__init__()
        attr = ', '.join(["%s = %s" % (key, val) for key, val in attributes])
        self.args = ("%s with %s already exists" % (obj_name, attr), )


class SeqcontrolTransitionError(SeqcontrolConflictError):
    """Exception for status changes not allowed by the workflow

    Parameters
    ----------
    obj_name : str
        The kind of object whose status is changing
    current : str
        The current status
    target : str
        The requested status
    """
    def __init__(self, obj_name, current, target):
        super(SeqcontrolTransitionError, self).__init__()
        self.current = current
        self.target = target
        self.args = ("Cannot transition %s from %s to %s"
                     % (obj_name, current, target), )
