# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from types import MappingProxyType

from seqcontrol.db.exceptions import SeqcontrolTransitionError


RUN_STATUSES = ('SETUP', 'DNA_EXTRACTED', 'PCR_IN_PROGRESS', 'POOLED',
                'SUBMITTED', 'SEQUENCED')
RUN_FINAL_STATUSES = frozenset(['SEQUENCED'])

RUN_TRANSITIONS = MappingProxyType({
    'SETUP': ('DNA_EXTRACTED', ),
    'DNA_EXTRACTED': ('PCR_IN_PROGRESS', ),
    'PCR_IN_PROGRESS': ('POOLED', ),
    'POOLED': ('SUBMITTED', ),
    'SUBMITTED': ('SEQUENCED', ),
    'SEQUENCED': (),
})

PLATE_STATUSES = ('PLATE_SETUP', 'PCR_COMPLETE', 'GEL_CHECKED',
                  'POOLING_ASSIGNED', 'PLATE_DONE')
PLATE_FINAL_STATUSES = frozenset(['PLATE_DONE'])

PLATE_TRANSITIONS = MappingProxyType({
    'PLATE_SETUP': ('PCR_COMPLETE', ),
    'PCR_COMPLETE': ('GEL_CHECKED', ),
    'GEL_CHECKED': ('POOLING_ASSIGNED', ),
    'POOLING_ASSIGNED': ('PLATE_DONE', ),
    'PLATE_DONE': (),
})


def _validate_transition(transitions, obj_name, current, target):
    # Unknown current statuses have no outgoing edges
    if target not in transitions.get(current, ()):
        raise SeqcontrolTransitionError(obj_name, current, target)


def validate_run_transition(current, target):
    """Checks that a sequencing run can move from current to target

    Parameters
    ----------
    current : str
        The current run status
    target : str
        The requested run status

    Raises
    ------
    SeqcontrolTransitionError
        If target is not one step away from current in the run workflow
    """
    _validate_transition(RUN_TRANSITIONS, 'sequencing run', current, target)


def validate_plate_transition(current, target):
    """Checks that a PCR plate can move from current to target

    Raises
    ------
    SeqcontrolTransitionError
        If target is not one step away from current in the plate workflow
    """
    _validate_transition(PLATE_TRANSITIONS, 'PCR plate', current, target)


def get_available_run_transitions(current):
    return list(RUN_TRANSITIONS.get(current, ()))


def get_available_plate_transitions(current):
    return list(PLATE_TRANSITIONS.get(current, ()))


def get_active_run_statuses():
    return [s for s in RUN_STATUSES if s not in RUN_FINAL_STATUSES]


def get_final_run_statuses():
    return [s for s in RUN_STATUSES if s in RUN_FINAL_STATUSES]


def get_active_plate_statuses():
    return [s for s in PLATE_STATUSES if s not in PLATE_FINAL_STATUSES]


def get_final_plate_statuses():
    return [s for s in PLATE_STATUSES if s in PLATE_FINAL_STATUSES]
