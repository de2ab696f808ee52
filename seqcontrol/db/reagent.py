# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from collections import namedtuple
from math import ceil

from seqcontrol.db.exceptions import SeqcontrolValidationError


ReagentRequirement = namedtuple(
    'ReagentRequirement', ['reagent_name', 'quantity', 'unit'])

MASS_UNITS = frozenset(['mg'])


def _check_count(count, name):
    if count < 0:
        raise SeqcontrolValidationError(
            "%s can't be negative: %s" % (name, count), column=name)


def calculate_reagent_requirements(sample_count, formulas):
    """Computes the extraction reagents needed for a number of samples

    Parameters
    ----------
    sample_count : int
        The number of samples to extract
    formulas : iterable of ReagentFormula
        The per-sample formulas

    Returns
    -------
    list of ReagentRequirement
        One requirement per formula, in the formula order. Volumes are
        reported in mL; mass-based reagents stay in their own unit

    Raises
    ------
    SeqcontrolValidationError
        If sample_count is negative
    """
    _check_count(sample_count, 'sample_count')
    result = []
    for formula in formulas:
        amount = ceil(sample_count * formula.per_sample_ul *
                      formula.overage_factor)
        if formula.unit in MASS_UNITS:
            result.append(ReagentRequirement(
                formula.reagent_name, amount, formula.unit))
        else:
            result.append(ReagentRequirement(
                formula.reagent_name, amount / 1000, 'mL'))
    return result


def calculate_pcr_reagent_requirements(reaction_count, overage_factor,
                                       master_mix_ul, primer_ul):
    """Computes the PCR reagents needed for a number of reactions

    Parameters
    ----------
    reaction_count : int
        The number of PCR reactions
    overage_factor : float
        The overage applied to the number of reactions
    master_mix_ul : float
        Master mix volume per reaction, in microliters
    primer_ul : float
        Volume of each primer per reaction, in microliters

    Returns
    -------
    list of ReagentRequirement
        The master mix, forward primer and reverse primer volumes in mL

    Raises
    ------
    SeqcontrolValidationError
        If reaction_count is negative
    """
    _check_count(reaction_count, 'reaction_count')
    reactions = ceil(reaction_count * overage_factor)
    return [
        ReagentRequirement('PCR Master Mix', reactions * master_mix_ul / 1000,
                           'mL'),
        ReagentRequirement('Forward Primer', reactions * primer_ul / 1000,
                           'mL'),
        ReagentRequirement('Reverse Primer', reactions * primer_ul / 1000,
                           'mL')]
