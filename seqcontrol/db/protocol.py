# ----------------------------------------------------------------------------
# Copyright (c) 2017-, seqcontrol development team.
#
# Distributed under the terms of the Modified BSD License.
#
# The full license is in the file LICENSE, distributed with this software.
# ----------------------------------------------------------------------------

from collections import namedtuple
from types import MappingProxyType


AssayInfo = namedtuple(
    'AssayInfo', ['value', 'label', 'display_name', 'suffix', 'target_gene'])

PCR_ASSAYS = MappingProxyType({
    'ASSAY_16S': AssayInfo('ASSAY_16S', '16S', '16S rRNA', '_16s',
                           '16S ribosomal RNA'),
    'ASSAY_EUK2': AssayInfo('ASSAY_EUK2', 'EUK2', 'Eukaryotic 18S', '_EUK2',
                            '18S ribosomal RNA (eukaryotic)'),
    'ASSAY_ITS': AssayInfo('ASSAY_ITS', 'ITS', 'ITS', '_ITS',
                           'Internal Transcribed Spacer'),
    'ASSAY_COI': AssayInfo('ASSAY_COI', 'COI', 'COI', '_COI',
                           'Cytochrome c Oxidase I'),
})

WELL_TYPES = ('SAMPLE', 'MOCK_CONTROL', 'EXTRACTION_CONTROL', 'NTC',
              'POSITIVE_CONTROL', 'EMPTY')
REQUIRED_CONTROLS = ('NTC', 'MOCK_CONTROL')

PCR_RESULTS = ('PCR_PENDING', 'PASS', 'FAIL', 'BORDERLINE')

POOLING_ACTIONS = ('POOL_NORMAL', 'POOL_DOUBLE', 'DO_NOT_POOL', 'POOL_SKIP')
# Only these actions put the well in the physical pool
POOLED_ACTIONS = frozenset(['POOL_NORMAL', 'POOL_DOUBLE'])

EXTRACTION_METHODS = ('AUTOMATED', 'MANUAL', 'OTHER')

ReagentFormula = namedtuple(
    'ReagentFormula', ['reagent_name', 'per_sample_ul', 'unit',
                       'overage_factor'])

DEFAULT_REAGENT_FORMULAS = (
    ReagentFormula('Lysis Solution', 600, 'µL', 1.1),
    ReagentFormula('Soil Lysis Additive', 100, 'µL', 1.1),
    ReagentFormula('SPRI Bead Binding Solution', 300, 'µL', 1.15),
    ReagentFormula('Flocculant Solution', 200, 'µL', 1.1),
    ReagentFormula('10mM TRIS', 100, 'µL', 1.1),
    ReagentFormula('80% Ethanol', 800, 'µL', 1.1),
    ReagentFormula('Sterilised Sandblasting Grit', 50, 'mg', 1.2),
    ReagentFormula('Concentrated SPRI Beads', 20, 'µL', 1.15),
)

Protocol = namedtuple(
    'Protocol', ['assays', 'reagent_formulas', 'pcr_overage_factor',
                 'master_mix_ul', 'primer_ul', 'template_ul',
                 'transfer_volume_ul', 'source_slot', 'dest_slot',
                 'investigator_name', 'read_length'])
Protocol.__doc__ = """Laboratory constants shared by a sequencing workflow

Attributes
----------
assays : mapping of {str: AssayInfo}
    The known PCR assays, keyed by assay code
reagent_formulas : tuple of ReagentFormula
    The per-sample extraction reagent formulas
pcr_overage_factor : float
    Overage applied to the PCR reaction count
master_mix_ul, primer_ul, template_ul : float
    Per-reaction PCR volumes, in microliters
transfer_volume_ul : float
    Base volume moved per well by the liquid handler, in microliters
source_slot, dest_slot : str
    Liquid handler deck slots of the PCR plates and the pool plate
investigator_name : str
    Investigator written in the sample sheet header
read_length : int
    Read length written (twice) in the sample sheet [Reads] section
"""

DEFAULT_PROTOCOL = Protocol(
    assays=PCR_ASSAYS,
    reagent_formulas=DEFAULT_REAGENT_FORMULAS,
    pcr_overage_factor=1.1,
    master_mix_ul=25,
    primer_ul=2.5,
    template_ul=2,
    transfer_volume_ul=5,
    source_slot='1',
    dest_slot='2',
    investigator_name='SeqControl',
    read_length=301)


def get_assay_info(assay, assays=PCR_ASSAYS):
    """Returns the assay information of the given assay code

    Parameters
    ----------
    assay : str
        The assay code, e.g. 'ASSAY_16S'
    assays : mapping of {str: AssayInfo}, optional
        The known assays. Default: PCR_ASSAYS

    Returns
    -------
    AssayInfo
        The known assay information or, for unknown codes, an entry that
        uses the code as label and has no sample label suffix
    """
    try:
        return assays[assay]
    except KeyError:
        return AssayInfo(assay, assay, assay, '', None)
