"""Variant recoding package.

VarRecode re-projects per-variant annotation results of the Ensembl Variant Effect
Predictor into a compact recoding view keyed by input identifier and allele
(variant IDs, HGVS genomic/coding/protein notation, SPDI and VCF strings). It also
merges sharded VCF outputs of parallel annotation jobs into a single indexed file.
"""

__version__ = "0.1.0"

# Package-wide constants
DEFAULT_FIELDS = "id,hgvsg,hgvsc,hgvsp,spdi"
