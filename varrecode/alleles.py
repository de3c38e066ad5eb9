"""Per-allele views of one annotation line.

Consequence records carry the allele they describe. Existing variant IDs and
VCF strings are reported once per line and have to be mapped back onto alleles
from their string representation.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from varrecode.engine.base import AnnotationLine

logger = logging.getLogger("varrecode.alleles")

# Co-located variants from this source are not reported as identifiers
EXCLUDED_ID_SOURCES = ("COSMIC",)


def group_by_allele(consequences: Iterable[Mapping[str, Any]]) -> Dict[str, List[Mapping[str, Any]]]:
    """Split consequence records by their ``variant_allele``.

    Buckets are created in order of first appearance and keep the original order
    of the records they hold.
    """
    buckets: Dict[str, List[Mapping[str, Any]]] = {}
    for consequence in consequences:
        allele = consequence.get("variant_allele")
        if allele is None:
            logger.debug(f"Skipping consequence without variant_allele: {consequence}")
            continue
        buckets.setdefault(str(allele), []).append(consequence)
    return buckets


def vcf_string_allele(vcf_string: str) -> str:
    """Return the allele of a VCF string, its last non-empty hyphen-delimited field.

    Trailing empty fields are ignored, so ``1-230710048-A-`` yields ``A``.

    >>> vcf_string_allele("1-230710048-A-G")
    'G'
    """
    fields = vcf_string.split("-")
    while len(fields) > 1 and not fields[-1]:
        fields.pop()
    return fields[-1]


def _vcf_strings(value: Optional[Union[str, Sequence[str]]]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [v for v in value if isinstance(v, str)]
    logger.debug(f"Ignoring malformed vcf_string: {value!r}")
    return []


def alleleless_by_allele(
    line: AnnotationLine, wanted: Iterable[str] = ("id", "vcf_string")
) -> Dict[str, Dict[str, str]]:
    """Map record-level annotations of a line onto alleles.

    VCF strings are stored under the allele found in their last field. IDs of
    co-located variants are stored under every alternate allele of the
    variant's allele string; the reference allele (first field) is skipped, as
    are variants from excluded sources. When several co-located variants share
    an allele the last one wins.

    Args:
        line: The annotation line
        wanted: Allele-less fields to collect (``id`` and/or ``vcf_string``)

    Returns:
        Mapping allele -> {"vcf_string": ..., "id": ...}, with only the fields found
    """
    wanted = set(wanted)
    by_allele: Dict[str, Dict[str, str]] = {}

    if "vcf_string" in wanted:
        for vcf_string in _vcf_strings(line.vcf_string):
            by_allele.setdefault(vcf_string_allele(vcf_string), {})["vcf_string"] = vcf_string

    if "id" in wanted:
        for co_var in line.colocated_variants:
            if not isinstance(co_var, Mapping):
                continue
            allele_string = co_var.get("allele_string")
            variant_id = co_var.get("id")
            if not isinstance(allele_string, str) or variant_id is None:
                logger.debug(f"Ignoring co-located variant without allele string or id: {co_var}")
                continue
            if any(source in allele_string for source in EXCLUDED_ID_SOURCES):
                continue

            for allele in allele_string.split("/")[1:]:
                by_allele.setdefault(allele, {})["id"] = variant_id

    return by_allele
