"""Field extraction for recoded results.

Each output field is read through an explicit extraction function. Fields that
are not listed in FIELD_EXTRACTORS are read as a plain key of the record.
"""

from typing import Any, Callable, Dict, Iterable, Mapping, MutableMapping, Optional

Extractor = Callable[[Mapping[str, Any]], Optional[Any]]


def record_value(name: str) -> Extractor:
    """Return an extractor reading ``name`` from a record, None if unset."""

    def extract(record: Mapping[str, Any]) -> Optional[Any]:
        value = record.get(name)
        if isinstance(value, (list, tuple)):
            value = [v for v in value if v is not None]
            return value or None
        return value

    return extract


FIELD_EXTRACTORS: Dict[str, Extractor] = {
    "hgvsg": record_value("hgvsg"),
    "hgvsc": record_value("hgvsc"),
    "hgvsp": record_value("hgvsp"),
    "spdi": record_value("spdi"),
    # allele-less, read from the per-allele info built by the attacher
    "id": record_value("id"),
    "vcf_string": record_value("vcf_string"),
}


def get_extractor(name: str) -> Extractor:
    return FIELD_EXTRACTORS.get(name) or record_value(name)


def project(
    records: Iterable[Mapping[str, Any]],
    wanted: Iterable[str],
    target: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Copy wanted fields from records into target.

    For each wanted field the first record holding a value is used. Fields
    already present in target are left untouched.

    Args:
        records: Records to search, in priority order
        wanted: Field names to copy
        target: Mapping receiving the values

    Returns:
        The updated target
    """
    records = list(records)
    for name in wanted:
        if name in target:
            continue
        extract = get_extractor(name)
        for record in records:
            value = extract(record)
            if value is not None:
                target[name] = value
                break
    return target
