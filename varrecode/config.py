"""Recoder configuration.

This module turns a user field list into the effective set of requested fields
and derives the annotation engine switches needed to produce them. The result is
a frozen RecoderConfig that is built once and handed to the engine before any
annotation line is requested.
"""

import dataclasses
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

import yaml

from varrecode import DEFAULT_FIELDS

logger = logging.getLogger("varrecode.config")

# Engine switches that are on unless the caller sets them explicitly
DEFAULT_FLAGS = (
    "database",
    "merged",
    "lrg",
    "check_existing",
    "no_prefetch",
    "hgvsg_use_accession",
    "ambiguous_hgvs",
    "no_stats",
    "json",
    "quiet",
)

DEFAULT_OPTIONS = {
    "failed": 1,
    "buffer_size": 1,
}

# Fields describing the variant as a whole rather than one consequence record
ALLELELESS_FIELDS = ("id", "vcf_string")

# Requested field -> engine switch producing it
FIELD_FLAGS = {
    "id": "check_existing",
    "vcf_string": "vcf_string",
}

# Top-level params keys that are passed on to the engine as options
PARAM_OPTION_KEYS = ("species", "assembly", "cache_dir", "fasta")

FieldSpec = Union[str, Iterable[str], None]


@dataclasses.dataclass(frozen=True)
class RecoderConfig:
    """Immutable recoder settings.

    Attributes:
        fields: Requested output fields, in the order given by the user.
        flags: Boolean engine switches that are turned on.
        options: Valued engine options (distance, buffer_size, species, ...).
    """

    fields: Tuple[str, ...]
    flags: FrozenSet[str]
    options: Mapping[str, Any]

    @property
    def allele_fields(self) -> Tuple[str, ...]:
        """Requested fields read from consequence records of one allele."""
        return tuple(f for f in self.fields if f not in ALLELELESS_FIELDS)

    @property
    def alleleless_fields(self) -> Tuple[str, ...]:
        """Requested fields attached to alleles from record-level data."""
        return tuple(f for f in self.fields if f in ALLELELESS_FIELDS)

    def is_enabled(self, flag: str) -> bool:
        return flag in self.flags


def parse_fields(fields: FieldSpec = None) -> Tuple[str, ...]:
    """Normalize a field specification.

    Args:
        fields: Comma-separated string or sequence of field names. Empty or
                missing specifications fall back to the default field set.

    Returns:
        Tuple of lower-cased, de-duplicated field names in the given order.
    """
    if isinstance(fields, str):
        raw = fields.split(",")
    elif fields is None:
        raw = []
    else:
        raw = list(fields)

    parsed = []
    for name in raw:
        name = str(name).strip().lower()
        if name and name not in parsed:
            parsed.append(name)

    if not parsed:
        logger.debug(f"No fields requested, using defaults: {DEFAULT_FIELDS}")
        return parse_fields(DEFAULT_FIELDS)
    return tuple(parsed)


def build_config(
    fields: FieldSpec = None,
    vcf_string: bool = False,
    flags: Optional[Mapping[str, bool]] = None,
    options: Optional[Mapping[str, Any]] = None,
) -> RecoderConfig:
    """Build the recoder configuration.

    Engine defaults are applied first and may be switched off through ``flags``.
    Switches needed by the requested fields are then forced on: every field
    starting with ``hgvs`` or ``spdi`` enables the switch of the same name and
    ``id`` enables the lookup of existing variants. The annotation distance is
    always 0, so only overlapping features are reported.

    Args:
        fields: Field specification, see parse_fields()
        vcf_string: Also report the VCF representation of each allele
        flags: Explicit engine switches, name -> on/off
        options: Valued engine options

    Returns:
        RecoderConfig
    """
    requested = list(parse_fields(fields))
    if vcf_string and "vcf_string" not in requested:
        requested.append("vcf_string")

    enabled = set(DEFAULT_FLAGS)
    for name, value in (flags or {}).items():
        if value:
            enabled.add(name)
        else:
            enabled.discard(name)

    for field in requested:
        if field.startswith("hgvs") or field.startswith("spdi"):
            enabled.add(field)
        if field in FIELD_FLAGS:
            enabled.add(FIELD_FLAGS[field])

    merged_options: Dict[str, Any] = dict(DEFAULT_OPTIONS)
    merged_options.update(options or {})
    if merged_options.get("distance", 0) != 0:
        logger.warning(
            f"Ignoring distance={merged_options['distance']}, only overlapping features are recoded"
        )
    merged_options["distance"] = 0

    config = RecoderConfig(
        fields=tuple(requested),
        flags=frozenset(enabled),
        options=MappingProxyType(merged_options),
    )
    logger.debug(f"Requested fields: {', '.join(config.fields)}")
    logger.debug(f"Engine flags: {', '.join(sorted(config.flags))}")
    return config


def load_params(params_file: Union[Path, str]) -> Dict[str, Any]:
    """Load a YAML params file.

    Args:
        params_file: Path to the YAML file

    Returns:
        Dictionary with the parameters (empty for an empty file)

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is not a mapping
    """
    params_path = Path(params_file).expanduser().resolve()
    if not params_path.exists():
        raise FileNotFoundError(f"Params file not found: {params_path}")

    logger.debug(f"Loading params from: {params_path}")
    with open(params_path, "r") as f:
        params = yaml.safe_load(f)

    if params is None:
        return {}
    if not isinstance(params, dict):
        raise ValueError(f"Params file must contain a mapping: {params_path}")
    return params


def config_from_params(
    params: Mapping[str, Any],
    fields: FieldSpec = None,
    vcf_string: bool = False,
) -> RecoderConfig:
    """Build a RecoderConfig from loaded params, with command line overrides.

    Values given on the command line (``fields``, ``vcf_string``) take
    precedence over the ones in the params file.
    """
    options = dict(params.get("options") or {})
    for key in PARAM_OPTION_KEYS:
        if params.get(key) is not None:
            options.setdefault(key, params[key])

    return build_config(
        fields=fields if fields else params.get("fields"),
        vcf_string=vcf_string or bool(params.get("vcf_string", False)),
        flags=params.get("flags"),
        options=options,
    )
