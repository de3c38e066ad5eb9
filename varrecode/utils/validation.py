"""Validation utilities for the varrecode package.

This module provides functions for checking external tools and the presence of
VCF index files.
"""

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Optional, Union

INDEX_SUFFIXES = (".tbi", ".csi")


def check_vep_installed(vep_cmd: str = "vep") -> Path:
    """Check that the VEP executable is available and log its version.

    Args:
        vep_cmd: Name or path of the vep executable

    Returns:
        Path to the executable

    Raises:
        FileNotFoundError: If the executable cannot be found
    """
    logger = logging.getLogger("varrecode")

    if "/" in vep_cmd:
        vep_path = Path(vep_cmd).expanduser()
        if not vep_path.exists():
            logger.error(f"vep binary not found at specified path: {vep_cmd}")
            raise FileNotFoundError(f"vep binary not found: {vep_cmd}")
    else:
        found = shutil.which(vep_cmd)
        if not found:
            logger.error(f"vep binary not found in PATH: {vep_cmd}")
            raise FileNotFoundError(f"vep binary not found in PATH: {vep_cmd}")
        vep_path = Path(found)

    version = get_vep_version(vep_path)
    logger.info(f"Using vep version {version or 'unknown'} located at {vep_path}")
    return vep_path


def get_vep_version(vep_path: Union[Path, str]) -> Optional[str]:
    """Read the ensembl-vep version from the help banner, None if not found."""
    try:
        result = subprocess.run(
            [str(vep_path), "--help"], capture_output=True, text=True, check=False
        )
    except OSError:
        return None

    match = re.search(r"ensembl-vep\s*:\s*(\S+)", result.stdout)
    return match.group(1) if match else None


def find_index(vcf_path: Path, candidates: Iterable[Path] = ()) -> Path:
    """Locate the index file of a compressed VCF.

    The index is searched among ``candidates`` first and then next to the VCF.

    Raises:
        FileNotFoundError: If no TBI or CSI index exists
    """
    vcf_path = Path(vcf_path)
    expected = {vcf_path.name + suffix for suffix in INDEX_SUFFIXES}
    for candidate in candidates:
        candidate = Path(candidate)
        if candidate.name in expected and candidate.exists():
            return candidate

    for suffix in INDEX_SUFFIXES:
        index = Path(str(vcf_path) + suffix)
        if index.exists():
            return index

    raise FileNotFoundError(
        f"No index found for {vcf_path}. Use tabix or bcftools index on the shard."
    )
