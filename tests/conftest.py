"""Shared pytest fixtures for varrecode tests."""

import json
from pathlib import Path

import pysam
import pytest

from varrecode.engine.base import AnnotationLine

SHARD_HEADER = """##fileformat=VCFv4.2
##source={source}
##contig=<ID=1,length=249250621>
##INFO=<ID=CSQ,Number=.,Type=String,Description="Consequence annotations from Ensembl VEP. Format: Allele|Consequence">
#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO
"""


# ============================================================================
# Annotation results
# ============================================================================

@pytest.fixture
def rs699_result():
    """VEP JSON result for rs699 with a variant allele G and a reference allele A."""
    return {
        "id": "rs699",
        "input": "rs699",
        "seq_region_name": "1",
        "start": 230710048,
        "end": 230710048,
        "allele_string": "A/G",
        "vcf_string": "1-230710048-A-G",
        "transcript_consequences": [
            {
                "variant_allele": "A",
                "transcript_id": "ENST00000366667",
                "hgvsc": "ENST00000366667.6:c.803=",
            },
            {
                "variant_allele": "G",
                "transcript_id": "ENST00000366667",
                "hgvsc": "ENST00000366667.6:c.803T>C",
                "hgvsp": "ENSP00000355627.5:p.Met268Thr",
                "hgvsg": "NC_000001.11:g.230710048A>G",
                "spdi": "NC_000001.11:230710047:A:G",
            },
            {
                "variant_allele": "G",
                "transcript_id": "ENST00000412344",
                "hgvsc": "ENST00000412344.6:c.803T>C",
                "hgvsg": "NC_000001.11:g.230710048A>G",
            },
        ],
        "colocated_variants": [
            {"id": "rs699", "allele_string": "A/G"},
            {"id": "COSV64184214", "allele_string": "COSMIC_MUTATION"},
        ],
    }


@pytest.fixture
def make_line():
    """Factory for AnnotationLine objects with sensible defaults."""

    def _make(input="var1", alleles=(), vcf_string=None, colocated=(), **fields):
        consequences = [{"variant_allele": a, **fields} for a in alleles]
        return AnnotationLine(
            input=input,
            consequences=consequences,
            colocated_variants=list(colocated),
            vcf_string=vcf_string,
        )

    return _make


@pytest.fixture
def vep_json_file(tmp_path, rs699_result):
    """VEP JSON output file with two inputs, one without consequences."""
    no_csq = {"id": "unknown", "input": "NM_000029.4:c.9999A>G"}
    path = tmp_path / "vep_output.json"
    path.write_text(json.dumps(rs699_result) + "\n" + json.dumps(no_csq) + "\n")
    return path


# ============================================================================
# VCF shards
# ============================================================================

@pytest.fixture
def write_shard(tmp_path):
    """Factory writing a bgzipped, tabix-indexed VCF shard.

    Args:
        name: Shard file name without .gz, e.g. "sample.shard_001.vcf"
        positions: Positions of the records on chromosome 1
        csi: Build a CSI instead of a TBI index
    """
    shard_dir = tmp_path / "shards"
    shard_dir.mkdir(exist_ok=True)

    def _write(name, positions, csi=False):
        path = shard_dir / name
        lines = [SHARD_HEADER.format(source=name)]
        for pos in positions:
            lines.append(f"1\t{pos}\trs{pos}\tA\tG\t.\t.\tCSQ=G|missense_variant\n")
        path.write_text("".join(lines))
        return Path(pysam.tabix_index(str(path), preset="vcf", csi=csi, force=True))

    return _write
