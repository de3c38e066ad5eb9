"""Merging of sharded VEP output.

Parallel annotation runs write one bgzipped VCF per shard. The ShardMerger
concatenates the shards in file name order, keeping the header of the first
shard, and writes a single bgzipped and indexed VCF:

    <output_dir>/<prefix>_VEP.vcf.gz
    <output_dir>/<prefix>_VEP.vcf.gz.tbi   (or .csi)
"""

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pysam

from varrecode.utils.validation import find_index

INDEX_TYPES = ("tbi", "csi")
OUTPUT_SUFFIX = "_VEP.vcf.gz"


def simple_name(path: Union[Path, str]) -> str:
    """File name without any extension, e.g. ``sample`` for ``sample.vcf.gz``."""
    return Path(path).name.split(".", 1)[0]


class ShardMerger:
    """Concatenate VCF shards into one indexed file.

    Attributes:
        shards (List[Path]): Shard VCF files, sorted by file name.
        output_dir (Path): Directory receiving the merged file.
        index_type (str): ``tbi`` or ``csi``.
        prefix (str): Output file name prefix.
    """

    def __init__(
        self,
        shards: Iterable[Union[Path, str]],
        output_dir: Union[Path, str],
        index_type: str = "tbi",
        prefix: Optional[str] = None,
        input_name: Optional[Union[Path, str]] = None,
        index_files: Iterable[Union[Path, str]] = (),
    ):
        self.logger = logging.getLogger("varrecode.merge")

        self.shards: List[Path] = sorted(
            (Path(s).expanduser().resolve() for s in shards), key=lambda p: p.name
        )
        if not self.shards:
            raise ValueError("No shard files given")

        index_type = index_type.lower()
        if index_type not in INDEX_TYPES:
            raise ValueError(
                f"Unknown index type: {index_type}, expected one of {', '.join(INDEX_TYPES)}"
            )
        self.index_type = index_type

        if prefix:
            self.prefix = prefix
        elif input_name:
            self.prefix = simple_name(input_name)
        else:
            self.prefix = simple_name(self.shards[0])

        self.output_dir = Path(output_dir).expanduser().resolve()
        self.index_files = [Path(i).expanduser().resolve() for i in index_files]

    @property
    def output_vcf(self) -> Path:
        return self.output_dir / f"{self.prefix}{OUTPUT_SUFFIX}"

    @property
    def output_index(self) -> Path:
        return Path(f"{self.output_vcf}.{self.index_type}")

    def _validate_inputs(self) -> None:
        self.logger.debug("Validating shards")
        for shard in self.shards:
            if not shard.exists():
                raise FileNotFoundError(f"Shard not found: {shard}")
            find_index(shard, self.index_files)
        self.logger.debug("Shard validation successful")

    def merge(self) -> Path:
        """Concatenate the shards and index the result.

        Returns:
            Path to the merged VCF

        Raises:
            FileNotFoundError: If a shard or its index is missing
        """
        self._validate_inputs()
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"Concatenating {len(self.shards)} shards into {self.output_vcf}")
        start_time = time.time()
        records = 0

        with pysam.VariantFile(str(self.shards[0])) as first:
            header = str(first.header)

        out = pysam.BGZFile(str(self.output_vcf), "wb")
        try:
            out.write(header.encode())
            for shard in self.shards:
                self.logger.debug(f"Adding shard: {shard.name}")
                with pysam.VariantFile(str(shard)) as vcf:
                    for record in vcf:
                        out.write(str(record).encode())
                        records += 1
        finally:
            out.close()

        pysam.tabix_index(
            str(self.output_vcf),
            preset="vcf",
            force=True,
            csi=self.index_type == "csi",
        )

        duration = time.time() - start_time
        self.logger.info(
            f"Merged {records} records into {self.output_vcf} (index: {self.output_index.name}) "
            f"in {duration:.2f} seconds"
        )
        return self.output_vcf
