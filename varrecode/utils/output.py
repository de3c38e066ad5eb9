"""Writers for recoded results."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from varrecode.recoder import flatten_results

OUTPUT_FORMATS = ("json", "parquet")

logger = logging.getLogger("varrecode.output")


def write_json(results: List[Dict[str, Any]], output: Optional[Union[Path, str]] = None) -> None:
    """Write results as a JSON array to a file, or to stdout if no file is given."""
    if output is None:
        json.dump(results, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return

    with open(output, "w") as f:
        json.dump(results, f, indent=2)
    logger.info(f"Wrote {len(results)} results to {output}")


def write_parquet(results: List[Dict[str, Any]], output: Union[Path, str]) -> None:
    """Write results as a flat table, one row per input and allele.

    List values (warnings, several IDs) are joined with commas.
    """
    # optional dependency, installed with the parquet extra
    import pandas as pd

    rows = []
    for row in flatten_results(results):
        rows.append(
            {k: ",".join(map(str, v)) if isinstance(v, list) else v for k, v in row.items()}
        )

    columns = ["input", "allele"]
    for row in rows:
        columns.extend(k for k in row if k not in columns)

    df = pd.DataFrame(rows, columns=columns)
    df.to_parquet(output, index=False)
    logger.info(f"Wrote {len(df)} rows to {output}")


def write_results(
    results: List[Dict[str, Any]],
    output: Optional[Union[Path, str]] = None,
    fmt: str = "json",
) -> None:
    if fmt == "json":
        write_json(results, output)
    elif fmt == "parquet":
        if output is None:
            raise ValueError("An output file is required for parquet output")
        write_parquet(results, output)
    else:
        raise ValueError(f"Unknown output format: {fmt}")
