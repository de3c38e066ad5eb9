"""Replay of VEP JSON output.

VEP writes one JSON object per input variant when run with ``--json``. The
JsonOutputEngine reads such output from a file, from JSON text passed as input
data or from a list of already decoded objects and serves it line by line.

VEP writes its warnings to a separate file. Each message is reported with the
line of the input it refers to, found from a ``line N`` reference into the
input or from a quoted input identifier. Messages that cannot be placed are
kept for unmatched_warnings().
"""

import gzip
import json
import re
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from varrecode.engine.base import AnnotationEngine, AnnotationLine, EngineError

LINE_REFERENCE = re.compile(r"\bline (\d+)\b", re.IGNORECASE)
QUOTED_VALUE = re.compile(r"'([^']+)'|\"([^\"]+)\"")

WarningRoute = Tuple[Optional[str], str]


def parse_json_text(text: str) -> List[Mapping[str, Any]]:
    """Decode VEP JSON given either as one array or as one object per line."""
    text = text.strip()
    if not text:
        return []
    try:
        if text.startswith("["):
            data = json.loads(text)
            if not isinstance(data, list):
                raise EngineError("Expected a JSON array of annotation results")
            return data
        return [json.loads(line) for line in text.splitlines() if line.strip()]
    except json.JSONDecodeError as e:
        raise EngineError(f"Invalid annotation JSON: {e}") from e


def read_warning_file(warning_file: Path) -> List[str]:
    """Read warning messages from a VEP warning file."""
    if not warning_file.exists():
        return []
    messages = []
    with open(warning_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            if line.startswith("WARNING:"):
                line = line[len("WARNING:"):].strip()
            messages.append(line)
    return messages


def route_warnings(
    messages: Iterable[str], inputs: Optional[Sequence[str]] = None
) -> List[WarningRoute]:
    """Pair each warning message with the input it refers to.

    A ``line N`` reference selects the N-th line of ``inputs``. Otherwise the
    first quoted value that is one of ``inputs`` is used. When the inputs are
    not known, any quoted value is taken as the input.

    Returns:
        (input, message) pairs in message order, input None if not found
    """
    known = set(inputs) if inputs is not None else None
    routes = []
    for message in messages:
        target = None
        line_ref = LINE_REFERENCE.search(message)
        if line_ref and inputs is not None:
            line_no = int(line_ref.group(1))
            if 1 <= line_no <= len(inputs) and inputs[line_no - 1]:
                target = inputs[line_no - 1]
        if target is None:
            for match in QUOTED_VALUE.finditer(message):
                value = match.group(1) or match.group(2)
                if known is None or value in known:
                    target = value
                    break
        routes.append((target, message))
    return routes


class JsonOutputEngine(AnnotationEngine):
    """Serve annotation lines from VEP JSON output.

    Input data set through set_input() takes precedence over ``records`` and
    ``source``. Warnings found in ``warning_file`` are reported with the line
    of the input they mention; the others are returned by
    unmatched_warnings() once all lines were served.

    Attributes:
        source (Optional[Path]): JSON lines file, optionally gzip compressed.
        records (Optional[list]): Decoded JSON objects.
        warning_file (Optional[Path]): VEP warning file.
    """

    def __init__(
        self,
        source: Optional[Union[Path, str]] = None,
        records: Optional[Iterable[Mapping[str, Any]]] = None,
        warning_file: Optional[Union[Path, str]] = None,
    ):
        super().__init__()
        self.source = Path(source) if source else None
        self.records = list(records) if records is not None else None
        self.warning_file = Path(warning_file) if warning_file else None
        self._iterator: Optional[Iterator[Mapping[str, Any]]] = None
        self._routes: List[WarningRoute] = []
        self._unmatched: List[WarningRoute] = []
        self._inputs_known = False

    def input_names(self) -> Optional[List[str]]:
        """Lines of the input VEP was run on, None when not known."""
        return None

    def _iter_source(self) -> Iterator[Mapping[str, Any]]:
        if not self.source.exists():
            raise EngineError(f"Annotation output not found: {self.source}")

        opener = gzip.open if self.source.suffix == ".gz" else open
        with opener(self.source, "rt") as fh:
            for line_no, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError as e:
                    raise EngineError(
                        f"Invalid annotation JSON in {self.source} line {line_no}: {e}"
                    ) from e

    def _iter_records(self) -> Iterator[Mapping[str, Any]]:
        if self.input_data is not None:
            return iter(parse_json_text(self.input_data))
        if self.records is not None:
            return iter(self.records)
        if self.source is not None:
            return self._iter_source()
        raise EngineError("No annotation input configured")

    def _load_warnings(self) -> None:
        self._routes = []
        self._unmatched = []
        if self.warning_file is None:
            return
        inputs = self.input_names()
        self._inputs_known = inputs is not None
        self._routes = route_warnings(read_warning_file(self.warning_file), inputs)
        self.logger.debug(f"Read {len(self._routes)} warnings from {self.warning_file}")

    def _report_warnings(self, input_id: str) -> None:
        remaining = []
        for target, message in self._routes:
            if target == input_id:
                self.add_warning(message)
            else:
                remaining.append((target, message))
        self._routes = remaining

    def next_annotation_line(self) -> Optional[AnnotationLine]:
        if self._iterator is None:
            self._iterator = self._iter_records()
            self._load_warnings()

        try:
            data = next(self._iterator)
        except StopIteration:
            # an input named in a warning but never served is only known for
            # certain when the engine knows its inputs
            self._unmatched.extend(
                (target if self._inputs_known else None, message)
                for target, message in self._routes
            )
            self._routes = []
            return None

        line = AnnotationLine.from_vep_json(data)
        self._report_warnings(line.input)
        return line

    def unmatched_warnings(self) -> List[WarningRoute]:
        return list(self._unmatched)

    def reset(self) -> None:
        super().reset()
        self._close()
        self._routes = []
        self._unmatched = []

    def finish(self) -> None:
        self._close()

    def _close(self) -> None:
        close = getattr(self._iterator, "close", None)
        if close is not None:
            close()
        self._iterator = None
