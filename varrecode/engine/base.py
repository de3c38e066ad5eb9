"""Annotation engine interface.

The recoder does not compute annotations itself. It pulls one AnnotationLine
at a time from an AnnotationEngine and reads the warnings the engine raised
while producing that line.
"""

import dataclasses
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from varrecode.config import RecoderConfig


class EngineError(RuntimeError):
    """Raised when the annotation engine fails (missing binary, bad output, ...)."""


@dataclasses.dataclass
class AnnotationLine:
    """Annotation result for a single input variant.

    Attributes:
        input: The input string as given by the user (e.g. ``rs699``)
        consequences: Transcript consequences, or intergenic consequences when
                      the variant overlaps no transcript
        colocated_variants: Known variants at the same position, each a mapping
                            with ``id`` and ``allele_string``
        vcf_string: VCF-style representation(s) of the variant, if computed
        id: Engine-assigned identifier, not reported
    """

    input: str
    consequences: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    colocated_variants: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    vcf_string: Optional[Union[str, Sequence[str]]] = None
    id: Optional[str] = None

    @classmethod
    def from_vep_json(cls, data: Mapping[str, Any]) -> "AnnotationLine":
        """Create a line from one object of VEP JSON output."""
        if "input" not in data:
            raise EngineError(f"Annotation result without input: {data.get('id')}")

        consequences = data.get("transcript_consequences") or data.get(
            "intergenic_consequences"
        ) or []
        colocated = data.get("colocated_variants") or []
        if not isinstance(colocated, list):
            colocated = []

        return cls(
            input=str(data["input"]).strip(),
            consequences=list(consequences),
            colocated_variants=colocated,
            vcf_string=data.get("vcf_string"),
            id=data.get("id"),
        )


class AnnotationEngine(ABC):
    """Base class for annotation engines used by the recoder."""

    def __init__(self):
        self.config: Optional[RecoderConfig] = None
        self.input_data: Optional[str] = None
        self.logger = logging.getLogger(f"varrecode.engine.{type(self).__name__}")
        self._warnings: List[str] = []

    def configure(self, config: RecoderConfig) -> None:
        """Hand the recoder configuration to the engine, once before iteration."""
        self.config = config

    def set_input(self, input_data: str) -> None:
        self.input_data = input_data

    def reset(self) -> None:
        """Forget per-call input so that consecutive calls do not interfere."""
        self.input_data = None
        self._warnings = []

    def finish(self) -> None:
        """Release resources after the last line was consumed."""

    @abstractmethod
    def next_annotation_line(self) -> Optional[AnnotationLine]:
        """Return the next annotation line, or None at end of input."""

    def add_warning(self, message: str) -> None:
        self.logger.debug(f"Engine warning: {message}")
        self._warnings.append(message)

    def current_warnings(self) -> List[str]:
        return list(self._warnings)

    def clear_warnings(self) -> None:
        self._warnings = []

    def unmatched_warnings(self) -> List[Tuple[Optional[str], str]]:
        """Warnings not reported with any line, read once the input is exhausted.

        Returns:
            (input, message) pairs. ``input`` names the input the message is
            about when it is known, e.g. an input the engine produced no line
            for, and is None otherwise.
        """
        return []
