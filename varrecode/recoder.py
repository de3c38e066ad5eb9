"""Variant recoder.

The VariantRecoder pulls annotation lines from an annotation engine and
reshapes them into a recoding view: one entry per input and allele, holding the
requested identifiers and notations (variant IDs, HGVS, SPDI, VCF strings).

Example:
    >>> recoder = VariantRecoder(VepCommandEngine(), fields="id,hgvsg")
    >>> recoder.recode("rs699")
    [{'G': {'input': 'rs699', 'id': 'rs699', 'hgvsg': 'NC_000001.11:g.230710048A>G'}}]
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from varrecode.alleles import alleleless_by_allele, group_by_allele
from varrecode.config import FieldSpec, RecoderConfig, build_config
from varrecode.engine.base import AnnotationEngine, AnnotationLine
from varrecode.fields import project

ResultEntry = Dict[str, Any]


def flatten_results(results: Iterable[Dict[str, Any]]) -> List[ResultEntry]:
    """Flatten rendered results to one entry per input and allele.

    Each entry gets an ``allele`` key. Inputs without any allele are kept as a
    single entry with ``allele`` set to None.
    """
    rows = []
    for by_allele in results:
        alleles = {k: v for k, v in by_allele.items() if isinstance(v, dict)}
        for allele, entry in alleles.items():
            rows.append({"allele": allele, **entry})
        if not alleles:
            rows.append({"allele": None, **by_allele})
    return rows


class RecodeContext:
    """Accumulates recoded results for a single recode call.

    Attributes:
        config (RecoderConfig): Field selection used for projection.
        results (dict): input -> allele -> result entry.
        order (list): Distinct inputs in order of first appearance.
    """

    def __init__(self, config: RecoderConfig):
        self.config = config
        self.results: Dict[str, Dict[str, Any]] = {}
        self.order: List[str] = []
        self.lines = 0
        self.logger = logging.getLogger("varrecode.recoder")

    def merge_line(self, line: AnnotationLine, warnings: Sequence[str] = ()) -> None:
        """Merge one annotation line into the results.

        Args:
            line: Annotation line from the engine
            warnings: Engine warnings raised while producing this line
        """
        self.lines += 1
        input_id = line.input
        buckets = group_by_allele(line.consequences)
        alleleless = {}
        if self.config.alleleless_fields:
            alleleless = alleleless_by_allele(line, self.config.alleleless_fields)

        by_allele = self._input_map(input_id)

        if not buckets:
            self.logger.warning(
                f"No consequences for input {input_id}, no alleles to report"
                + (f", dropping id/vcf_string data for {', '.join(alleleless)}" if alleleless else "")
            )
            self.add_warnings(input_id, warnings)
            return

        # warnings of earlier lines without alleles move onto the allele entries
        pending = by_allele.pop("warnings", [])
        for allele, records in buckets.items():
            entry = by_allele.setdefault(allele, {"input": input_id})
            project(records, self.config.allele_fields, entry)
            project([alleleless.get(allele, {})], self.config.alleleless_fields, entry)
            if pending or warnings:
                entry.setdefault("warnings", []).extend([*pending, *warnings])

    def add_warnings(self, input_id: str, warnings: Sequence[str]) -> None:
        """Attach warnings to every allele entry of an input.

        An input without allele entries keeps them under its own ``warnings``
        key until alleles are found for it.
        """
        by_allele = self._input_map(input_id)
        if not warnings:
            return
        entries = [v for v in by_allele.values() if isinstance(v, dict)]
        if not entries:
            by_allele.setdefault("warnings", []).extend(warnings)
        for entry in entries:
            entry.setdefault("warnings", []).extend(warnings)

    def _input_map(self, input_id: str) -> Dict[str, Any]:
        if input_id not in self.results:
            self.order.append(input_id)
        return self.results.setdefault(input_id, {})

    def render(self) -> List[Dict[str, Any]]:
        """Return per-input allele maps in order of first appearance.

        Inputs without alleles are rendered as {"input": ..., "warnings"?: [...]}.
        """
        rendered = []
        for input_id in self.order:
            by_allele = self.results[input_id]
            if not any(isinstance(v, dict) for v in by_allele.values()):
                by_allele = {"input": input_id, **by_allele}
            rendered.append(by_allele)
        return rendered

    def flatten(self) -> List[ResultEntry]:
        return flatten_results(self.render())


class VariantRecoder:
    """Recode variant identifiers into IDs, HGVS, SPDI and VCF notation.

    Attributes:
        engine (AnnotationEngine): Source of annotation lines.
        config (RecoderConfig): Field selection and engine settings.
    """

    def __init__(
        self,
        engine: AnnotationEngine,
        config: Optional[RecoderConfig] = None,
        fields: FieldSpec = None,
        vcf_string: bool = False,
    ):
        self.engine = engine
        self.config = config if config is not None else build_config(fields, vcf_string)
        self.logger = logging.getLogger("varrecode.recoder")
        self._initialized = False

    def init(self) -> None:
        """Configure the engine, once."""
        if self._initialized:
            return
        self.engine.configure(self.config)
        self._initialized = True

    def recode_all(self) -> List[Dict[str, Any]]:
        """Recode all input configured on the engine."""
        self.init()
        try:
            return self._get_all_results().render()
        finally:
            self.engine.finish()

    def recode(self, input_data: str) -> List[Dict[str, Any]]:
        """Recode the given input string.

        Args:
            input_data: Variant identifier(s), e.g. ``rs699`` or an HGVS notation

        Raises:
            ValueError: If no input is given
        """
        if not input_data or not str(input_data).strip():
            raise ValueError("No input data supplied")

        self.init()
        self.engine.reset()
        self.engine.set_input(str(input_data))
        try:
            return self._get_all_results().render()
        finally:
            self.engine.reset()

    def _get_all_results(self) -> RecodeContext:
        context = RecodeContext(self.config)
        self.logger.debug(
            f"Allele fields: {context.config.allele_fields}, "
            f"allele-less fields: {context.config.alleleless_fields}"
        )

        while True:
            line = self.engine.next_annotation_line()
            if line is None:
                break
            context.merge_line(line, self.engine.current_warnings())
            self.engine.clear_warnings()

        for input_id, message in self.engine.unmatched_warnings():
            if input_id is None:
                self.logger.warning(f"Engine warning: {message}")
            else:
                self.logger.warning(f"No annotation for input {input_id}: {message}")
                context.add_warnings(input_id, [message])

        self.logger.info(f"Recoded {len(context.order)} inputs from {context.lines} annotation lines")
        return context
