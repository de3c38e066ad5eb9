"""Tests for result aggregation and the recode entry points."""

import pytest

from varrecode.config import build_config
from varrecode.engine.base import AnnotationEngine, AnnotationLine, EngineError
from varrecode.engine.json_output import JsonOutputEngine
from varrecode.recoder import RecodeContext, VariantRecoder, flatten_results


class ScriptedEngine(AnnotationEngine):
    """Engine serving prepared lines, each with the warnings raised for it."""

    def __init__(self, lines, warnings=None, fail_at=None):
        super().__init__()
        self.lines = list(lines)
        self.line_warnings = warnings or {}
        self.fail_at = fail_at
        self.position = 0
        self.calls = []

    def configure(self, config):
        self.calls.append("configure")
        super().configure(config)

    def set_input(self, input_data):
        self.calls.append("set_input")
        super().set_input(input_data)

    def reset(self):
        self.calls.append("reset")
        super().reset()
        self.position = 0

    def finish(self):
        self.calls.append("finish")

    def next_annotation_line(self):
        if self.position == self.fail_at:
            raise EngineError("lookup failed")
        if self.position >= len(self.lines):
            return None
        for message in self.line_warnings.get(self.position, []):
            self.add_warning(message)
        line = self.lines[self.position]
        self.position += 1
        return line


def test_rs699_end_to_end(make_line):
    """Two alleles, IDs and VCF strings attached only where they belong."""
    line = make_line(
        input="rs699",
        alleles=("A", "G"),
        hgvsc="...",
        vcf_string="1-230710048-A-G",
        colocated=[{"id": "rs699", "allele_string": "A/G"}],
    )
    recoder = VariantRecoder(ScriptedEngine([line]), fields="id,hgvsc", vcf_string=True)

    results = recoder.recode_all()

    assert len(results) == 1
    by_allele = results[0]
    assert list(by_allele) == ["A", "G"]
    assert all(entry["input"] == "rs699" for entry in by_allele.values())
    assert by_allele["G"] == {
        "input": "rs699",
        "hgvsc": "...",
        "id": "rs699",
        "vcf_string": "1-230710048-A-G",
    }
    assert by_allele["A"] == {"input": "rs699", "hgvsc": "..."}


def test_alleleless_data_without_consequence_allele_is_not_reported(make_line):
    line = make_line(
        input="rs699",
        alleles=("A", "T"),
        hgvsc="...",
        vcf_string="1-230710048-A-G",
        colocated=[{"id": "rs699", "allele_string": "A/G"}],
    )
    results = VariantRecoder(ScriptedEngine([line]), fields="id,hgvsc", vcf_string=True).recode_all()

    assert list(results[0]) == ["A", "T"]
    assert "id" not in results[0]["T"]
    assert "vcf_string" not in results[0]["T"]


def test_first_value_wins(rs699_result):
    line = AnnotationLine.from_vep_json(rs699_result)
    context = RecodeContext(build_config("hgvsc,hgvsp,hgvsg,spdi"))
    context.merge_line(line)

    entry = context.results["rs699"]["G"]
    assert entry["hgvsc"] == "ENST00000366667.6:c.803T>C"
    assert entry["hgvsp"] == "ENSP00000355627.5:p.Met268Thr"
    assert entry["spdi"] == "NC_000001.11:230710047:A:G"
    assert "hgvsp" not in context.results["rs699"]["A"]


def test_unrequested_fields_are_not_reported(rs699_result):
    line = AnnotationLine.from_vep_json(rs699_result)
    context = RecodeContext(build_config("hgvsg"))
    context.merge_line(line)

    assert context.results["rs699"]["G"] == {
        "input": "rs699",
        "hgvsg": "NC_000001.11:g.230710048A>G",
    }


def test_custom_field_is_read_from_records(make_line):
    line = make_line(alleles=("G",), gene_symbol="AGT")
    context = RecodeContext(build_config("gene_symbol"))
    context.merge_line(line)
    assert context.results["var1"]["G"]["gene_symbol"] == "AGT"


def test_input_order_and_duplicates(make_line):
    """Inputs keep first-seen order and duplicates get a single slot."""
    lines = [
        make_line(input="b", alleles=("T",), hgvsg="g.b1"),
        make_line(input="a", alleles=("C",), hgvsg="g.a"),
        make_line(input="b", alleles=("G",), hgvsg="g.b2"),
    ]
    results = VariantRecoder(ScriptedEngine(lines), fields="hgvsg").recode_all()

    assert len(results) == 2
    assert [next(iter(r.values()))["input"] for r in results] == ["b", "a"]
    assert list(results[0]) == ["T", "G"]
    assert results[0]["T"]["hgvsg"] == "g.b1"
    assert results[0]["G"]["hgvsg"] == "g.b2"


def test_duplicate_line_does_not_overwrite(make_line):
    lines = [
        make_line(input="a", alleles=("C",), hgvsg="first"),
        make_line(input="a", alleles=("C",), hgvsg="second", hgvsc="c."),
    ]
    context = RecodeContext(build_config("hgvsg,hgvsc"))
    for line in lines:
        context.merge_line(line)

    assert context.order == ["a"]
    assert context.results["a"]["C"] == {"input": "a", "hgvsg": "first", "hgvsc": "c."}


def test_warnings_attached_to_their_line_only(make_line):
    lines = [
        make_line(input="a", alleles=("C", "T"), hgvsg="g.a"),
        make_line(input="b", alleles=("G",), hgvsg="g.b"),
    ]
    engine = ScriptedEngine(lines, warnings={0: ["first warning", "second warning"]})
    results = VariantRecoder(engine, fields="hgvsg").recode_all()

    assert results[0]["C"]["warnings"] == ["first warning", "second warning"]
    assert results[0]["T"]["warnings"] == ["first warning", "second warning"]
    assert "warnings" not in results[1]["G"]
    assert engine.current_warnings() == []


def test_input_without_consequences_is_kept(make_line, caplog):
    lines = [
        make_line(input="a", alleles=("C",), hgvsg="g.a"),
        make_line(input="nothing", colocated=[{"id": "rs1", "allele_string": "A/G"}]),
    ]
    engine = ScriptedEngine(lines, warnings={1: ["Could not map"]})

    with caplog.at_level("WARNING", logger="varrecode"):
        results = VariantRecoder(engine).recode_all()

    assert len(results) == 2
    assert results[1] == {"input": "nothing", "warnings": ["Could not map"]}
    assert "No consequences for input nothing" in caplog.text


@pytest.mark.parametrize("empty_first", [True, False])
def test_warnings_of_empty_line_reach_allele_entries(make_line, empty_first):
    """An input seen once with and once without consequences keeps all warnings on its alleles."""
    empty = make_line(input="a")
    with_allele = make_line(input="a", alleles=("C",), hgvsg="g.")
    lines = [empty, with_allele] if empty_first else [with_allele, empty]
    context = RecodeContext(build_config("hgvsg"))

    for line in lines:
        context.merge_line(line, ["w"] if line is empty else [])

    assert context.render() == [{"C": {"input": "a", "hgvsg": "g.", "warnings": ["w"]}}]
    assert context.flatten() == [{"allele": "C", "input": "a", "hgvsg": "g.", "warnings": ["w"]}]


def test_add_warnings_for_input_without_line():
    context = RecodeContext(build_config("hgvsg"))
    context.add_warnings("rs0", ["No variant found with ID 'rs0'"])

    assert context.order == ["rs0"]
    assert context.render() == [{"input": "rs0", "warnings": ["No variant found with ID 'rs0'"]}]


class LeftoverEngine(ScriptedEngine):
    """Engine with warnings that belong to no served line."""

    def __init__(self, lines, leftovers):
        super().__init__(lines)
        self.leftovers = leftovers

    def unmatched_warnings(self):
        return list(self.leftovers)


def test_unmatched_warnings_are_reported_once(make_line, caplog):
    engine = LeftoverEngine(
        [make_line(input="rs699", alleles=("G",), hgvsg="g.")],
        [("rs0", "No variant found with ID 'rs0'"), (None, "general problem")],
    )

    with caplog.at_level("WARNING", logger="varrecode"):
        results = VariantRecoder(engine, fields="hgvsg").recode_all()

    assert results == [
        {"G": {"input": "rs699", "hgvsg": "g."}},
        {"input": "rs0", "warnings": ["No variant found with ID 'rs0'"]},
    ]
    assert caplog.text.count("general problem") == 1


def test_flatten_results(make_line):
    context = RecodeContext(build_config("hgvsg"))
    context.merge_line(make_line(input="a", alleles=("C", "T"), hgvsg="g."))
    context.merge_line(make_line(input="b"))

    rows = context.flatten()
    assert [(r["input"], r["allele"]) for r in rows] == [("a", "C"), ("a", "T"), ("b", None)]
    assert flatten_results(context.render()) == rows


def test_recode_requires_input():
    engine = ScriptedEngine([])
    recoder = VariantRecoder(engine)
    for empty in (None, "", "   "):
        with pytest.raises(ValueError, match="No input data supplied"):
            recoder.recode(empty)
    assert engine.calls == []


def test_recode_resets_engine_before_and_after(make_line):
    engine = ScriptedEngine([make_line(input="rs1", alleles=("G",), hgvsg="g.")])
    recoder = VariantRecoder(engine, fields="hgvsg")

    first = recoder.recode("rs1")
    second = recoder.recode("rs1")

    assert first == second
    assert engine.calls == [
        "configure", "reset", "set_input", "reset",
        "reset", "set_input", "reset",
    ]
    assert engine.input_data is None


def test_recode_all_finishes_engine(make_line):
    engine = ScriptedEngine([make_line(alleles=("G",))])
    VariantRecoder(engine).recode_all()
    assert engine.calls[-1] == "finish"


def test_engine_failure_propagates(make_line):
    engine = ScriptedEngine([make_line(alleles=("G",)), make_line(alleles=("T",))], fail_at=1)
    with pytest.raises(EngineError, match="lookup failed"):
        VariantRecoder(engine).recode_all()
    assert engine.calls[-1] == "finish"


def test_recode_with_json_engine(rs699_result):
    import json

    recoder = VariantRecoder(JsonOutputEngine(), fields="id,hgvsg", vcf_string=True)
    results = recoder.recode(json.dumps(rs699_result))

    assert results == [{
        "A": {"input": "rs699"},
        "G": {
            "input": "rs699",
            "hgvsg": "NC_000001.11:g.230710048A>G",
            "id": "rs699",
            "vcf_string": "1-230710048-A-G",
        },
    }]
