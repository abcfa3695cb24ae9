from pathlib import Path

import pandas as pd

from specbook.model import PART, SECTION
from specbook.structure import build_structure, classify_node_kind, load_structure, parse_required


def test_parse_required_only_accepts_true():
    assert parse_required("true") is True
    assert parse_required(" TRUE ") is True
    assert parse_required("yes") is False
    assert parse_required("") is False
    assert parse_required(None) is False


def test_classify_node_kind_explicit_and_inferred():
    assert classify_node_kind("part", "G") == (PART, False)
    assert classify_node_kind("SECTION", "G.1") == (SECTION, False)
    assert classify_node_kind("", "G.1") == (SECTION, True)
    assert classify_node_kind("chapter", "G") == (PART, True)


def test_build_structure_attaches_sections_to_parts():
    rows = [
        {"id": "G.1", "type": "Section", "title": "Context", "required": "true"},
        {"id": "G", "type": "Part", "title": "Goals", "required": "false"},
        {"id": "G.2", "type": "Section", "title": "Current"},
        {"id": "S", "type": "Part", "title": "System"},
    ]

    structure = build_structure(rows)

    assert [p.id for p in structure.parts] == ["G", "S"]
    goals = structure.parts[0]
    assert [c.id for c in goals.children] == ["G.1", "G.2"]
    assert goals.children[0].required is True
    assert structure.get("G.2").title == "Current"
    assert structure.warnings == []


def test_build_structure_infers_missing_type_with_warning():
    structure = build_structure([{"id": "E", "title": "Environment"}, {"id": "E.1", "title": "Glossary"}])

    assert structure.get("E").is_part
    assert structure.get("E.1").is_section
    assert len(structure.warnings) == 2
    assert all("inferred" in w for w in structure.warnings)


def test_orphan_section_is_left_out_of_hierarchy():
    structure = build_structure(
        [
            {"id": "G", "type": "Part", "title": "Goals"},
            {"id": "X.1", "type": "Section", "title": "Lost", "required": "true"},
        ]
    )

    assert [c.id for c in structure.parts[0].children] == []
    assert "X.1" in structure.index
    assert any("X.1" in w and "no parent" in w for w in structure.warnings)


def test_nested_section_attaches_to_enclosing_section():
    structure = build_structure(
        [
            {"id": "S", "type": "Part", "title": "System"},
            {"id": "S.1", "type": "Section", "title": "Components"},
            {"id": "S.1.2", "type": "Section", "title": "Sensors"},
            {"id": "S.3.1", "type": "Section", "title": "Falls back"},
        ]
    )

    components = structure.get("S.1")
    assert [c.id for c in components.children] == ["S.1.2"]
    # S.3 is not declared, so S.3.1 falls back to the part itself.
    assert [c.id for c in structure.parts[0].children] == ["S.1", "S.3.1"]
    assert [n.id for n in structure.walk()] == ["S", "S.1", "S.1.2", "S.3.1"]


def test_duplicate_structure_ids_keep_first_definition():
    structure = build_structure(
        [
            {"id": "G", "type": "Part", "title": "Goals"},
            {"id": "G", "type": "Part", "title": "Again"},
        ]
    )

    assert len(structure.parts) == 1
    assert structure.get("G").title == "Goals"
    assert any("duplicate" in w for w in structure.warnings)


def test_load_structure_from_csv(tmp_path: Path):
    path = tmp_path / "structure.csv"
    pd.DataFrame(
        [
            {"ID": "G", "Type": "Part", "Title": "Goals", "Description": "Why", "Required": ""},
            {"ID": "G.1", "Type": "section", "Title": "Context", "Description": "", "Required": "TRUE"},
        ]
    ).to_csv(path, index=False)

    structure = load_structure(path)

    assert structure.get("G").description == "Why"
    assert structure.get("G.1").required is True
    assert structure.parts[0].children[0].id == "G.1"
