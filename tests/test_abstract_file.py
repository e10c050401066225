"""Tests for abstract file reading and writing."""

import json

import pytest
import yaml

from aistory.io.abstract_file import (
    AbstractFileError,
    AbstractRecord,
    dump_json,
    dump_yaml,
    parse_abstract,
    read_abstract_file,
    write_abstract_file,
)

ABSTRACT = "Setting: a lighthouse.\nCharacters: Mara.\nChapter 1: The storm.\nChapter 2: The ship."


def test_written_yaml_reads_back_with_signature(tmp_path):
    path = write_abstract_file(tmp_path / "abstract-x.yaml", ABSTRACT, b"\x00\xffsig")
    record = read_abstract_file(path)
    assert record.abstract == ABSTRACT
    assert record.thought_signature == b"\x00\xffsig"


def test_signature_stored_as_binary_tag(tmp_path):
    path = write_abstract_file(tmp_path / "abstract-x.yaml", ABSTRACT, b"sig")
    content = path.read_text(encoding="utf-8")
    assert "!!binary" in content
    assert content.startswith("abstract: |")


def test_empty_signature_is_omitted(tmp_path):
    path = write_abstract_file(tmp_path / "abstract-x.yaml", ABSTRACT)
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data == {"abstract": ABSTRACT}


def test_any_extension_is_written_as_yaml(tmp_path):
    path = write_abstract_file(tmp_path / "plan.json", ABSTRACT, b"sig")
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data["abstract"] == ABSTRACT


def test_write_creates_parent_directories(tmp_path):
    path = write_abstract_file(tmp_path / "nested" / "dir" / "abstract-x.yaml", ABSTRACT)
    assert path.exists()


def test_empty_abstract_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        write_abstract_file(tmp_path / "abstract-x.yaml", "   \n")
    assert not (tmp_path / "abstract-x.yaml").exists()


def test_json_file_with_base64_signature(tmp_path):
    path = tmp_path / "abstract-x.json"
    path.write_text(dump_json(AbstractRecord(ABSTRACT, b"\x01\x02")), encoding="utf-8")
    record = read_abstract_file(path)
    assert record == AbstractRecord(ABSTRACT, b"\x01\x02")


def test_json_without_signature(tmp_path):
    path = tmp_path / "abstract-x.json"
    path.write_text(json.dumps({"abstract": ABSTRACT}), encoding="utf-8")
    assert read_abstract_file(path).thought_signature == b""


def test_yaml_string_signature_is_encoded():
    record = parse_abstract("abstract: plan\nthought_signature: abc\n", "yaml")
    assert record.thought_signature == b"abc"


def test_unknown_extension_is_plain_text(tmp_path):
    path = tmp_path / "abstract-x.txt"
    path.write_text("abstract: looks like yaml", encoding="utf-8")
    record = read_abstract_file(path)
    assert record.abstract == "abstract: looks like yaml"
    assert record.thought_signature == b""


def test_malformed_json_falls_back_to_plain_text(tmp_path):
    path = tmp_path / "abstract-x.json"
    path.write_text("{broken", encoding="utf-8")
    assert read_abstract_file(path).abstract == "{broken"


def test_yaml_without_abstract_key_falls_back_to_plain_text(tmp_path):
    path = tmp_path / "abstract-x.yaml"
    path.write_text("plan: something\n", encoding="utf-8")
    assert read_abstract_file(path).abstract == "plan: something\n"


def test_bad_base64_signature_is_rejected():
    with pytest.raises(ValueError):
        parse_abstract(json.dumps({"abstract": "plan", "thought_signature": "not base64!"}), "json")


def test_missing_file_raises(tmp_path):
    with pytest.raises(AbstractFileError):
        read_abstract_file(tmp_path / "absent.yaml")


def test_dump_yaml_keeps_key_order():
    text = dump_yaml(AbstractRecord("one line", b"s"))
    assert text.index("abstract") < text.index("thought_signature")


def test_non_utf8_plain_text_is_read_with_replacements(tmp_path):
    path = tmp_path / "plan.txt"
    path.write_bytes("Café at the lighthouse".encode("latin-1"))
    record = read_abstract_file(path)
    assert record.abstract == "Caf\ufffd at the lighthouse"


def test_non_utf8_yaml_is_still_parsed(tmp_path):
    path = tmp_path / "abstract-x.yaml"
    path.write_bytes(b"abstract: caf\xe9\n")
    record = read_abstract_file(path)
    assert record.abstract == "caf\ufffd"


def test_windows_newlines_are_normalised(tmp_path):
    path = tmp_path / "plan.txt"
    path.write_bytes(b"line one\r\nline two")
    assert read_abstract_file(path).abstract == "line one\nline two"
