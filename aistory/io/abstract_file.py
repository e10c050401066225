"""Reading and writing abstract files (YAML, JSON, or plain text)."""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}
JSON_SUFFIXES = {".json"}


class AbstractFileError(OSError):
    """An abstract file could not be read or written."""


@dataclass
class AbstractRecord:
    """Abstract text plus the thought signature of the call that produced it."""

    abstract: str
    thought_signature: bytes = b""


class _AbstractDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, value: str):
    style = "|" if "\n" in value else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", value, style=style)


_AbstractDumper.add_representer(str, _represent_str)


def _to_mapping(record: AbstractRecord) -> dict:
    data: dict = {"abstract": record.abstract}
    if record.thought_signature:
        data["thought_signature"] = bytes(record.thought_signature)
    return data


def dump_yaml(record: AbstractRecord) -> str:
    """Serialize to YAML; the signature is written as !!binary."""
    return yaml.dump(
        _to_mapping(record),
        Dumper=_AbstractDumper,
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )


def dump_json(record: AbstractRecord) -> str:
    """Serialize to JSON; the signature is written as base64 text."""
    data: dict = {"abstract": record.abstract}
    if record.thought_signature:
        data["thought_signature"] = base64.b64encode(record.thought_signature).decode("ascii")
    return json.dumps(data, indent=2, ensure_ascii=False)


def write_abstract_file(
    output_path: Union[str, Path], abstract: str, thought_signature: Optional[bytes] = None
) -> Path:
    """Write the abstract as YAML, whatever extension the path has."""
    if not abstract.strip():
        raise ValueError("refusing to write an empty abstract")
    path = Path(output_path)
    record = AbstractRecord(abstract=abstract, thought_signature=thought_signature or b"")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_yaml(record), encoding="utf-8")
    except OSError as e:
        raise AbstractFileError(f"error saving abstract to file '{path}': {e}") from e
    logger.info(f"Abstract saved to: {path}")
    return path


def _signature_from_yaml(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    raise ValueError(f"unexpected thought_signature type {type(value).__name__}")


def _signature_from_json(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return base64.b64decode(value, validate=True)
    raise ValueError(f"unexpected thought_signature type {type(value).__name__}")


def parse_abstract(content: str, fmt: str) -> AbstractRecord:
    """Parse YAML or JSON content. Raises ValueError on any malformed input."""
    if fmt == "yaml":
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ValueError(str(e)) from e
        decode = _signature_from_yaml
    elif fmt == "json":
        data = json.loads(content)
        decode = _signature_from_json
    else:
        raise ValueError(f"unknown abstract format '{fmt}'")

    if not isinstance(data, dict) or not isinstance(data.get("abstract"), str):
        raise ValueError("expected a mapping with an 'abstract' string")
    try:
        signature = decode(data.get("thought_signature"))
    except binascii.Error as e:
        raise ValueError(f"invalid thought_signature: {e}") from e
    return AbstractRecord(abstract=data["abstract"], thought_signature=signature)


def _format_for(path: Path) -> Optional[str]:
    suffix = path.suffix.lower()
    if suffix in YAML_SUFFIXES:
        return "yaml"
    if suffix in JSON_SUFFIXES:
        return "json"
    return None


def read_abstract_file(abstract_path: Union[str, Path]) -> AbstractRecord:
    """Read an abstract file, falling back to plain text when it cannot be parsed."""
    path = Path(abstract_path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise AbstractFileError(f"failed to read abstract file '{path}': {e}") from e
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning(f"Abstract file '{path}' is not valid UTF-8 ({e}). Undecodable bytes are replaced.")
        content = raw.decode("utf-8", errors="replace")
    # same newline handling as text-mode reads
    content = content.replace("\r\n", "\n").replace("\r", "\n")

    fmt = _format_for(path)
    if fmt is None:
        logger.info(f"Abstract file '{path}' is not YAML or JSON. Treating content as plain text abstract.")
        return AbstractRecord(abstract=content)

    try:
        record = parse_abstract(content, fmt)
    except ValueError as e:
        logger.warning(f"Failed to parse abstract file '{path}' as {fmt.upper()}: {e}. Treating as plain text.")
        return AbstractRecord(abstract=content)

    logger.info(f"Parsed abstract content from {fmt.upper()} file '{path}'.")
    return record
