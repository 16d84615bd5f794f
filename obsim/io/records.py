"""
Annotated Sequence Records
===========================
FASTA-style text output for classified cases.

Each record is a header line followed by one line of genome symbols::

    >case000003 time=4.25 parent=case000001 label=index mutations=12:A>G@3.5;40:C>T@4.0
    ACGTACGT...

Only index and singleton cases have records. The root has an empty
``parent=`` field and an unmutated genome has an empty ``mutations=`` field.
Times are written with the shortest repr that parses back to the same float.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from obsim.genome.genome import Mutation, decode_mutations, encode_mutations
from obsim.lineage.tree import Case
from obsim.surveillance.classifier import Label

HEADER_PREFIX = ">"
CASE_PREFIX = "case"
HEADER_FIELDS = ("time", "parent", "label", "mutations")


class RecordFormatError(ValueError):
    pass


@dataclass(frozen=True)
class CaseRecord:
    case_id: int
    infection_time: float
    parent_id: Optional[int]
    label: Label
    mutations: Tuple[Mutation, ...]
    sequence: str

    @classmethod
    def from_case(cls, case: Case) -> "CaseRecord":
        if case.label is None:
            raise ValueError(f"case {case.case_id} has not been classified")
        if case.label is Label.UNSAMPLED:
            raise ValueError(f"case {case.case_id} is unsampled and has no record")
        return cls(
            case_id=case.case_id,
            infection_time=float(case.infection_time),
            parent_id=case.parent_id,
            label=case.label,
            mutations=case.genome.mutations,
            sequence=case.genome.sequence,
        )


def _case_name(case_id: Optional[int]) -> str:
    return "" if case_id is None else f"{CASE_PREFIX}{case_id:06d}"


def _case_id(name: str) -> int:
    if not name.startswith(CASE_PREFIX) or not name[len(CASE_PREFIX):].isdigit():
        raise RecordFormatError(f"Malformed case name {name!r}")
    return int(name[len(CASE_PREFIX):])


def format_record(case: Case) -> str:
    record = CaseRecord.from_case(case)
    header = (
        f"{HEADER_PREFIX}{_case_name(record.case_id)}"
        f" time={record.infection_time!r}"
        f" parent={_case_name(record.parent_id)}"
        f" label={record.label.value}"
        f" mutations={encode_mutations(record.mutations)}"
    )
    return f"{header}\n{record.sequence}"


def format_records(cases: Iterable[Case]) -> List[str]:
    """Records for the sampled cases. Unsampled cases are skipped."""
    return [format_record(case) for case in cases if case.label is not Label.UNSAMPLED]


def format_text(cases: Iterable[Case]) -> str:
    records = format_records(cases)
    return "\n".join(records) + "\n" if records else ""


def parse_record(text: str) -> CaseRecord:
    lines = text.strip("\n").split("\n")
    if len(lines) != 2:
        raise RecordFormatError(f"Expected a header and a sequence line, got {len(lines)} lines")
    header, sequence = lines
    if not header.startswith(HEADER_PREFIX):
        raise RecordFormatError(f"Header must start with {HEADER_PREFIX!r}: {header!r}")

    tokens = header[len(HEADER_PREFIX):].split(" ")
    if len(tokens) != 1 + len(HEADER_FIELDS):
        raise RecordFormatError(f"Unexpected header layout: {header!r}")

    fields = {}
    for token, expected in zip(tokens[1:], HEADER_FIELDS):
        key, sep, value = token.partition("=")
        if key != expected or not sep:
            raise RecordFormatError(f"Expected field {expected!r}, got {token!r}")
        fields[key] = value

    try:
        infection_time = float(fields["time"])
        label = Label(fields["label"])
        mutations = decode_mutations(fields["mutations"])
    except ValueError as exc:
        raise RecordFormatError(str(exc)) from exc
    if label is Label.UNSAMPLED:
        raise RecordFormatError(f"Unsampled cases have no records: {header!r}")

    return CaseRecord(
        case_id=_case_id(tokens[0]),
        infection_time=infection_time,
        parent_id=_case_id(fields["parent"]) if fields["parent"] else None,
        label=label,
        mutations=mutations,
        sequence=sequence,
    )


def parse_records(text: str) -> List[CaseRecord]:
    records = []
    chunk: List[str] = []
    for line in text.splitlines():
        if not line:
            continue
        if line.startswith(HEADER_PREFIX) and chunk:
            records.append(parse_record("\n".join(chunk)))
            chunk = []
        chunk.append(line)
    if chunk:
        records.append(parse_record("\n".join(chunk)))
    return records


def write_records(path: str | Path, cases: Iterable[Case]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_text(cases))
    return path


def read_records(path: str | Path) -> List[CaseRecord]:
    return parse_records(Path(path).read_text())
