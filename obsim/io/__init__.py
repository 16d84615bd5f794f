from .records import (
    CaseRecord,
    RecordFormatError,
    format_record,
    format_records,
    format_text,
    parse_record,
    parse_records,
    read_records,
    write_records,
)

__all__ = [
    "CaseRecord",
    "RecordFormatError",
    "format_record",
    "format_records",
    "format_text",
    "parse_record",
    "parse_records",
    "read_records",
    "write_records",
]
