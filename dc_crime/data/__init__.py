from .decoder import DecodeResult, decode_table, read_incident_table, split_row
from .normalizer import INCIDENT_COLUMNS, normalize_frame, normalize_record, parse_timestamp, to_incidents
from .census import compute_derived_demographics, load_derived_demographics, load_reference_tables

__all__ = [
    "DecodeResult",
    "decode_table",
    "read_incident_table",
    "split_row",
    "INCIDENT_COLUMNS",
    "normalize_frame",
    "normalize_record",
    "parse_timestamp",
    "to_incidents",
    "compute_derived_demographics",
    "load_derived_demographics",
    "load_reference_tables",
]
