"""
Utilities package for shared helper functions.
"""

from utils.json_repair import (
    RecoveryResult,
    extract_json_candidates,
    repair_json_text,
    recover_json,
    parse_llm_json,
)
from utils.numbers import round_half_up, is_number
from utils.timeutils import utc_now, to_iso, parse_timestamp

__all__ = [
    'RecoveryResult',
    'extract_json_candidates',
    'repair_json_text',
    'recover_json',
    'parse_llm_json',
    'round_half_up',
    'is_number',
    'utc_now',
    'to_iso',
    'parse_timestamp',
]
