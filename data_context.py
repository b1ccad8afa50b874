#!/usr/bin/env python3
"""
Data Context
Decodes the merge data supplied by the caller and resolves dotted paths in it

Paths follow the same notation the merge data viewer uses:
    step_info.q_companyname.q_companyname
    project.sections[0].name
    project.sections.0.name
A missing segment anywhere along the path resolves to UNDEFINED, which is
not an error.
"""

import json
import math
import re
from typing import Any, Dict, List, Optional, Union

_INDEX_PATTERN = re.compile(r'\[(\d+)\]')
_NUMBER_PATTERN = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


class DataContextError(ValueError):
    """Raised when the data context is not a JSON object"""


class _Undefined:
    """Result of looking up a path that does not exist"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return 'undefined'


UNDEFINED = _Undefined()


def load_context(source: Union[None, str, bytes, Dict]) -> Dict:
    """
    Normalize a data context into a dict

    Args:
        source: None, a mapping, or a JSON document (str/bytes)

    Returns:
        The decoded mapping ({} for None or blank input)

    Raises:
        DataContextError: invalid JSON, or JSON that is not an object
    """
    if source is None:
        return {}

    if isinstance(source, dict):
        return source

    if isinstance(source, (bytes, bytearray)):
        source = source.decode('utf-8')

    if not isinstance(source, str):
        raise DataContextError(f'Unsupported data context type: {type(source).__name__}')

    if not source.strip():
        return {}

    try:
        data = json.loads(source)
    except json.JSONDecodeError as e:
        raise DataContextError(f'Invalid JSON data context: {e}') from e

    if not isinstance(data, dict):
        raise DataContextError('Data context must be a JSON object')

    return data


def split_path(path: str) -> List[str]:
    """
    Split a dotted path into its segments

    Examples:
        'a.b.c' -> ['a', 'b', 'c']
        'items[2].name' -> ['items', '2', 'name']
    """
    if not path:
        return []
    normalized = _INDEX_PATTERN.sub(r'.\1', path)
    return [segment for segment in normalized.split('.') if segment != '']


def resolve_path(data: Any, path: str) -> Any:
    """Look up a dotted path, returning UNDEFINED on any missing segment"""
    segments = split_path(path)
    if not segments:
        return UNDEFINED

    current = data
    for segment in segments:
        if isinstance(current, dict):
            if segment not in current:
                return UNDEFINED
            current = current[segment]
        elif isinstance(current, list):
            if not segment.isdigit() or int(segment) >= len(current):
                return UNDEFINED
            current = current[int(segment)]
        else:
            return UNDEFINED

    return current


def to_host_string(value: Any) -> str:
    """
    String form used by equality comparisons

    Matches how the merge data renders in the document: missing values are
    'undefined', null is 'null', booleans are lower case and whole floats
    lose their '.0'.
    """
    if value is UNDEFINED:
        return 'undefined'
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float):
        if math.isnan(value):
            return 'NaN'
        if math.isinf(value):
            return 'Infinity' if value > 0 else '-Infinity'
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, list):
        return ','.join('' if item is None else to_host_string(item) for item in value)
    if isinstance(value, dict):
        return '[object Object]'
    return str(value)


def to_host_number(value: Any) -> float:
    """
    Numeric form used by ordering comparisons

    Non-numeric input becomes NaN, so every ordering comparison with it is
    False.
    """
    if value is UNDEFINED:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _NUMBER_PATTERN.match(text):
            return float(text)
        return math.nan
    if isinstance(value, list):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_host_number(to_host_string(value[0]) if value[0] is not None else '')
        return math.nan
    return math.nan


def describe_value(value: Any) -> Optional[str]:
    """Short label for diagnostics"""
    if value is UNDEFINED:
        return 'undefined'
    return json.dumps(value, ensure_ascii=False, default=str)[:50]
