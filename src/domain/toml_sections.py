"""Mapping layer between flat ViewerSettings fields and sectioned TOML format.

ViewerSettings remains a flat Pydantic model. This module provides two functions:
- flat_to_sectioned(): flat dict → sectioned dict (for TOML save)
- sectioned_to_flat(): sectioned dict → flat dict (for TOML load)
"""

from __future__ import annotations

# {section_name: {flat_field_name: short_name_in_toml}}
SECTION_MAP: dict[str, dict[str, str]] = {
    'network': {
        'max_conns_per_host': 'max_conns_per_host',
        'user_agent': 'user_agent',
        'http_timeout_s': 'timeout_s',
    },
    'paths': {
        'cache_dir': 'cache',
        'maps_dir': 'maps',
    },
    'viewer': {
        'default_map': 'default_map',
    },
}

# Reverse index: flat_field → (section, short_name)
_FLAT_TO_SECTION: dict[str, tuple[str, str]] = {}
for _section, _fields in SECTION_MAP.items():
    for _flat, _short in _fields.items():
        _FLAT_TO_SECTION[_flat] = (_section, _short)

# Reverse index: (section, short_name) → flat_field
_SECTION_TO_FLAT: dict[str, dict[str, str]] = {}
for _section, _fields in SECTION_MAP.items():
    _SECTION_TO_FLAT[_section] = {v: k for k, v in _fields.items()}


def flat_to_sectioned(flat: dict) -> dict:
    """Convert flat ViewerSettings dict to sectioned dict for TOML output.

    ``None`` values are dropped because TOML has no null.
    """
    result: dict = {}
    for key, value in flat.items():
        if value is None:
            continue
        section, short_name = _FLAT_TO_SECTION.get(key, ('viewer', key))
        result.setdefault(section, {})[short_name] = value
    return result


def sectioned_to_flat(data: dict) -> dict:
    """Convert sectioned TOML dict to flat dict for ViewerSettings validation."""
    flat: dict = {}
    for key, value in data.items():
        if isinstance(value, dict) and key in _SECTION_TO_FLAT:
            # Known section: expand short names to flat names
            mapping = _SECTION_TO_FLAT[key]
            for short_name, field_value in value.items():
                flat[mapping.get(short_name, short_name)] = field_value
        elif isinstance(value, dict):
            # Unknown section: pass through keys as-is
            flat.update(value)
        else:
            # Top-level key
            flat[key] = value
    return flat
