"""Readers for JSON request bodies. A value of the wrong type is a 400."""
from flask import abort


def text_field(data, key, label=None):
    """Stripped string for `key`, '' when absent"""

    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        abort(400, description=f'{label or key} must be text')
    return value.strip()


def list_field(data, key, label=None):
    """List of strings for `key`; a comma separated string is split"""

    value = data.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(',') if v.strip()]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        abort(400, description=f'{label or key} must be a list of text values')
    return [v.strip() for v in value if v.strip()]


def id_field(data, key, label=None):
    """Positive integer id for `key`, None when absent"""

    value = data.get(key)
    if value is None or value == '':
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        abort(400, description=f'{label or key} must be a valid id')
    return value
