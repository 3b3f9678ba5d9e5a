# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML

from tradefed.setter import class_path, get_option_table


def _yaml_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (set, frozenset)):
        return sorted((_yaml_safe(v) for v in value), key=str)
    if isinstance(value, (list, tuple)):
        return [_yaml_safe(v) for v in value]
    if isinstance(value, dict):
        return {_yaml_safe(k): _yaml_safe(v) for k, v in value.items()}
    return value


def object_options(obj: Any) -> Dict[str, Any]:
    """current value of every option of `obj`, keyed by option name."""
    return {
        decl.option.name: _yaml_safe(getattr(obj, decl.attr_name, None))
        for decl in get_option_table(type(obj))
    }


def configuration_to_dict(configuration) -> Dict[str, List[Dict[str, Any]]]:
    """{role: [{class: dotted path, options: {name: value}}]} in declaration order."""
    result = {}
    for role, objects in configuration.items():
        result[role] = [
            {"class": class_path(type(obj)), "options": object_options(obj)} for obj in objects
        ]
    return result


def _make_yaml() -> YAML:
    yaml = YAML(typ='rt')
    yaml.default_flow_style = False
    yaml.allow_unicode = True
    return yaml


def dump_configuration(configuration, stream=None) -> Optional[str]:
    """renders the configuration as yaml. returns the text when no stream is given."""
    data = {
        "name": configuration.name,
        "description": configuration.description,
        "objects": configuration_to_dict(configuration),
    }
    yaml = _make_yaml()
    if stream is None:
        string_stream = StringIO()
        yaml.dump(data, string_stream)
        return string_stream.getvalue()
    yaml.dump(data, stream)
    return None
