import re
import copy
import logging
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'output': {
        'class_diagram': 'output/uml-diagram',
        'component_diagram': '${output.class_diagram}-components',
        'sequence_diagram': 'output/sequence-diagram',
    },
    'analysis': {
        'source_suffix': '.java',
        'trusted_prefixes': ['java.lang.', 'java.util.'],
        'show_progress': True,
    },
    'sequence': {
        'max_depth': 5,
        'actor': 'User',
    },
    'plantuml': {
        'jar_path': None,
        'server_url': None,
        'timeout': 60,
        'formats': ['png', 'svg'],
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}

_PLACEHOLDER = re.compile(r"\$\{([^{}]+)\}")
MAX_RESOLVE_ROUNDS = 20


def merge_dict(dict1, dict2):
    """Merge dict2 into dict1 recursively. None values in dict2 do not override."""
    for key, value in dict2.items():
        if key in dict1 and isinstance(dict1[key], dict) and isinstance(value, dict):
            merge_dict(dict1[key], value)
        elif value is not None or key not in dict1:
            dict1[key] = value
    return dict1


def lookup(config: Dict[str, Any], dotted_key: str) -> Any:
    """config['a']['b'] for 'a.b'; KeyError when missing."""
    value = config
    for part in dotted_key.split('.'):
        if not isinstance(value, dict) or part not in value:
            raise KeyError(dotted_key)
        value = value[part]
    return value


def _replace_placeholders(config, node):
    """One substitution round. Returns (node, changed)."""
    if isinstance(node, dict):
        changed = False
        for key, value in node.items():
            node[key], c = _replace_placeholders(config, value)
            changed = changed or c
        return node, changed
    if isinstance(node, list):
        results = [_replace_placeholders(config, item) for item in node]
        return [r[0] for r in results], any(r[1] for r in results)
    if isinstance(node, str) and '${' in node:
        def substitute(match):
            try:
                value = lookup(config, match.group(1))
            except KeyError:
                return match.group(0)
            return match.group(0) if isinstance(value, (dict, list)) else str(value)
        replaced = _PLACEHOLDER.sub(substitute, node)
        return replaced, replaced != node
    return node, False


def resolve_placeholders(config: Dict[str, Any]) -> Dict[str, Any]:
    """Replace ${section.key} references until nothing changes."""
    for _ in range(MAX_RESOLVE_ROUNDS):
        config, changed = _replace_placeholders(config, config)
        if not changed:
            break
    else:
        logger.warning("Configuration has not been fully resolved, some variables may be unresolved")
    return config


def load_config(config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the effective configuration.

    Args:
        config_path: Optional YAML file merged over the defaults.
        overrides: Optional mapping merged last (e.g. from command line flags).

    Returns:
        The merged configuration with placeholders resolved.

    Raises:
        OSError: If config_path cannot be read.
        ValueError: If the YAML document is not a mapping.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        merge_dict(config, data)
    if overrides:
        merge_dict(config, overrides)
    return resolve_placeholders(config)
