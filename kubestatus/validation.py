"""
Input validation and sanitization for Kubestatus.

This module provides validation functions for user inputs and configuration
values: label selectors, resource targets, sort keys, output formats and
server settings.

Key Functions:
- validate_label_selector: Checks label selector syntax
- parse_target: Splits a ``type/name`` target and normalizes the type
- normalize_resource_type: Maps kind aliases (deploy, sts, ds, po) to a kind
- validate_sort_key / validate_output_format: Checks CLI choices
- validate_port / validate_host / validate_max_workers: Checks server settings

Validation functions raise InvalidSelectorError or ConfigurationError with
descriptive messages when validation fails.

Example:
    ```python
    try:
        selector = validate_label_selector("app=web,tier in (frontend,backend)")
        kind, name = parse_target("deploy/web")
    except (InvalidSelectorError, ConfigurationError) as e:
        print(f"Validation failed: {e}")
    ```
"""

import re
from typing import List, Optional, Tuple

from .constants import OUTPUT_FORMATS, SORT_KEYS
from .exceptions import ConfigurationError, InvalidSelectorError

RESOURCE_TYPE_ALIASES = {
    "pod": "Pod", "pods": "Pod", "po": "Pod",
    "deployment": "Deployment", "deployments": "Deployment", "deploy": "Deployment",
    "statefulset": "StatefulSet", "statefulsets": "StatefulSet", "sts": "StatefulSet",
    "daemonset": "DaemonSet", "daemonsets": "DaemonSet", "ds": "DaemonSet",
    "job": "Job", "jobs": "Job",
}

_NAME = r"[A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?"
_KEY = rf"([a-z0-9]([-a-z0-9.]{{0,251}}[a-z0-9])?/)?{_NAME}"
_VALUE = rf"({_NAME})?"

_EXISTS_RE = re.compile(rf"^!?\s*{_KEY}$")
_EQUALITY_RE = re.compile(rf"^{_KEY}\s*(=|==|!=)\s*{_VALUE}$")
_SET_RE = re.compile(rf"^{_KEY}\s+(in|notin)\s*\((?P<values>[^()]*)\)$")
_VALUE_RE = re.compile(rf"^{_VALUE}$")


def _split_requirements(selector: str) -> List[str]:
    """Split on commas that are not inside a parenthesized value set."""
    parts, depth, current = [], 0, []
    for ch in selector:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise InvalidSelectorError(f"invalid selector: unbalanced ')' in {selector!r}", name=selector)
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    if depth != 0:
        raise InvalidSelectorError(f"invalid selector: unbalanced '(' in {selector!r}", name=selector)
    parts.append("".join(current))
    return [p.strip() for p in parts]


def validate_label_selector(selector: str) -> str:
    """
    Validate label selector syntax.

    Supports equality (``=``, ``==``, ``!=``), set (``in``, ``notin``) and
    existence (``key``, ``!key``) requirements separated by commas.

    Returns:
        str: The selector with surrounding whitespace removed

    Raises:
        InvalidSelectorError: If the selector is empty or malformed
    """
    if not selector or not selector.strip():
        raise InvalidSelectorError("invalid selector: selector cannot be empty", name=selector)
    selector = selector.strip()
    for requirement in _split_requirements(selector):
        if not requirement:
            raise InvalidSelectorError(f"invalid selector: empty requirement in {selector!r}", name=selector)
        if _EQUALITY_RE.match(requirement) or _EXISTS_RE.match(requirement):
            continue
        set_match = _SET_RE.match(requirement)
        if set_match:
            values = [v.strip() for v in set_match.group("values").split(",")]
            if any(values) and all(_VALUE_RE.match(v) for v in values):
                continue
        raise InvalidSelectorError(
            f"invalid selector: cannot parse requirement {requirement!r} in {selector!r}", name=selector
        )
    return selector


def normalize_resource_type(resource_type: str) -> str:
    """
    Map a resource type or alias to its kind.

    Raises:
        ConfigurationError: If the type is not supported
    """
    kind = RESOURCE_TYPE_ALIASES.get((resource_type or "").strip().lower())
    if kind is None:
        raise ConfigurationError(f"unsupported resource type: {resource_type}")
    return kind


def parse_target(target: str, resource_type: Optional[str] = None) -> Tuple[Optional[str], str]:
    """
    Split a target into (kind, name).

    A target of the form ``type/name`` uses the explicit type; otherwise
    ``resource_type`` is used when given, and the kind is None (auto-detect)
    when neither is present.

    Raises:
        ConfigurationError: If the name is empty or the type is unsupported
    """
    target = (target or "").strip()
    if "/" in target:
        type_part, name = target.split("/", 1)
        kind = normalize_resource_type(type_part)
    else:
        name = target
        kind = normalize_resource_type(resource_type) if resource_type else None
    if not name:
        raise ConfigurationError("resource name is required")
    return kind, name


def validate_sort_key(sort_by: str) -> str:
    key = (sort_by or "").strip().lower()
    if key not in SORT_KEYS:
        raise ConfigurationError(f"Sort key must be one of {', '.join(SORT_KEYS)}, got: {sort_by}")
    return key


def validate_output_format(output: str) -> str:
    fmt = (output or "").strip().lower()
    if fmt not in OUTPUT_FORMATS:
        raise ConfigurationError(f"Output format must be one of {', '.join(OUTPUT_FORMATS)}, got: {output}")
    return fmt


def validate_max_workers(value: int) -> int:
    """Max concurrent per-pod tasks; must be a positive integer."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ConfigurationError(f"Max workers must be a positive integer, got: {value}")
    return value


def validate_port(port: int) -> int:
    """
    Validate port number for server binding.

    Raises:
        ConfigurationError: If port is not an integer or outside 1-65535
    """
    if not isinstance(port, int) or port < 1 or port > 65535:
        raise ConfigurationError(f"Port must be an integer between 1 and 65535, got: {port}")
    return port


def validate_host(host: str) -> str:
    """
    Validate host string for server binding.

    Raises:
        ConfigurationError: If host is empty or too long
    """
    if not host or not host.strip():
        raise ConfigurationError("Host cannot be empty")

    host = host.strip()

    if len(host) > 253:  # DNS name length limit
        raise ConfigurationError("Host name too long")

    return host
