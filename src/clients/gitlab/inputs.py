from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import quote


def encode_segment(value: Any) -> str:
    # GitLab expects namespaced paths as a single segment ("group/app" -> "group%2Fapp")
    return quote(str(value), safe="")


def join_labels(labels: Optional[Iterable[str]]) -> Optional[str]:
    if labels is None:
        return None
    return ",".join(labels)


def compact(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop unset (None) fields so GitLab applies its own defaults."""
    return {k: v for k, v in values.items() if v is not None}


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten(prefix: str, value: Any, out: List[Tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{prefix}[{key}]", item, out)
        return
    out.append((prefix, _form_value(value)))


def position_form_fields(position: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Flatten a diff position into `position[...]` form fields, skipping unset keys."""
    out: List[Tuple[str, str]] = []
    _flatten("position", position, out)
    return out
