"""Policy document loader.

Loads the index management document (policies plus mappings) from a
YAML file and validates it against the IndexManagementSpec schema.
Validation is structural only: a mapping may reference a policy that
does not exist, in which case it simply yields no derived objects.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from index_lifecycle.errors import PolicyLoadError
from index_lifecycle.models import IndexManagementSpec


def parse_index_management(raw: object, source: str = "<memory>") -> IndexManagementSpec:
    """Validate an already-parsed YAML/JSON document."""
    if raw is None:
        return IndexManagementSpec()
    if not isinstance(raw, dict):
        raise PolicyLoadError(
            "index management document must be a mapping",
            source=source, found=type(raw).__name__,
        )
    try:
        spec = IndexManagementSpec(**raw)
    except (ValidationError, TypeError) as e:
        raise PolicyLoadError(f"invalid index management document: {e}", source=source) from e

    seen: set[str] = set()
    for policy in spec.policies:
        if policy.name in seen:
            raise PolicyLoadError("duplicate policy name", source=source, policy=policy.name)
        seen.add(policy.name)

    seen = set()
    for mapping in spec.mappings:
        if mapping.name in seen:
            raise PolicyLoadError("duplicate mapping name", source=source, mapping=mapping.name)
        seen.add(mapping.name)

    return spec


def load_index_management(path: str | Path) -> IndexManagementSpec:
    """Load and validate an index management YAML file.

    Raises PolicyLoadError on any failure.
    """
    path = Path(path)
    if not path.is_file():
        raise PolicyLoadError("index management file not found", path=str(path))

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise PolicyLoadError(f"invalid YAML: {e}", path=str(path)) from e

    return parse_index_management(raw, source=str(path))
