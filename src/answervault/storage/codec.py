# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Serialization of vault files.

YAML is used for answers, the evidence collection and mappings; JSON for
questionnaires. Dates stay strings on load (``last_reviewed: 2025-01-01``
is the string "2025-01-01", not a ``datetime.date``) so a document read
and written back is unchanged.
"""

from __future__ import annotations

import json
from typing import Any

import yaml

from answervault.lib.errors import MalformedDocumentError

YAML_LINE_WIDTH = 120

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _VaultLoader(yaml.SafeLoader):
    """SafeLoader without implicit timestamp resolution."""


_VaultLoader.yaml_implicit_resolvers = {
    first_char: [
        (tag, pattern) for tag, pattern in resolvers if tag != _TIMESTAMP_TAG
    ]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def dump_yaml(data: Any) -> str:
    return yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        width=YAML_LINE_WIDTH,
        default_flow_style=False,
    )


def load_yaml(raw: str, path: str) -> Any:
    """Parse YAML text read from ``path``.

    Raises:
        MalformedDocumentError: The text is not valid YAML.
    """
    try:
        return yaml.load(raw, Loader=_VaultLoader)  # noqa: S506 - SafeLoader subclass
    except yaml.YAMLError as e:
        raise MalformedDocumentError(path, str(e)) from e


def dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def load_json(raw: str, path: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(path, str(e)) from e


__all__ = ["YAML_LINE_WIDTH", "dump_json", "dump_yaml", "load_json", "load_yaml"]
