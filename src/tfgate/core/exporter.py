#!/usr/bin/env python3
"""
TFGATE EXPORTER - Manifest Round-Trip Writer
--------------------------------------------
Serializes store objects back to YAML with Kubernetes-style key order,
keeping comments of documents that were loaded in round-trip mode.

Author: TFGate Team
Date: 2026-10-18
"""

import io
from typing import Any, Dict, List
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap


class ManifestExporter:
    """
    Converts CommentedMaps (or plain dicts) back to YAML strings.
    """

    def __init__(self):
        self.yaml = YAML(typ='rt')
        self.yaml.preserve_quotes = True
        self.yaml.indent(mapping=2, sequence=4, offset=2)
        self.yaml.width = 4096
        self.preferred_order = ["apiVersion", "kind", "metadata", "type", "spec", "data",
                                "stringData", "status"]

    def to_commented(self, data: Any) -> Any:
        """Recursively lifts plain dicts into CommentedMaps so they sort and dump alike."""
        if isinstance(data, CommentedMap):
            return data
        if isinstance(data, dict):
            cm = CommentedMap()
            for key, value in data.items():
                cm[key] = self.to_commented(value)
            return cm
        if isinstance(data, list):
            return [self.to_commented(item) for item in data]
        return data

    def _get_sorted_map(self, data: Any) -> Any:
        if not isinstance(data, CommentedMap):
            return data

        sorted_map = CommentedMap()
        if hasattr(data, 'ca') and data.ca.comment:
            sorted_map.ca.comment = data.ca.comment

        keys = list(data.keys())

        def sort_logic(key):
            if key in self.preferred_order:
                return self.preferred_order.index(key)
            return len(self.preferred_order) + keys.index(key)

        for key in sorted(keys, key=sort_logic):
            value = data[key]
            if isinstance(value, CommentedMap):
                value = self._get_sorted_map(value)
            elif isinstance(value, list):
                value = [self._get_sorted_map(item) if isinstance(item, CommentedMap) else item
                         for item in value]
            sorted_map[key] = value
            if hasattr(data, 'ca') and key in data.ca.items:
                sorted_map.ca.items[key] = data.ca.items[key]

        return sorted_map

    def merge_into(self, target: CommentedMap, source: Dict[str, Any]) -> CommentedMap:
        """
        Overlays `source` onto an existing document in place. Keys absent
        from `source` are left alone so unknown fields and comments survive.
        """
        for key, value in source.items():
            # Unchanged scalars keep their original style (block literals, quotes)
            if key in target and not isinstance(value, (dict, list)) and target[key] == value:
                continue
            if isinstance(value, dict) and isinstance(target.get(key), CommentedMap):
                self.merge_into(target[key], value)
            else:
                target[key] = self.to_commented(value)
        return target

    def export(self, docs: List[Any]) -> str:
        """Exports documents into a single string with explicit separators."""
        stream = io.StringIO()
        written = 0
        for doc in docs:
            if not doc:
                continue
            if written > 0:
                stream.write("---\n")
            self.yaml.dump(self._get_sorted_map(self.to_commented(doc)), stream)
            written += 1
        return stream.getvalue()
