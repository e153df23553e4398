from __future__ import annotations

import re
from dataclasses import dataclass, field

WILDCARD = "."

_NON_NAME_CHARS_RE = re.compile(r"[^a-zA-Z ]")


def clean_name(raw: str) -> str:
    """Search key for a place name: basic Latin letters and spaces, lower-cased.

    Lossy on purpose, so "Saint John's Church" and "saint johns church" share
    one key.
    """
    return _NON_NAME_CHARS_RE.sub("", raw).lower()


@dataclass(frozen=True)
class LocationRecord:
    id: int
    lon: float
    lat: float
    name: str


@dataclass
class _TrieNode:
    children: dict[str, _TrieNode] = field(default_factory=dict)
    # Set only on terminal nodes.
    name: str | None = None
    records: list[LocationRecord] = field(default_factory=list)

    @property
    def terminal(self) -> bool:
        return self.name is not None


class NameIndex:
    """Prefix trie from cleaned keys to the named locations sharing each key.

    Children are visited in ascending character order, so results for equal
    contents come back in the same order however they were inserted.
    """

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._key_count = 0

    def __len__(self) -> int:
        return self._key_count

    def insert(self, cleaned_key: str, display_name: str, record: LocationRecord) -> None:
        if cleaned_key is None:
            raise ValueError("key must not be None")
        node = self._root
        for ch in cleaned_key:
            child = node.children.get(ch)
            if child is None:
                child = _TrieNode()
                node.children[ch] = child
            node = child
        if not node.terminal:
            node.name = display_name
            self._key_count += 1
        node.records.append(record)

    def _find(self, key: str) -> _TrieNode | None:
        node = self._root
        for ch in key:
            nxt = node.children.get(ch)
            if nxt is None:
                return None
            node = nxt
        return node

    def exact_lookup(self, cleaned_key: str) -> tuple[LocationRecord, ...] | None:
        node = self._find(cleaned_key)
        if node is None or not node.terminal:
            return None
        return tuple(node.records)

    def contains(self, cleaned_key: str) -> bool:
        return self.exact_lookup(cleaned_key) is not None

    def prefix_search(self, cleaned_prefix: str) -> list[str]:
        start = self._find(cleaned_prefix)
        if start is None:
            return []
        names: list[str] = []
        stack = [start]
        while stack:
            node = stack.pop()
            if node.name is not None:
                names.append(node.name)
            # Reverse so the smallest character is popped first.
            for ch in sorted(node.children, reverse=True):
                stack.append(node.children[ch])
        return names

    def pattern_search(self, pattern: str) -> list[str]:
        names: list[str] = []
        stack: list[tuple[_TrieNode, int]] = [(self._root, 0)]
        while stack:
            node, depth = stack.pop()
            if depth == len(pattern):
                if node.name is not None:
                    names.append(node.name)
                continue
            ch = pattern[depth]
            if ch == WILDCARD:
                for key in sorted(node.children, reverse=True):
                    stack.append((node.children[key], depth + 1))
            else:
                child = node.children.get(ch)
                if child is not None:
                    stack.append((child, depth + 1))
        return names
