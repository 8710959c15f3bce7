"""Character trie mapping lowercase prefixes to sets of record ids.

Every node on the path of an inserted string (the root included) records the
id, so a prefix lookup is a single walk followed by reading that node's ids.
Nodes count occurrences: the same id may be inserted under several strings
sharing a branch (two tags of one task, say) and removing one of them must
not hide the other. Removal prunes branches whose ids and children are both
empty.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field


def _discard(counter: Counter[str], record_id: str) -> None:
    remaining = counter[record_id] - 1
    if remaining > 0:
        counter[record_id] = remaining
    else:
        counter.pop(record_id, None)


@dataclass
class _TrieNode:
    children: dict[str, "_TrieNode"] = field(default_factory=dict)
    ids: Counter[str] = field(default_factory=Counter)
    # ids whose indexed string ends exactly at this node
    ends: Counter[str] = field(default_factory=Counter)

    @property
    def is_end_of_word(self) -> bool:
        return bool(self.ends)

    @property
    def is_empty(self) -> bool:
        return not self.ids and not self.children


class PrefixIndex:
    """Case-insensitive prefix index over ``(text, id)`` pairs."""

    def __init__(self) -> None:
        self.root = _TrieNode()

    def insert(self, text: str, record_id: str) -> None:
        current = self.root
        current.ids[record_id] += 1
        for char in text.lower():
            child = current.children.get(char)
            if child is None:
                child = _TrieNode()
                current.children[char] = child
            current = child
            current.ids[record_id] += 1
        current.ends[record_id] += 1

    def search_prefix(self, prefix: str) -> set[str]:
        """Return the ids whose indexed text starts with *prefix*."""
        node = self._find(prefix.lower())
        return set(node.ids) if node is not None else set()

    def remove_id(self, text: str, record_id: str) -> None:
        """Retract one ``insert(text, record_id)``; unknown pairs are ignored."""
        word = text.lower()
        terminal = self._find(word)
        if terminal is None or record_id not in terminal.ends:
            return
        self._remove(self.root, word, 0, record_id)

    def _find(self, word: str) -> _TrieNode | None:
        current = self.root
        for char in word:
            child = current.children.get(char)
            if child is None:
                return None
            current = child
        return current

    def _remove(self, node: _TrieNode, word: str, index: int, record_id: str) -> bool:
        # True when *node* is empty afterwards and its parent should detach it.
        if index == len(word):
            _discard(node.ends, record_id)
        else:
            char = word[index]
            if self._remove(node.children[char], word, index + 1, record_id):
                del node.children[char]
        _discard(node.ids, record_id)
        return node.is_empty

    def __contains__(self, prefix: object) -> bool:
        return isinstance(prefix, str) and self._find(prefix.lower()) is not None
