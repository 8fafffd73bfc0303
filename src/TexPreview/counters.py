from __future__ import annotations

import logging
from typing import Dict, Iterator

from .model import Counter, LabelEntry


class CounterRegistry:
    """Named counters with parent scopes.

    Stepping a counter resets every counter scoped below it, the way
    `\\chapter` resets `section` in a book.
    """

    def __init__(self) -> None:
        self._counters: Dict[str, Counter] = {}

    def define(self, name: str, parent: str | None = None) -> Counter:
        counter = self._counters.get(name)
        if counter is None:
            counter = Counter(name=name, parent=parent)
            self._counters[name] = counter
        else:
            counter.parent = parent
        return counter

    def step(self, name: str) -> int:
        counter = self._counters.get(name) or self.define(name)
        counter.value += 1
        for child in self._descendants(name):
            child.value = 0
        return counter.value

    def value(self, name: str) -> int:
        counter = self._counters.get(name)
        return counter.value if counter else 0

    def reset(self, name: str) -> None:
        counter = self._counters.get(name)
        if counter:
            counter.value = 0
            for child in self._descendants(name):
                child.value = 0

    def _descendants(self, name: str) -> Iterator[Counter]:
        for counter in self._counters.values():
            parent = counter.parent
            seen = set()
            while parent and parent not in seen:
                if parent == name:
                    yield counter
                    break
                seen.add(parent)
                parent_counter = self._counters.get(parent)
                parent = parent_counter.parent if parent_counter else None

    def __contains__(self, name: str) -> bool:
        return name in self._counters


class LabelRegistry:
    def __init__(self) -> None:
        self._labels: Dict[str, LabelEntry] = {}

    def register(
        self, key: str, number: str, kind: str, anchor: str, parent: str | None = None
    ) -> bool:
        key = key.strip()
        if not key:
            return False
        if key in self._labels:
            logging.warning("Duplicate label '%s' ignored; first definition kept", key)
            return False
        self._labels[key] = LabelEntry(key=key, number=number, kind=kind, anchor=anchor, parent=parent)
        logging.debug("Label %s -> %s %s", key, kind, number)
        return True

    def resolve(self, key: str) -> LabelEntry | None:
        return self._labels.get(key.strip())

    @property
    def entries(self) -> Dict[str, LabelEntry]:
        return dict(self._labels)

    def __contains__(self, key: str) -> bool:
        return key.strip() in self._labels

    def __len__(self) -> int:
        return len(self._labels)
