from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

NodeKind = Literal["spec", "test"]

PATH_SEPARATOR = "::"


@dataclass(frozen=True, slots=True)
class NodeDescriptor:
    """
    Engine-provided description of one node in the execution tree.

    `segment` is the structural id of the node relative to its parent. Display
    names may repeat or change between callbacks; segments may not.
    """

    kind: NodeKind
    segment: str
    name: str
    parent: NodeDescriptor | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    # A test that groups other tests (e.g. a test class).
    container: bool = False

    # Optional display prefix, e.g. the enclosing class name.
    prefix: str | None = None

    @property
    def path(self) -> str:
        """Fully qualified node path; doubles as the code reference."""
        return PATH_SEPARATOR.join(node.segment for node in reversed(self.lineage()))

    @property
    def display_name(self) -> str:
        if self.prefix:
            return f"{self.prefix} {self.name}"
        return self.name

    def lineage(self) -> list[NodeDescriptor]:
        """Return this node followed by its ancestors, innermost first."""
        chain: list[NodeDescriptor] = []
        node: NodeDescriptor | None = self
        while node is not None:
            chain.append(node)
            node = node.parent
        return chain

    def ancestors(self) -> list[NodeDescriptor]:
        """Return the ancestors of this node, outermost first."""
        return list(reversed(self.lineage()[1:]))


@dataclass(frozen=True, slots=True)
class ItemAttribute:
    value: str
    key: str | None = None

    def to_payload(self) -> dict[str, str]:
        payload = {"value": self.value}
        if self.key is not None:
            payload["key"] = self.key
        return payload


@dataclass(frozen=True, slots=True)
class ItemRecord:
    """An active remote item. `parent_key` of None marks the root suite."""

    key: str
    handle: str
    parent_key: str | None = None
