from __future__ import annotations

from rp_bridge.contracts.nodes import NodeDescriptor


def key_for(node: NodeDescriptor) -> str:
    """
    Return the run identity of a node.

    Built from the node kind and its structural path, never the display name,
    so repeated callbacks for one node agree and same-named tests in different
    subtrees stay distinct.
    """
    return f"{node.kind}:{node.path}"


def scope_for(node: NodeDescriptor) -> tuple[str, ...]:
    """Return the identities of the node's ancestors, outermost first."""
    return tuple(key_for(ancestor) for ancestor in node.ancestors())
