"""Ast base nodes, positions and the node arena"""

__all__ = ["SourcePosition", "Node", "Arena"]

from dataclasses import dataclass


@dataclass
class SourcePosition:
    """Source code position information for AST nodes.

    Attributes:
        filename: Source file path (e.g., "app/main.go")
        start_line: Starting line number (1-indexed)
        start_column: Starting column number (1-indexed)
        end_line: Ending line number (1-indexed)
        end_column: Ending column number (1-indexed)
    """
    filename: str | None = None
    start_line: int | None = None
    start_column: int | None = None
    end_line: int | None = None
    end_column: int | None = None

    def __str__(self) -> str:
        """Format position for error messages as file:line:column."""
        parts = [self.filename or "<source>"]
        if self.start_line:
            parts.append(str(self.start_line))
            if self.start_column:
                parts.append(str(self.start_column))
        return ":".join(parts)


class Node:
    """Base class for all AST nodes.

    Nodes form a tree through `kids`, and every node is also registered in
    an `Arena` that hands out its integer `id`. Symbols and other long lived
    records refer to nodes by id rather than by holding the node.

    After CFG building a node may carry executable code in `code`.
    """

    def __init__(self, kids: list["Node | None"] | None = None):
        """Initialize node.

        Args:
            kids: List of child nodes, None entries are dropped
        """
        self.kids = [kid for kid in kids if kid is not None] if kids else []
        self.id = None
        self.position = SourcePosition()
        self.code = None

    def __repr__(self):
        """Compact representation showing type and key attributes."""
        attrs = []
        if self.kids:
            attrs.append(f'*{len(self.kids)}')
        for key, value in self.__dict__.items():
            if key in ('kids', 'position', 'code', 'id'):
                continue
            if isinstance(value, Node) or _is_node_list(value):
                continue
            attrs.append(f'{key}={value!r}')
        return f"{self.__class__.__name__}({' '.join(attrs)})"

    def walk(self):
        """Iterate this node and all its descendants, depth first."""
        yield self
        for kid in self.kids:
            yield from kid.walk()

    def find_all(self, node_type):
        """Find all descendants of given type, including self."""
        return [node for node in self.walk() if isinstance(node, node_type)]


class Arena:
    """Owner of every node parsed for one package.

    Nodes are addressed by the integer id assigned when they are added.
    """

    def __init__(self):
        self.nodes = []

    def __repr__(self):
        return f"Arena<{len(self.nodes)} nodes>"

    def __len__(self):
        return len(self.nodes)

    def __getitem__(self, node_id):
        return self.nodes[node_id]

    def add(self, node):
        """Register a node and assign its id. Returns the node."""
        node.id = len(self.nodes)
        self.nodes.append(node)
        return node


def _is_node_list(value):
    return isinstance(value, list) and any(isinstance(v, Node) for v in value)
