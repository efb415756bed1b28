"""Host-owned output containers.

A Container is the Python stand-in for the canvas area a host hands to the
engine. Containers form a small tree of HTML fragments: the grid compositor
inserts item containers into a grid container *before* a chart renders, so a
renderer can read its own final ``width``.
"""

from __future__ import annotations

import html
import uuid
from typing import Iterator, Union


Node = Union["Container", str]


class Container:
    """A node of the output tree.

    Example:
        root = Container(width=960)
        item = root.append(Container(class_name="vb-col-6", width=472))
        item.append_html("<svg>...</svg>")
        page_fragment = root.to_html()
    """

    def __init__(
        self,
        width: float | None = None,
        height: float | None = None,
        class_name: str = "",
        container_id: str | None = None,
    ) -> None:
        self.width = width
        self.height = height
        self.class_name = class_name
        self.container_id = container_id or f"vb_{uuid.uuid4().hex[:8]}"
        self.styles: dict[str, str] = {}
        self.attributes: dict[str, str] = {}
        self.parent: Container | None = None
        self._children: list[Node] = []

    def __repr__(self) -> str:
        return (
            f"Container(id={self.container_id!r}, class_name={self.class_name!r}, "
            f"width={self.width!r}, children={len(self._children)})"
        )

    @property
    def children(self) -> list[Node]:
        return list(self._children)

    @property
    def is_empty(self) -> bool:
        return not self._children

    def iter_containers(self) -> Iterator["Container"]:
        """Yield child containers in order."""
        for child in self._children:
            if isinstance(child, Container):
                yield child

    def clear(self) -> None:
        """Remove all children."""
        for child in self.iter_containers():
            child.parent = None
        self._children.clear()

    def append(self, child: "Container") -> "Container":
        """Append a child container and return it."""
        child.parent = self
        self._children.append(child)
        return child

    def insert(self, index: int, node: Node) -> None:
        """Insert a child container or HTML fragment at ``index``."""
        if isinstance(node, Container):
            node.parent = self
        self._children.insert(index, node)

    def remove(self, child: "Container") -> None:
        """Detach a child container."""
        self._children.remove(child)
        child.parent = None

    def append_html(self, fragment: str) -> None:
        """Append a raw HTML fragment."""
        self._children.append(fragment)

    def replace_with_html(self, fragment: str) -> None:
        """Replace all content with a single HTML fragment."""
        self.clear()
        self._children.append(fragment)

    def adopt(self, other: "Container") -> None:
        """Take over the content and attributes drawn into ``other``."""
        self.clear()
        for child in other.children:
            if isinstance(child, Container):
                other.remove(child)
                self.append(child)
            else:
                self._children.append(child)
        other._children.clear()
        self.attributes.update(other.attributes)
        for class_name in other.class_name.split():
            self.add_class(class_name)

    def add_class(self, class_name: str) -> None:
        classes = self.class_name.split()
        if class_name not in classes:
            classes.append(class_name)
        self.class_name = " ".join(classes)

    def set_min_height(self, height: float) -> None:
        """Reserve vertical space before content arrives."""
        self.styles["min-height"] = f"{_format_px(height)}px"

    def inner_html(self) -> str:
        parts = []
        for child in self._children:
            parts.append(child.to_html() if isinstance(child, Container) else child)
        return "".join(parts)

    def to_html(self) -> str:
        """Serialize the container and its subtree."""
        attrs = [f'id="{html.escape(self.container_id)}"']
        if self.class_name:
            attrs.append(f'class="{html.escape(self.class_name)}"')
        if self.styles:
            style = " ".join(f"{key}: {value};" for key, value in self.styles.items())
            attrs.append(f'style="{html.escape(style)}"')
        for key, value in self.attributes.items():
            attrs.append(f'{key}="{html.escape(value)}"')
        return f"<div {' '.join(attrs)}>{self.inner_html()}</div>"


def _format_px(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"
