"""Block classification.

Tags each raw block with its kind. The kind is read case-insensitively from
the ``type`` attribute (``kind`` is accepted as an alias); blocks without
one are charts. Failures are scoped to the offending block and never abort
classification of the rest of the document.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from vizblocks.base import Block, BlockKind
from vizblocks.exceptions import SpecError, UnknownBlockKind

logger = logging.getLogger(__name__)

KIND_KEYS = ("type", "kind")


class BlockClassifier:
    """Annotate raw blocks with their resolved kind.

    Example:
        blocks = BlockClassifier().classify([
            {"type": "source", "name": "sales", "rows": [...]},
            {"visualize": {"type": "bar"}, "source": "sales"},
        ])
        [b.kind for b in blocks]  # [BlockKind.SOURCE, BlockKind.CHART]
    """

    def classify(self, raw_blocks: Iterable[Any]) -> list[Block]:
        """Classify a sequence of raw blocks, preserving order.

        Args:
            raw_blocks: Blocks already parsed into attribute mappings.

        Returns:
            One Block per input; invalid ones carry their error.
        """
        blocks = []
        for index, raw in enumerate(raw_blocks):
            blocks.append(self.classify_one(raw, index))
        return blocks

    def classify_one(self, raw: Any, index: int) -> Block:
        """Classify a single raw block."""
        if isinstance(raw, Block):
            return raw
        if not isinstance(raw, Mapping):
            error = SpecError(
                f"Block {index} must be a mapping of attributes, got {type(raw).__name__}",
                block_index=index,
            )
            logger.warning("Block %d rejected: %s", index, error.message)
            return Block(index=index, kind=BlockKind.CHART, attributes={}, error=error)

        attributes = dict(raw)
        try:
            kind = self.resolve_kind(attributes, index)
        except UnknownBlockKind as e:
            logger.warning("Block %d rejected: %s", index, e.message)
            return Block(index=index, kind=BlockKind.CHART, attributes=attributes, error=e)
        return Block(index=index, kind=kind, attributes=attributes)

    def resolve_kind(self, attributes: Mapping[str, Any], index: int | None = None) -> BlockKind:
        """Resolve the kind of an attribute mapping.

        Raises:
            UnknownBlockKind: If the declared kind is not supported.
        """
        declared = None
        for key in KIND_KEYS:
            if attributes.get(key) is not None:
                declared = attributes[key]
                break

        if declared is None:
            return BlockKind.CHART
        if isinstance(declared, BlockKind):
            return declared
        if not isinstance(declared, str) or not declared.strip():
            raise UnknownBlockKind(
                f"Block kind must be a non-empty string, got {declared!r}",
                block_index=index,
                declared_kind=declared,
            )

        try:
            return BlockKind(declared.strip().lower())
        except ValueError:
            raise UnknownBlockKind(
                f"Invalid block kind: {declared!r}. Must be one of: {', '.join(BlockKind.values())}",
                block_index=index,
                declared_kind=declared,
            ) from None
