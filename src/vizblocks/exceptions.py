"""Exception hierarchy for vizblocks.

This module defines the errors raised while classifying, registering and
rendering document blocks:
- SpecError: Malformed block attributes
- UnknownBlockKind: Block declares a kind outside the supported set
- UnresolvedReference: Chart references a name that was never registered
- MissingRequiredConfig: Renderer is missing a required attribute
- RenderError: Uncaught exception raised inside a renderer

All exceptions carry the index of the offending block (when known) so the
error boundary can attach them to the right slot of the document.
"""

from __future__ import annotations

from typing import Any


class VizBlocksError(Exception):
    """Base exception for all vizblocks errors.

    Attributes:
        message: Error message
        block_index: Position of the affected block in its document
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        block_index: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.block_index = block_index
        self.details = details or {}
        super().__init__(message)

    @property
    def kind(self) -> str:
        """Name used for this error in descriptors and inline output."""
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.kind,
            "message": self.message,
            "block_index": self.block_index,
            "details": self.details,
        }


class SpecError(VizBlocksError):
    """Raised when a block's attributes are malformed."""

    pass


class UnknownBlockKind(VizBlocksError):
    """Raised when a block declares an unsupported kind.

    Attributes:
        declared_kind: The kind value found on the block
    """

    def __init__(
        self,
        message: str,
        block_index: int | None = None,
        declared_kind: Any = None,
    ):
        self.declared_kind = declared_kind
        super().__init__(message, block_index, {"declared_kind": declared_kind})


class UnresolvedReference(VizBlocksError):
    """Raised when a chart references a name that is not registered.

    Attributes:
        reference_kind: Kind of the missing entry (source, style, params)
        reference_name: Name that could not be resolved
    """

    def __init__(
        self,
        message: str,
        block_index: int | None = None,
        reference_kind: str | None = None,
        reference_name: str | None = None,
    ):
        self.reference_kind = reference_kind
        self.reference_name = reference_name
        super().__init__(
            message,
            block_index,
            {"reference_kind": reference_kind, "reference_name": reference_name},
        )


class MissingRequiredConfig(VizBlocksError):
    """Raised by a renderer when a required attribute is absent.

    Attributes:
        attribute: Name of the missing configuration attribute
        chart_type: Chart type whose renderer reported the problem
    """

    def __init__(
        self,
        message: str,
        attribute: str | None = None,
        chart_type: str | None = None,
        block_index: int | None = None,
    ):
        self.attribute = attribute
        self.chart_type = chart_type
        super().__init__(
            message,
            block_index,
            {"attribute": attribute, "chart_type": chart_type},
        )


class RenderError(VizBlocksError):
    """Raised when a renderer fails with an unexpected exception.

    Attributes:
        chart_type: Chart type being rendered
        cause: The original exception
    """

    def __init__(
        self,
        message: str,
        block_index: int | None = None,
        chart_type: str | None = None,
        cause: BaseException | None = None,
    ):
        self.chart_type = chart_type
        self.cause = cause
        super().__init__(
            message,
            block_index,
            {
                "chart_type": chart_type,
                "cause": type(cause).__name__ if cause is not None else None,
            },
        )
