"""
Image operation abstraction for Raster Edit.

An image operation is an immutable, serializable description of one edit.
Every operation exposes `apply(image) -> image`; callers always continue with
the returned buffer. An operation validates its parameters before touching
any pixel, so it either succeeds or raises OperationError with the input
buffer left intact.

The set of operation kinds is closed: each concrete class registers itself
under a unique `kind` tag, and `operation_from_dict` decodes the tagged
dictionary form through that registry.

Classes:
    ImageOperation: Base class for all operations

Functions:
    register_operation: Class decorator adding a kind to the registry
    operation_to_dict: Serialize an operation to its tagged dictionary
    operation_from_dict: Rebuild an operation from its tagged dictionary
    get_operation_kinds: List the registered kind tags
"""

from typing import Any, ClassVar, Dict, List, Type
import logging

from PIL import Image

from RE_Libs.constants import FIELD_KIND
from RE_Libs.errors import OperationError

logger = logging.getLogger(__name__)


class ImageOperation:
    """
    Base class for reversible image edits.

    Subclasses are frozen dataclasses that define `kind`, implement
    `validate`, `apply`, `to_dict` and `from_dict`.
    """

    kind: ClassVar[str] = ""

    def validate(self) -> None:
        """Raise OperationError if the parameters cannot be applied."""

    def apply(self, image: Image.Image) -> Image.Image:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageOperation":
        raise NotImplementedError

    def describe(self) -> str:
        """Short human-readable label for menus and logs."""
        return self.kind.replace("_", " ")


OPERATION_KINDS: Dict[str, Type[ImageOperation]] = {}


def register_operation(cls: Type[ImageOperation]) -> Type[ImageOperation]:
    """
    Register an operation class under its `kind` tag.

    Raises:
        ValueError: If the class has no kind
        RuntimeError: If the kind is already registered
    """
    kind = str(cls.kind).strip()
    if not kind:
        raise ValueError(f"{cls.__name__} must define a kind")
    if kind in OPERATION_KINDS:
        raise RuntimeError(f"Operation kind '{kind}' is already registered")

    OPERATION_KINDS[kind] = cls
    logger.debug(f"Registered operation kind: {kind}")
    return cls


def get_operation_kinds() -> List[str]:
    return sorted(OPERATION_KINDS)


def operation_to_dict(operation: ImageOperation) -> Dict[str, Any]:
    """Serialize an operation to `{"kind": <tag>, ...parameters}`."""
    payload: Dict[str, Any] = {FIELD_KIND: operation.kind}
    payload.update(operation.to_dict())
    return payload


def operation_from_dict(data: Dict[str, Any]) -> ImageOperation:
    """
    Rebuild an operation from its tagged dictionary form.

    Args:
        data: Dictionary produced by operation_to_dict

    Returns:
        The decoded, validated operation

    Raises:
        OperationError: If the entry is malformed, the kind is unknown or
                        the parameters are invalid
    """
    if not isinstance(data, dict):
        raise OperationError(f"Operation entry must be a dictionary, got {type(data).__name__}")

    kind = data.get(FIELD_KIND)
    operation_cls = OPERATION_KINDS.get(str(kind)) if kind is not None else None
    if operation_cls is None:
        available = ", ".join(get_operation_kinds())
        raise OperationError(f"Unknown operation kind '{kind}'. Available kinds: {available}")

    try:
        operation = operation_cls.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise OperationError(f"Invalid parameters for operation '{kind}': {exc}") from exc

    operation.validate()
    return operation
