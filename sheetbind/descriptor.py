"""Record type descriptors: which dataclass field answers to which column tag."""

# Module responsibilities:
# - Inspect a dataclass type once and cache its exported fields, resolved annotations and tags.
# - Offer the column() helper that declares a tagged field.

from __future__ import annotations

import dataclasses
import types
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from .errors import RecordTypeError
from .schema import DEFAULT_TAG_NAME
from .utils.log import get_logger

logger = get_logger("descriptor")

_PRIMITIVE_ZEROS: Dict[Any, Any] = {bool: False, int: 0, float: 0.0, str: ""}


def column(header: str, *, tag_name: str = DEFAULT_TAG_NAME, **kwargs: Any) -> Any:
    """Create a dataclass field tagged with the column *header*.

    Extra keyword arguments (``default``, ``default_factory``, ``metadata`` ...)
    are passed through to :func:`dataclasses.field`.
    """

    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[tag_name] = header
    return dataclasses.field(metadata=metadata, **kwargs)


def split_optional(annotation: Any) -> Tuple[Any, bool]:
    """Return ``(inner, True)`` for ``X | None`` annotations, else ``(annotation, False)``."""

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = typing.get_args(annotation)
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1 and len(members) != len(args):
            return members[0], True
    return annotation, False


@dataclass(frozen=True)
class FieldDescriptor:
    """One exported field of a record type."""

    index: int
    name: str
    tag: Optional[str]
    annotation: Any
    inner: Any
    optional: bool
    field: dataclasses.Field

    @property
    def header(self) -> str:
        return self.tag if self.tag is not None else self.name

    @property
    def tagged(self) -> bool:
        return self.tag is not None

    def is_kind(self, kind: type) -> bool:
        """True when the field (or its optional inner type) is exactly *kind*."""

        return self.inner is kind

    def zero(self) -> Any:
        """Value a field takes when no cell populated it."""

        if self.field.default is not dataclasses.MISSING:
            return self.field.default
        if self.field.default_factory is not dataclasses.MISSING:
            return self.field.default_factory()
        if self.optional:
            return None
        if self.inner in _PRIMITIVE_ZEROS:
            return _PRIMITIVE_ZEROS[self.inner]
        if isinstance(self.inner, type) and issubclass(self.inner, np.number):
            return self.inner(0)
        return None


@dataclass(frozen=True)
class RecordDescriptor:
    """Immutable view of a record type, derived once per ``(type, tag_name)``."""

    record_type: type
    tag_name: str
    fields: Tuple[FieldDescriptor, ...]
    tag_map: Mapping[str, FieldDescriptor]

    def visible_fields(self, skip_untagged: bool = False) -> Tuple[FieldDescriptor, ...]:
        """Exported fields in declaration order, optionally without untagged ones."""

        if not skip_untagged:
            return self.fields
        return tuple(item for item in self.fields if item.tagged)

    def build(self, values: Mapping[str, Any]) -> Any:
        """Instantiate the record, giving unset fields their zero value."""

        kwargs = {item.name: values[item.name] if item.name in values else item.zero() for item in self.fields}
        return self.record_type(**kwargs)


def describe(record_type: type, tag_name: str = DEFAULT_TAG_NAME) -> RecordDescriptor:
    """Return the cached :class:`RecordDescriptor` of *record_type*.

    Raises:
        RecordTypeError: When *record_type* is not a dataclass type or its
            annotations cannot be resolved.
    """

    if not isinstance(record_type, type) or not dataclasses.is_dataclass(record_type):
        raise RecordTypeError(f"{record_type!r} is not a dataclass type")
    return _describe(record_type, tag_name)


@lru_cache(maxsize=None)
def _describe(record_type: type, tag_name: str) -> RecordDescriptor:
    try:
        hints = typing.get_type_hints(record_type)
    except (NameError, TypeError) as exc:
        raise RecordTypeError(f"Cannot resolve annotations of {record_type.__name__}: {exc}") from exc

    described = []
    tag_map: Dict[str, FieldDescriptor] = {}
    for index, item in enumerate(dataclasses.fields(record_type)):
        if not item.init or item.name.startswith("_"):
            continue
        annotation = hints.get(item.name, Any)
        inner, optional = split_optional(annotation)
        tag = item.metadata.get(tag_name)
        descriptor = FieldDescriptor(
            index=index,
            name=item.name,
            tag=str(tag) if tag is not None else None,
            annotation=annotation,
            inner=inner,
            optional=optional,
            field=item,
        )
        described.append(descriptor)
        if descriptor.tag is None:
            continue
        if descriptor.tag in tag_map:
            logger.warning(
                "Duplicate tag %r on %s.%s ignored; already bound to %s",
                descriptor.tag,
                record_type.__name__,
                item.name,
                tag_map[descriptor.tag].name,
            )
            continue
        tag_map[descriptor.tag] = descriptor

    logger.debug(
        "Described record type %s: %d fields, %d tagged",
        record_type.__name__,
        len(described),
        len(tag_map),
    )
    return RecordDescriptor(
        record_type=record_type,
        tag_name=tag_name,
        fields=tuple(described),
        tag_map=types.MappingProxyType(tag_map),
    )


__all__ = [
    "FieldDescriptor",
    "RecordDescriptor",
    "column",
    "describe",
    "split_optional",
]
