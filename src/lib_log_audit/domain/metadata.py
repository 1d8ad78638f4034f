"""Declared capture metadata and its class/method resolution rule.

Purpose
-------
Describe what a guarded operation declares about itself (event name, business
type, description template, capture kind) and merge class-level defaults with
method-level declarations field by field.

Contents
--------
* :class:`CaptureKind` – plain log vs. audit log.
* :class:`MetadataDeclaration` – partial declaration written at one site.
* :class:`Metadata` – fully resolved, immutable metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum


class CaptureKind(Enum):
    """Kind of capture requested by a declaration."""

    LOG = "log"
    AUDIT = "audit"

    @property
    def mandatory(self) -> bool:
        """Return ``True`` when capture failures must be surfaced loudly."""

        return self is CaptureKind.AUDIT


@dataclass(slots=True, frozen=True)
class Metadata:
    """Resolved metadata attached to one guarded-operation registration."""

    kind: CaptureKind = CaptureKind.LOG
    event: str | None = None
    business_type: str | None = None
    description: str | None = None


@dataclass(slots=True, frozen=True)
class MetadataDeclaration:
    """Partial metadata as written on a class or a method.

    ``None`` means "not set here"; merging lets the more specific declaration
    win only for the fields it actually sets.

    Examples
    --------
    >>> base = MetadataDeclaration(CaptureKind.LOG, event="Y", business_type="ORDER")
    >>> method = MetadataDeclaration(CaptureKind.LOG, event="X")
    >>> method.over(base).resolve()
    Metadata(kind=<CaptureKind.LOG: 'log'>, event='X', business_type='ORDER', description=None)
    """

    kind: CaptureKind
    event: str | None = None
    business_type: str | None = None
    description: str | None = None

    def over(self, base: "MetadataDeclaration | None") -> "MetadataDeclaration":
        """Return a declaration where fields set on ``self`` override ``base``."""

        if base is None:
            return self
        if base.kind is not self.kind:
            raise ValueError(f"cannot merge {self.kind.value} declaration over {base.kind.value} declaration")
        merged = {
            item.name: getattr(self, item.name) if getattr(self, item.name) is not None else getattr(base, item.name)
            for item in fields(self)
        }
        return MetadataDeclaration(**merged)

    def resolve(self) -> Metadata:
        """Freeze the declaration into resolved :class:`Metadata`."""

        return Metadata(
            kind=self.kind,
            event=self.event,
            business_type=self.business_type,
            description=self.description,
        )


__all__ = ["CaptureKind", "Metadata", "MetadataDeclaration"]
