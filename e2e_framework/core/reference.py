"""
Element references and resolution results.

A caller hands page-object methods either an already-resolved element or a
selector string. Reference.parse classifies the input once so the resolver
can branch on an explicit kind.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List

# Combinator that pierces shadow boundaries: "host-a >>> host-b >>> .target"
DEEP_SELECTOR_MARKER = ">>>"


class ReferenceKind(Enum):
    """How a caller-supplied reference must be resolved"""
    DIRECT = "direct"  # Element/locator, used as-is
    SELECTOR = "selector"  # Plain selector, goes through the fallback chain
    DEEP_SELECTOR = "deep_selector"  # Explicit shadow-piercing selector


@dataclass(frozen=True)
class Reference:
    kind: ReferenceKind
    value: Any

    @classmethod
    def parse(cls, raw: Any) -> "Reference":
        if not isinstance(raw, str):
            return cls(ReferenceKind.DIRECT, raw)
        if DEEP_SELECTOR_MARKER in raw:
            return cls(ReferenceKind.DEEP_SELECTOR, raw)
        return cls(ReferenceKind.SELECTOR, raw)

    @property
    def description(self) -> str:
        if self.kind is ReferenceKind.DIRECT:
            return repr(self.value)
        return self.value


class ResolutionStage(Enum):
    """Which step of the fallback chain produced the element"""
    DIRECT = "direct"
    DOM = "dom"
    DEEP_SHADOW = "deep_shadow"
    SHADOW = "shadow"
    FRAME = "frame"
    NOT_FOUND = "not_found"


@dataclass
class Resolution:
    """Outcome of resolving a reference"""
    element: Any
    stage: ResolutionStage
    frame_path: List[int] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.stage is not ResolutionStage.NOT_FOUND
