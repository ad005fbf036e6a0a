"""
Script model: identifiers, languages, sources and the Script aggregate.

All of these are immutable; a new source is installed by building a new
Script with ``with_source``.
"""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional


@dataclass(frozen=True)
class ScriptId:
    """Identifier of a script, and of the modules compiled from it."""
    value: str

    INVALID: ClassVar["ScriptId"]

    @property
    def is_valid(self) -> bool:
        return bool(self.value)

    def __str__(self) -> str:
        return self.value


ScriptId.INVALID = ScriptId("")


class ScriptLanguage(Enum):
    """Language a script is written in."""
    LAG = "lag"
    HOST = "host"   # Python, compiled directly

    @classmethod
    def from_path(cls, path) -> "ScriptLanguage":
        """Pick the language from a file extension (.lag or .py)."""
        suffix = Path(path).suffix.lower()
        if suffix == ".lag":
            return cls.LAG
        if suffix == ".py":
            return cls.HOST
        raise ValueError(f"unsupported script extension '{suffix}' for {path}")


@dataclass(frozen=True)
class ScriptSource:
    """Source text of a script together with its language."""
    code: str
    language: ScriptLanguage = ScriptLanguage.LAG


@dataclass(frozen=True)
class Script:
    """A script: identity, current source and optional backing file."""
    id: ScriptId
    source: ScriptSource
    file_path: Optional[Path] = None

    @property
    def language(self) -> ScriptLanguage:
        return self.source.language

    def with_source(self, source: ScriptSource) -> "Script":
        """Return a copy of this script carrying a new source."""
        return replace(self, source=source)
