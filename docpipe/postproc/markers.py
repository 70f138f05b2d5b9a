"""Managed marker utilities for generated page regions."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from ..errors import TemplateError

LITERAL = "literal"
GENERATED = "generated"


@dataclass(frozen=True)
class Segment:
    """A slice of a managed document.

    Generated segments keep their raw marker lines so that serialising an
    unmodified segment list reproduces the source byte for byte.
    """

    kind: str
    text: str
    key: Optional[str] = None
    begin: str = ""
    end: str = ""


class MarkerManager:
    """Applies docpipe markers for idempotent region replacement."""

    BEGIN_FMT = "<!-- docpipe:begin:{key} -->"
    END_FMT = "<!-- docpipe:end:{key} -->"
    _MARKER_LINE = re.compile(
        r"^[ \t]*<!-- docpipe:(?P<edge>begin|end):(?P<key>[\w.-]+) -->[ \t]*(?:\r?\n|\Z)",
        re.MULTILINE,
    )

    def wrap(self, key: str, body: str) -> str:
        """Wrap a body with managed markers."""
        begin = self.BEGIN_FMT.format(key=key)
        end = self.END_FMT.format(key=key)
        return f"{begin}\n{_as_block(body)}{end}\n"

    def parse(self, document: str) -> List[Segment]:
        """Split ``document`` into literal and generated segments.

        Raises :class:`TemplateError` for unbalanced, nested or repeated markers.
        """
        segments: List[Segment] = []
        position = 0
        open_key: Optional[str] = None
        open_begin = ""
        body_start = 0
        seen: set[str] = set()

        for match in self._MARKER_LINE.finditer(document):
            edge, key = match.group("edge"), match.group("key")
            if edge == "begin":
                if open_key is not None:
                    raise TemplateError(f"Marker '{key}' opens before '{open_key}' is closed")
                if key in seen:
                    raise TemplateError(f"Marker '{key}' appears more than once")
                segments.append(Segment(LITERAL, document[position:match.start()]))
                open_key = key
                open_begin = match.group(0)
                body_start = match.end()
                continue
            if open_key is None:
                raise TemplateError(f"End marker '{key}' has no matching begin marker")
            if key != open_key:
                raise TemplateError(f"End marker '{key}' does not close open marker '{open_key}'")
            segments.append(
                Segment(
                    GENERATED,
                    document[body_start:match.start()],
                    key=key,
                    begin=open_begin,
                    end=match.group(0),
                )
            )
            seen.add(key)
            open_key = None
            position = match.end()

        if open_key is not None:
            raise TemplateError(f"Begin marker '{open_key}' is never closed")
        segments.append(Segment(LITERAL, document[position:]))
        return segments

    @staticmethod
    def serialize(segments: List[Segment]) -> str:
        return "".join(seg.begin + seg.text + seg.end for seg in segments)

    def replace(self, document: str, key: str, new_body: str) -> str:
        """Replace the generated region ``key``; every other byte is preserved."""
        segments = self.parse(document)
        found = False
        updated: List[Segment] = []
        for segment in segments:
            if segment.kind == GENERATED and segment.key == key:
                found = True
                segment = replace(segment, text=_as_block(new_body, _newline_of(segment.begin)))
            updated.append(segment)
        if not found:
            raise TemplateError(
                f"Markers {self.BEGIN_FMT.format(key=key)} and "
                f"{self.END_FMT.format(key=key)} not found"
            )
        return self.serialize(updated)

    def extract(self, document: str) -> Dict[str, str]:
        """Return a mapping of region key to current body (without markers)."""
        return {
            seg.key: seg.text
            for seg in self.parse(document)
            if seg.kind == GENERATED and seg.key is not None
        }


def _newline_of(marker_line: str) -> str:
    return "\r\n" if marker_line.endswith("\r\n") else "\n"


def _as_block(text: str, newline: str = "\n") -> str:
    stripped = text.strip("\r\n")
    if not stripped:
        return ""
    if newline != "\n":
        stripped = stripped.replace("\r\n", "\n").replace("\n", newline)
    return f"{stripped}{newline}"


__all__ = ["GENERATED", "LITERAL", "MarkerManager", "Segment"]
