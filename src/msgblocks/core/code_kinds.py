"""Sub-classification of fenced code blocks for renderers.

The classifier only produces FencedCode; deciding whether the code is a
diagram, an SVG image or an HTML page belongs to the code renderer.

// [LAW:one-source-of-truth] code_kind() is the canonical code sub-classifier.
"""

from __future__ import annotations

from enum import Enum

from msgblocks.core.blocks import FencedCode
from msgblocks.core.segmentation import is_html_document


class CodeKind(Enum):
    CODE = "code"
    MERMAID = "mermaid"
    PLANTUML = "plantuml"
    SVG = "svg"
    HTML = "html"


CODE_KIND_LABELS: dict[CodeKind, str] = {
    CodeKind.CODE: "code",
    CodeKind.MERMAID: "Mermaid diagram",
    CodeKind.PLANTUML: "PlantUML diagram",
    CodeKind.SVG: "SVG image",
    CodeKind.HTML: "HTML page",
}

_PLANTUML_PAIRS = (
    ("@startuml", "@enduml"),
    ("@startmindmap", "@endmindmap"),
    ("@startsalt", "@endsalt"),
    ("@startwbs", "@endwbs"),
    ("@startgantt", "@endgantt"),
)

_SVG_XML_PROLOG = '<?xml version="1.0" encoding="UTF-8"?>\n<svg'


def _is_mermaid(block: FencedCode) -> bool:
    return block.title == "mermaid" and not block.is_partial


def _is_plantuml(block: FencedCode) -> bool:
    code = block.code.strip()
    return any(code.startswith(s) and code.endswith(e) for s, e in _PLANTUML_PAIRS)


def _is_svg(block: FencedCode) -> bool:
    code = block.code.strip()
    return (code.startswith("<svg") or code.startswith(_SVG_XML_PROLOG)) and code.endswith("</svg>")


def _is_html(block: FencedCode) -> bool:
    return is_html_document(block.code)


_CODE_KIND_CHECKS = (
    (CodeKind.MERMAID, _is_mermaid),
    (CodeKind.PLANTUML, _is_plantuml),
    (CodeKind.SVG, _is_svg),
    (CodeKind.HTML, _is_html),
)


def code_kind(block: FencedCode) -> CodeKind:
    """Return the specialized kind of a code block, CodeKind.CODE if none."""
    for kind, check in _CODE_KIND_CHECKS:
        if check(block):
            return kind
    return CodeKind.CODE
