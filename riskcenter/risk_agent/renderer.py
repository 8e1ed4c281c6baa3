# riskcenter/risk_agent/renderer.py
# Purpose: ContentModel -> DisplayNode tree, dispatched on the content tag

"""
Content Renderer

render() is pure and total over every ContentModel variant. It looks only at
``content.tag`` to choose a render function and never inspects raw shape.
The same functions serve live sessions, canned scenarios and archived
reports.

Node kinds:
    block, paragraph, text, emphasis    - generic layout and inline spans
    collapsible                         - one option of an OptionSet
    field, quote                        - "Label: value" and boxed drafted language
    divider, heading                    - RecommendationBlock separators
    message                             - single plain error message
    step, report                        - whole-step / whole-report wrappers
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

from .report_models import (
    ContentTag,
    ErrorContent,
    KeyValueList,
    OptionSet,
    PlainText,
    RecommendationBlock,
    Step,
    StructuredReport,
)


_BOLD_SPLIT = re.compile(r"(\*\*.*?\*\*)")
_CAPITAL = re.compile(r"(?<!^)(?=[A-Z])")

QUOTED_FIELDS = {"suggestedLanguage"}
INLINE_KINDS = {"text", "emphasis"}


# ============================================================================
# Display Tree
# ============================================================================

@dataclass(frozen=True)
class DisplayNode:
    kind: str
    text: str = ""
    label: str = ""
    children: Tuple["DisplayNode", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind}
        if self.text:
            data["text"] = self.text
        if self.label:
            data["label"] = self.label
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    def to_text(self, indent: int = 0) -> str:
        """Plain terminal rendering."""
        pad = " " * indent

        if self.kind in INLINE_KINDS:
            return self.text
        if self.kind == "paragraph":
            return pad + "".join(child.to_text() for child in self.children)
        if self.kind == "field":
            return f"{pad}{self.label}: {self.text}"
        if self.kind == "quote":
            return f"{pad}{self.label}:\n{pad}  > {self.text}"
        if self.kind == "divider":
            return pad + "-" * 40
        if self.kind in ("heading", "message"):
            return pad + self.text
        if self.kind == "collapsible":
            lines = [f"{pad}[{self.label}]"]
            lines.extend(child.to_text(indent + 2) for child in self.children)
            return "\n".join(lines)
        if self.kind == "step":
            lines = [f"{pad}{self.label}: {self.text}"]
            lines.extend(child.to_text(indent + 2) for child in self.children)
            return "\n".join(lines)
        if self.kind == "report":
            lines = [f"{pad}{self.text}", pad + "=" * len(self.text)]
            for child in self.children:
                if child.kind == "step":
                    lines.append("")
                lines.append(child.to_text(indent))
            return "\n".join(lines)

        # block
        return "\n".join(child.to_text(indent) for child in self.children)


# ============================================================================
# Helpers
# ============================================================================

def parse_bold_spans(text: str) -> Tuple[DisplayNode, ...]:
    """Split on **...**; delimited spans become emphasis nodes."""
    nodes = []
    for part in _BOLD_SPLIT.split(text):
        if not part:
            continue
        if len(part) >= 4 and part.startswith("**") and part.endswith("**"):
            nodes.append(DisplayNode("emphasis", text=part[2:-2]))
        else:
            nodes.append(DisplayNode("text", text=part))
    if not nodes:
        nodes.append(DisplayNode("text", text=""))
    return tuple(nodes)


def humanize_field_name(name: str) -> str:
    """riskScore -> "Risk Score"."""
    if not name:
        return name
    return _CAPITAL.sub(" ", name[0].upper() + name[1:])


def _paragraph(text: str) -> DisplayNode:
    return DisplayNode("paragraph", children=parse_bold_spans(text))


def _lines(text: str) -> Tuple[str, ...]:
    return tuple(line for line in text.splitlines() if line.strip())


# ============================================================================
# Variant Renderers
# ============================================================================

def _render_key_value_list(content: KeyValueList) -> DisplayNode:
    paragraphs = tuple(
        DisplayNode(
            "paragraph",
            children=(DisplayNode("emphasis", text=entry.header),) + parse_bold_spans(" " + entry.text),
        )
        for entry in content.entries
    )
    return DisplayNode("block", children=paragraphs)


def _render_option_set(content: OptionSet) -> DisplayNode:
    sections = []
    for _, detail in content.options:
        children = []
        for name, value in detail.fields:
            if name in QUOTED_FIELDS:
                children.append(DisplayNode("quote", text=value, label=humanize_field_name(name)))
            else:
                children.append(DisplayNode("field", text=value, label=humanize_field_name(name)))
        sections.append(DisplayNode("collapsible", label=detail.title, children=tuple(children)))
    return DisplayNode("block", children=tuple(sections))


def _render_recommendation(content: RecommendationBlock) -> DisplayNode:
    children = [_paragraph(line) for line in _lines(content.summary)]
    children.append(DisplayNode("divider"))
    children.append(DisplayNode("heading", text="Implementation Steps:"))
    children.extend(_paragraph(step) for step in content.implementation_steps)
    return DisplayNode("block", children=tuple(children))


def _render_plain_text(content: PlainText) -> DisplayNode:
    lines = _lines(content.text) or ("",)
    return DisplayNode("block", children=tuple(_paragraph(line) for line in lines))


def _render_error(content: ErrorContent) -> DisplayNode:
    return DisplayNode("message", text=content.message)


_RENDERERS: Dict[ContentTag, Callable[[Any], DisplayNode]] = {
    ContentTag.KEY_VALUE_LIST: _render_key_value_list,
    ContentTag.OPTION_SET: _render_option_set,
    ContentTag.RECOMMENDATION_BLOCK: _render_recommendation,
    ContentTag.PLAIN_TEXT: _render_plain_text,
    ContentTag.ERROR: _render_error,
}


# ============================================================================
# Public API
# ============================================================================

def render(content) -> DisplayNode:
    """Render one ContentModel value."""
    renderer = _RENDERERS.get(getattr(content, "tag", None))
    if renderer is None:
        raise TypeError(f"Cannot render {type(content).__name__}: no content tag")
    return renderer(content)


def render_step(step: Step) -> DisplayNode:
    return DisplayNode(
        "step",
        text=step.title,
        label=f"Step {step.index}",
        children=(render(step.content),),
    )


def render_report(report: StructuredReport) -> DisplayNode:
    """Full report view, identical for live and archived reports."""
    header = (
        DisplayNode("field", text=report.display_date(), label="Date Generated"),
        DisplayNode("field", text=report.issue_text, label="Initial Complaint / Issue"),
    )
    steps = tuple(render_step(step) for step in report.steps)
    return DisplayNode("report", text=report.title, children=header + steps)


__all__ = [
    "DisplayNode",
    "render",
    "render_step",
    "render_report",
    "parse_bold_spans",
    "humanize_field_name",
]
