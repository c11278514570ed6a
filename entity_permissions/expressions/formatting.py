"""
Trace rendering for expression trees.

Rendering is a pure read of the current node states. The status tokens
(``WAS UNEVALUATED``, ``PASSED``, ``FAILED``) and constant labels are the
same for every formatter; only the colouring differs.
"""

from typing import Optional

from shared.config import get_config
from .models import AndNode, CheckLeaf, CheckResult, ConstantLeaf, NotNode, OrNode

ANSI_RESET = "\u001B[m"
ANSI_COLORS = {
    CheckResult.UNEVALUATED: "\u001B[34m",
    CheckResult.PASSED: "\u001B[32m",
    CheckResult.FAILED: "\u001B[31m",
}

STATUS_TEXT = {
    CheckResult.UNEVALUATED: "WAS UNEVALUATED",
    CheckResult.PASSED: "PASSED",
    CheckResult.FAILED: "FAILED",
}


class PlainTraceFormatter:
    """Uncoloured traces for logs and non-interactive output."""

    def paint(self, text: str, result: CheckResult) -> str:
        return text

    def status(self, result: CheckResult) -> str:
        return self.paint(STATUS_TEXT[result], result)


class AnsiTraceFormatter(PlainTraceFormatter):
    """Colours status tokens with ANSI escapes: blue, green, red."""

    def paint(self, text: str, result: CheckResult) -> str:
        return f"{ANSI_COLORS[result]}{text}{ANSI_RESET}"


def default_formatter() -> PlainTraceFormatter:
    if get_config().trace_colors:
        return AnsiTraceFormatter()
    return PlainTraceFormatter()


def render(node, formatter: Optional[PlainTraceFormatter] = None) -> str:
    """Render a node and its children with their current states."""
    formatter = formatter or default_formatter()

    if isinstance(node, CheckLeaf):
        return f"({node.check_name} {formatter.status(node.result)})"
    elif isinstance(node, AndNode):
        return f"({render(node.left, formatter)}) AND ({render(node.right, formatter)})"
    elif isinstance(node, OrNode):
        return f"({render(node.left, formatter)}) OR ({render(node.right, formatter)})"
    elif isinstance(node, NotNode):
        return f"NOT ({render(node.child, formatter)})"
    elif isinstance(node, ConstantLeaf):
        if node.colored:
            return formatter.paint(node.label, node.result)
        return node.label
    else:
        raise TypeError(f"Cannot render expression node: {node!r}")
