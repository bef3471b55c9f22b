"""Plain-text rendering of conversation trees for the command line."""

from typing import Optional

from .classifier import ClassificationResult
from .metadata import ResultInfo, SessionInfo
from .tree import NodeType, TreeNode

TOOL_ICONS = {
    "Read": "📖",
    "Write": "✏️",
    "Edit": "✏️",
    "MultiEdit": "✏️",
    "Bash": "💻",
    "Task": "🤖",
}


def node_icon(node: TreeNode) -> str:
    if node.type == NodeType.SESSION:
        return "📁"
    if node.type == NodeType.MESSAGE:
        return {"assistant": "🤖", "user": "👤"}.get(node.data.get("role"), "⚙️")
    if node.type == NodeType.TOOL:
        tool_name = node.data.get("tool_name") or ""
        if tool_name.startswith("mcp__"):
            return "🔌"
        return TOOL_ICONS.get(tool_name, "🔧")
    if node.type == NodeType.RESULT:
        return "❌" if node.data.get("is_error") else "✅"
    return ""


def render_tree_text(
    root: TreeNode,
    expand_all: bool = False,
    max_depth: Optional[int] = None,
    indent: str = "  ",
) -> str:
    """Render a tree as indented lines.

    Collapsed nodes hide their children unless ``expand_all`` is set; a
    marker shows whether a node has hidden children.
    """
    lines: list[str] = []

    def visit(node: TreeNode, depth: int) -> None:
        open_ = expand_all or node.expanded
        if node.children:
            marker = "▼ " if open_ else "▶ "
        else:
            marker = "  "
        icon = node_icon(node)
        label = f"{icon} {node.text}" if icon else node.text
        lines.append(f"{indent * depth}{marker}{label}")

        if not open_ or (max_depth is not None and depth >= max_depth):
            return
        for child in node.children:
            visit(child, depth + 1)

    visit(root, 0)
    return "\n".join(lines)


def render_session_header(info: SessionInfo, result: Optional[ResultInfo] = None) -> str:
    """Render session metadata as ``key: value`` lines."""
    lines = []
    lines.append(f"Session:  {info.session_id or 'unknown'}")
    if info.title:
        lines.append(f"Title:    {info.title}")
    if info.summary:
        lines.append(f"Summary:  {info.summary}")
    if info.cwd:
        lines.append(f"Cwd:      {info.cwd}")
    if info.git_branch:
        lines.append(f"Branch:   {info.git_branch}")
    if info.model:
        lines.append(f"Model:    {info.model}")
    if info.version:
        lines.append(f"Version:  {info.version}")
    if info.started_at:
        lines.append(f"Started:  {info.started_at}")
    if info.ended_at:
        lines.append(f"Ended:    {info.ended_at}")
    lines.append(f"Messages: {info.message_count}")

    if result is not None:
        status = "success" if result.success else (result.subtype or "unknown")
        lines.append(
            f"Result:   {status} | Cost: ${result.cost_usd:.4f} | "
            f"Duration: {result.duration_ms}ms | Turns: {result.num_turns}"
        )
    return "\n".join(lines)


def render_classification_table(classifications: dict[str, ClassificationResult]) -> str:
    """One line per classified result node."""
    if not classifications:
        return "No tool results."
    width = max(len(node_id) for node_id in classifications)
    lines = []
    for node_id, result in classifications.items():
        popup = "popup" if result.force_popup else "sized"
        lines.append(
            f"{node_id:<{width}}  {result.content_type.value:<14}  "
            f"{result.display_strategy.value:<24}  {result.confidence:.2f}  {popup}"
        )
    return "\n".join(lines)
