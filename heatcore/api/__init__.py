"""
Request envelope: pydantic request models and transport-agnostic handlers.
"""

from heatcore.api.handlers import handle_heatmap, handle_priorities, handle_stats, parse_issues

__all__ = ["handle_heatmap", "handle_priorities", "handle_stats", "parse_issues"]
