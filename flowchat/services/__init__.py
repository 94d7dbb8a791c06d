"""Service layer - chat orchestration, hooks and the widget page."""

from .chat_service import AgentConfig, ChatService, check_origin, honesty_clause
from .hook_runner import HookRunner, drain_background_tasks
from .widget import WidgetOptions, build_widget_page, render_widget_page

__all__ = [
    "AgentConfig",
    "ChatService",
    "check_origin",
    "honesty_clause",
    "HookRunner",
    "drain_background_tasks",
    "WidgetOptions",
    "build_widget_page",
    "render_widget_page",
]
