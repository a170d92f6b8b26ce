from .tools import ExecuteTool, ExplainTool, create_execute_tool, create_explain_tool

__all__ = ["ExecuteTool", "ExplainTool", "create_execute_tool", "create_explain_tool"]
