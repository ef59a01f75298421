"""SCOUT - Chat assistant that searches and reads the web."""

__version__ = "0.1.0"

from scout.config import (
    Config,
    ensure_config,
    get_config_path,
    get_system_prompt,
    load_config,
    run_first_time_setup,
    save_config,
)
from scout.conversation import Conversation, LoopState, ask, ask_sync
from scout.errors import ModelTransportError, ScoutError, ToolArgumentError, ToolCallError, UnknownToolError
from scout.extractor import extract_tool_call
from scout.output import ConsoleRenderer, Renderer
from scout.segmenter import Segment, Segmenter, get_grammar
from scout.session import ChatSession, ExecutedCallSet, Role, Settings, Turn
from scout.tool_calls import ToolCall, ToolName, fingerprint
from scout.tools import clear_url_cache, instant_answer, read_url, web_search
from scout.transport import GeminiTransport, ModelTransport, OpenAITransport, create_transport

__all__ = [
    "__version__",
    "Config",
    "ensure_config",
    "get_config_path",
    "load_config",
    "save_config",
    "run_first_time_setup",
    "get_system_prompt",
    "Conversation",
    "LoopState",
    "ask",
    "ask_sync",
    "ScoutError",
    "ToolCallError",
    "UnknownToolError",
    "ToolArgumentError",
    "ModelTransportError",
    "extract_tool_call",
    "Renderer",
    "ConsoleRenderer",
    "Segment",
    "Segmenter",
    "get_grammar",
    "ChatSession",
    "ExecutedCallSet",
    "Role",
    "Settings",
    "Turn",
    "ToolCall",
    "ToolName",
    "fingerprint",
    "clear_url_cache",
    "web_search",
    "read_url",
    "instant_answer",
    "ModelTransport",
    "OpenAITransport",
    "GeminiTransport",
    "create_transport",
]
