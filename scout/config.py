"""Configuration management for SCOUT."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import questionary

# Constants
CONFIG_DIR = Path.home() / ".local" / "share" / "scout"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_CHUNK_LENGTH = 1122

PROVIDERS = ("openai", "gemini")
SEARCH_ENGINES = ("jina", "duckduckgo")
COT_GRAMMARS = ("thinking", "steps")
CONTINUATION_POLICIES = ("once", "always")

DEFAULT_CONFIG = {
    "provider": "openai",
    "base_url": "https://api.openai.com/v1",
    "model": "gpt-4o-mini",
    "max_output_tokens": 4096,
    "streaming": False,
    "enable_cot": False,
    "show_thinking": True,
    "cot_grammar": "thinking",
    "search_engine": "jina",
    "chunk_length": DEFAULT_CHUNK_LENGTH,
    "context_window": 20,
    "max_tool_rounds": 12,
    "generation_timeout": 120,
    "tool_timeout": 30,
    "duplicate_continuation": "once",
    "tokenizer_encoding": "cl100k_base",
}

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

SYSTEM_PROMPT_TEMPLATE = """You are an AI assistant with access to three external tools. Use them to gather information when needed.

Current date: {current_date}

VERY IMPORTANT:
- When calling a tool, output ONLY a JSON object and NOTHING ELSE, EXACTLY in this format:
  {{"tool":"web_search","arguments":{{"query":"your query"}}}}
  {{"tool":"read_url","arguments":{{"url":"https://example.com","start":0,"length":{chunk_length}}}}}
  {{"tool":"instant_answer","arguments":{{"query":"your query"}}}}
- Do NOT add any extra text, explanations, or formatting around the JSON.
- Wait for the tool result before continuing your reasoning or answer.
- Never repeat a tool call you have already made; its result is already in the conversation.

TOOLS:
1. web_search(query[, engine]) -> Returns search results [{{title, url, snippet}}, ...]. engine is one of: {engines}.
2. read_url(url[, start, length]) -> Returns text content from the specified URL slice.
3. instant_answer(query) -> Returns a JSON object from the DuckDuckGo Instant Answer API.

For questions requiring up-to-date information, choose the appropriate tool and fetch the necessary data. Only after gathering all relevant information should you answer in plain text.
"""

DECISION_SYSTEM_PROMPT = "You decide whether additional URL content is needed."

DECISION_PROMPT_TEMPLATE = """User query: "{question}"
Snippet: "{snippet}"

Should you fetch more content from this URL? Reply YES or NO."""

FINAL_ANSWER_PROMPT = (
    "You have used all available tool calls. Please provide a comprehensive final answer "
    "based on all the information gathered so far. Do not call any more tools."
)


@dataclass
class Config:
    """SCOUT configuration."""

    api_key: str
    provider: str = "openai"
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    jina_key: str = ""
    max_output_tokens: int = 4096
    streaming: bool = False
    enable_cot: bool = False
    show_thinking: bool = True
    cot_grammar: str = "thinking"
    search_engine: str = "jina"
    chunk_length: int = DEFAULT_CHUNK_LENGTH
    context_window: int = 20
    max_tool_rounds: int = 12
    generation_timeout: int = 120
    tool_timeout: int = 30
    duplicate_continuation: str = "once"
    tokenizer_encoding: str = "cl100k_base"

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create config from dictionary."""
        return cls(**data)


def get_config_path() -> Path:
    """Get path to config file."""
    return CONFIG_FILE


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: dict[str, Any]) -> tuple[bool, list[str]]:
    """Validate configuration dictionary.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    if "api_key" not in config:
        errors.append("Missing required field: api_key")
        return False, errors

    unknown = set(config) - set(Config.__dataclass_fields__)
    if unknown:
        errors.append(f"Unknown fields: {', '.join(sorted(unknown))}")

    api_key = config.get("api_key", "")
    if not isinstance(api_key, str) or not api_key.strip():
        errors.append("api_key must be a non-empty string")

    provider = config.get("provider", "openai")
    if provider not in PROVIDERS:
        errors.append(f"provider must be one of: {', '.join(PROVIDERS)}")

    base_url = config.get("base_url", DEFAULT_CONFIG["base_url"])
    if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
        errors.append("base_url must be a valid HTTP(S) URL")

    model = config.get("model", DEFAULT_CONFIG["model"])
    if not isinstance(model, str) or not model.strip():
        errors.append("model must be a non-empty string")

    # Optional but must be string if present
    jina_key = config.get("jina_key", "")
    if jina_key is not None and not isinstance(jina_key, str):
        errors.append("jina_key must be a string or null")

    for name in ("streaming", "enable_cot", "show_thinking"):
        if name in config and not isinstance(config[name], bool):
            errors.append(f"{name} must be a boolean")

    if config.get("cot_grammar", "thinking") not in COT_GRAMMARS:
        errors.append(f"cot_grammar must be one of: {', '.join(COT_GRAMMARS)}")

    if config.get("search_engine", "jina") not in SEARCH_ENGINES:
        errors.append(f"search_engine must be one of: {', '.join(SEARCH_ENGINES)}")

    if config.get("duplicate_continuation", "once") not in CONTINUATION_POLICIES:
        errors.append(
            f"duplicate_continuation must be one of: {', '.join(CONTINUATION_POLICIES)}"
        )

    for name in (
        "max_output_tokens",
        "chunk_length",
        "context_window",
        "max_tool_rounds",
        "generation_timeout",
        "tool_timeout",
    ):
        if name in config and not _is_positive_int(config[name]):
            errors.append(f"{name} must be a positive integer")

    tokenizer_encoding = config.get("tokenizer_encoding")
    if tokenizer_encoding is not None:
        if not isinstance(tokenizer_encoding, str) or not tokenizer_encoding.strip():
            errors.append("tokenizer_encoding must be a non-empty string")

    return len(errors) == 0, errors


def load_config() -> Config:
    """Load configuration from disk.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    if not CONFIG_FILE.exists():
        raise FileNotFoundError(f"Config file not found: {CONFIG_FILE}")

    with open(CONFIG_FILE, encoding="utf-8") as f:
        data = json.load(f)

    is_valid, errors = validate_config(data)
    if not is_valid:
        raise ValueError(f"Invalid config: {'; '.join(errors)}")

    return Config.from_dict(data)


def save_config(config: Config) -> None:
    """Save configuration to disk."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)


def run_first_time_setup() -> Config:
    """Run interactive first-time setup.

    Returns:
        Config object with user-provided values
    """
    print("Welcome to SCOUT!")
    print("Let's set up your configuration...\n")

    provider = questionary.select(
        "Model provider:",
        choices=[
            questionary.Choice("OpenAI-compatible chat completions", value="openai"),
            questionary.Choice("Gemini generateContent", value="gemini"),
        ],
        default="openai",
    ).ask()

    default_base_url = GEMINI_BASE_URL if provider == "gemini" else DEFAULT_CONFIG["base_url"]
    base_url = questionary.text(
        "API Base URL:",
        default=default_base_url,
    ).ask()

    api_key = questionary.password(
        "API Key:",
        instruction="Your model provider API key",
    ).ask()

    model = questionary.text(
        "Model:",
        default="gemini-2.0-flash" if provider == "gemini" else DEFAULT_CONFIG["model"],
    ).ask()

    jina_key = questionary.password(
        "Jina API Key (optional):",
        instruction="Press Enter to skip (rate-limited free tier)",
    ).ask()

    search_engine = questionary.select(
        "Default search engine:",
        choices=list(SEARCH_ENGINES),
        default=DEFAULT_CONFIG["search_engine"],
    ).ask()

    streaming = questionary.confirm("Stream responses?", default=False).ask()
    enable_cot = questionary.confirm("Enable chain-of-thought formatting?", default=False).ask()
    show_thinking = True
    if enable_cot:
        show_thinking = questionary.confirm("Show reasoning text?", default=True).ask()

    max_output_tokens = questionary.text(
        "Max output tokens:",
        default=str(DEFAULT_CONFIG["max_output_tokens"]),
    ).ask()

    max_tool_rounds = questionary.text(
        "Max tool rounds per message:",
        default=str(DEFAULT_CONFIG["max_tool_rounds"]),
        instruction="Tool calls allowed before a final answer is forced",
    ).ask()

    config = Config(
        provider=provider or DEFAULT_CONFIG["provider"],
        base_url=base_url or default_base_url,
        api_key=api_key or "",
        model=model or DEFAULT_CONFIG["model"],
        jina_key=jina_key or "",
        search_engine=search_engine or DEFAULT_CONFIG["search_engine"],
        streaming=bool(streaming),
        enable_cot=bool(enable_cot),
        show_thinking=bool(show_thinking),
        max_output_tokens=int(max_output_tokens)
        if max_output_tokens
        else DEFAULT_CONFIG["max_output_tokens"],
        max_tool_rounds=int(max_tool_rounds)
        if max_tool_rounds
        else DEFAULT_CONFIG["max_tool_rounds"],
    )

    save_config(config)

    print(f"\nConfiguration saved to {CONFIG_FILE}")

    return config


def ensure_config() -> Config:
    """Ensure configuration exists and is valid.

    If config doesn't exist or is invalid, runs first-time setup.

    Returns:
        Valid Config object
    """
    try:
        return load_config()
    except (FileNotFoundError, ValueError):
        return run_first_time_setup()


def get_system_prompt(chunk_length: int = DEFAULT_CHUNK_LENGTH, prompt_template: str | None = None) -> str:
    """Get formatted system prompt.

    Args:
        chunk_length: Default read_url slice length advertised to the model
        prompt_template: Optional custom prompt template. Uses default if None.

    Returns:
        Formatted system prompt with current date and tool details substituted
    """
    template = prompt_template or SYSTEM_PROMPT_TEMPLATE
    current_date = datetime.now().strftime("%Y-%m-%d")

    return template.format(
        current_date=current_date,
        chunk_length=chunk_length,
        engines=", ".join(SEARCH_ENGINES),
    )


def get_decision_prompt(question: str, snippet: str) -> str:
    """Get formatted pagination decision prompt.

    Args:
        question: The latest user question
        snippet: The page chunk the decision is about

    Returns:
        Formatted yes/no prompt
    """
    return DECISION_PROMPT_TEMPLATE.format(question=question, snippet=snippet)
