"""
Debug logging for chat model calls made by the synthesis service.

Levels come from LLM_DEBUG_LEVEL (NONE, INFO, DEBUG, TRACE):
- INFO: one line per call with latency and token count
- DEBUG: plus message previews
- TRACE: plus full prompts and responses

Entries can also be appended to <LLM_LOG_DIR>/<session_id>/logs/llm_calls.jsonl
when LLM_LOG_TO_FILE=true. Screenshot payloads never reach the logs; they are
replaced with a summary of their media type and size.
"""

import json
import os
import time
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv


class LogLevel(Enum):
    """Verbosity of LLM call logging."""

    NONE = 0
    INFO = 1
    DEBUG = 2
    TRACE = 3


def summarize_data_url(url: str) -> str:
    """Replace a base64 image data URL with a size summary."""
    try:
        header, payload = url.split("base64,", 1)
        image_type = header.split("image/")[1].split(";")[0]
        return f"[IMAGE_DATA: {image_type}, base64 encoded, {len(payload):,} bytes]"
    except (IndexError, ValueError):
        return "[IMAGE_DATA: base64 encoded image]"


def _summarize_part(part: Any) -> Any:
    if not isinstance(part, dict):
        return part
    if part.get("type") == "image_url":
        url = part.get("image_url", {})
        return {"type": "text", "text": summarize_data_url(url.get("url", "") if isinstance(url, dict) else str(url))}
    if part.get("type") == "image":
        source = part.get("source", {})
        size = len(source.get("data", ""))
        return {"type": "text", "text": f"[IMAGE_DATA: {source.get('media_type', 'unknown')}, base64 encoded, {size:,} bytes]"}
    return part


def redact_images(content: Any) -> Any:
    """Message content with every image payload replaced by a summary."""
    if isinstance(content, str):
        return summarize_data_url(content) if content.startswith("data:image/") else content
    if isinstance(content, list):
        return [_summarize_part(part) for part in content]
    return content


def _preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "... [truncated]"


def _as_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, (list, dict)):
        return json.dumps(content, indent=2, ensure_ascii=False)
    return str(content)


class LLMLogger:
    """Process-wide logger for chat model calls, configured from the environment."""

    _instance: Optional["LLMLogger"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._configured = False
        return cls._instance

    def __init__(self):
        if self._configured:
            return

        load_dotenv()

        self.level = LogLevel.__members__.get(os.getenv("LLM_DEBUG_LEVEL", "NONE").upper(), LogLevel.NONE)
        self.log_to_file = os.getenv("LLM_LOG_TO_FILE", "false").lower() == "true"
        self.log_dir = Path(os.getenv("LLM_LOG_DIR", "outputs"))
        self._configured = True

    @property
    def enabled(self) -> bool:
        return self.level != LogLevel.NONE

    def at_least(self, level: LogLevel) -> bool:
        return self.level.value >= level.value

    @staticmethod
    def extract_token_usage(response: Any) -> Dict[str, Optional[int]]:
        """Pull prompt/completion/total token counts off a LangChain response."""
        usage_metadata = getattr(response, "usage_metadata", None)
        if usage_metadata:
            return {
                "prompt_tokens": usage_metadata.get("input_tokens"),
                "completion_tokens": usage_metadata.get("output_tokens"),
                "total_tokens": usage_metadata.get("total_tokens"),
            }
        response_metadata = getattr(response, "response_metadata", None) or {}
        usage = response_metadata.get("usage") or response_metadata.get("token_usage") or {}
        return {
            "prompt_tokens": usage.get("prompt_tokens", usage.get("input_tokens")),
            "completion_tokens": usage.get("completion_tokens", usage.get("output_tokens")),
            "total_tokens": usage.get("total_tokens"),
        }

    def describe_messages(self, messages: List[Any]) -> List[Dict[str, Any]]:
        return [
            {"type": type(message).__name__, "content": redact_images(getattr(message, "content", message))}
            for message in messages
        ]

    def record(self, session_id: Optional[str], entry: Dict[str, Any]) -> None:
        """Append an entry to the session's JSON Lines file, if file logging is on."""
        if not self.log_to_file or not session_id:
            return

        log_file = self.log_dir / session_id / "logs" / "llm_calls.jsonl"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        entry = {"timestamp": datetime.now().isoformat(), "level": self.level.name, **entry}
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")

    def log_request(self, call: Dict[str, Any], messages: List[Any], settings: Dict[str, Any]) -> None:
        described = self.describe_messages(messages)
        print(f"[{datetime.now().isoformat()}] LLM Call: [{call['component']}] {call['provider']}/{call['model']}")

        if self.level == LogLevel.DEBUG:
            for index, message in enumerate(described, 1):
                print(f"    {index}. [{message['type']}] {_preview(_as_text(message['content']), 150)}")
        elif self.level == LogLevel.TRACE:
            for index, message in enumerate(described, 1):
                print(f"    [{index}] {message['type']}:\n{_as_text(message['content'])}")

        self.record(call["session_id"], {
            **call,
            "event": "request",
            "request": {
                "message_count": len(messages),
                "messages": described if self.level == LogLevel.TRACE else [],
                **settings,
            },
        })

    def log_response(self, call: Dict[str, Any], response: Any, latency_ms: float) -> None:
        content = _as_text(getattr(response, "content", response))
        usage = self.extract_token_usage(response)

        summary = f"[{call['component']}] {call['provider']}/{call['model']} | {latency_ms:.1f}ms"
        if usage.get("total_tokens") is not None:
            summary += f" | {usage['total_tokens']} tokens"
        print(f"[{datetime.now().isoformat()}] LLM Response: {summary}")
        if self.level == LogLevel.DEBUG:
            print(f"  Response: {_preview(content, 200)}")
        elif self.level == LogLevel.TRACE:
            print(f"  RESPONSE:\n{content}\n  TOKEN USAGE: {usage}")

        self.record(call["session_id"], {
            **call,
            "event": "response",
            "response": {
                "content": content if self.level == LogLevel.TRACE else None,
                "content_preview": _preview(content, 200) if self.at_least(LogLevel.DEBUG) else None,
                "content_length": len(content),
            },
            "latency_ms": latency_ms,
            "usage": usage,
        })

    def log_error(self, call: Dict[str, Any], error: BaseException) -> None:
        print(f"[{datetime.now().isoformat()}] LLM Error: [{call['component']}] {type(error).__name__}: {error}")
        self.record(call["session_id"], {**call, "event": "error", "error": f"{type(error).__name__}: {error}"})


def get_logger() -> LLMLogger:
    """Get the singleton logger instance."""
    return LLMLogger()


class LoggedLLM:
    """
    Chat model wrapper that logs every ``ainvoke`` call.

    Attributes not defined here are read from the wrapped model.
    """

    def __init__(
        self,
        llm_instance: Any,
        component: str,
        provider: str,
        model: str,
        session_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            llm_instance: The wrapped chat model (ChatOpenAI or ChatAnthropic)
            component: Name of the calling component, e.g. "synthesizer"
            provider: "openai" or "anthropic"
            model: Model name
            session_id: Session the calls belong to; selects the log file
            metadata: Extra fields copied into every file entry
        """
        self.llm = llm_instance
        self.component = component
        self.provider = provider
        self.model = model
        self.session_id = session_id
        self.metadata = metadata or {}
        self.logger = get_logger()

    def __getattr__(self, name: str):
        return getattr(self.llm, name)

    async def ainvoke(self, messages: List[Any], **kwargs) -> Any:
        if not self.logger.enabled:
            return await self.llm.ainvoke(messages, **kwargs)

        call = {
            "invocation_id": str(uuid.uuid4()),
            "component": self.component,
            "provider": self.provider,
            "model": self.model,
            "session_id": self.session_id,
            "metadata": self.metadata,
        }
        self.logger.log_request(call, messages, {
            "temperature": getattr(self.llm, "temperature", None),
            "max_tokens": getattr(self.llm, "max_tokens", None),
        })

        start_time = time.time()
        try:
            response = await self.llm.ainvoke(messages, **kwargs)
        except Exception as e:
            self.logger.log_error(call, e)
            raise

        self.logger.log_response(call, response, (time.time() - start_time) * 1000)
        return response
