"""
LangChain-based code synthesis service for multi-screen prototypes.
"""

import json
import os
from typing import Any, List, Optional

from dotenv import load_dotenv
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from prototype_gen.errors import SynthesisServiceError
from prototype_gen.models import ServiceReply, parse_data_url
from prototype_gen.utils.llm_logger import LLMLogger, LoggedLLM


SYSTEM_PROMPT = """You are an expert Next.js developer. Your task is to generate a complete, functional
Next.js application based on a sequence of UI screenshots.

The application must use the Next.js App Router.
Use TypeScript and TSX files.
Use TailwindCSS for styling. You can use shadcn/ui components if they are appropriate, as they are
available in the project.
The navigation between pages must follow the order of the images provided. Add Next.js <Link>
components or buttons with router.push to navigate from one screen to the next. The first image is
the home page, the second is the next page, and so on.

Create a root layout in 'src/app/layout.tsx'.
Create a home page at 'src/app/page.tsx' which corresponds to the first image.
Create subsequent pages for the other images (e.g., 'src/app/screen2/page.tsx', 'src/app/screen3/page.tsx').
You can create reusable components in 'src/components/'.
Use placeholder images from https://placehold.co where necessary."""


OUTPUT_INSTRUCTIONS = """The output must be a single JSON object containing a 'files' property.
The 'files' property must be an array of objects, where each object represents a file and has two
keys: 'path' (the full file path, e.g., 'src/app/page.tsx') and 'content' (the complete code for
that file).

Return ONLY the JSON object, no explanations."""


DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-latest",
}


class ResponseParser:
    """Parses chat model responses to extract the JSON file set."""

    @staticmethod
    def response_text(content: Any) -> str:
        """Flatten string or content-block message content into text."""
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = []
            for block in content:
                if isinstance(block, str):
                    parts.append(block)
                elif isinstance(block, dict) and block.get("type") == "text":
                    parts.append(block.get("text", ""))
            return "".join(parts)
        return str(content or "")

    @staticmethod
    def extract_json(response_text: str) -> Any:
        """
        Extract a JSON document from a model response.

        Tries, in order: the whole response, the first fenced code block, and
        the span between the first opening and last closing bracket.

        Raises:
            SynthesisServiceError: If no candidate parses.
        """
        text = response_text.strip()
        if not text:
            raise SynthesisServiceError("Failed to generate code from the model.")

        candidates = [text]

        if "```json" in text:
            candidates.append(text.split("```json", 1)[1].split("```", 1)[0].strip())
        elif "```" in text:
            parts = text.split("```")
            if len(parts) >= 3:
                candidates.append(parts[1].strip())

        openings = [i for i in (text.find("{"), text.find("[")) if i >= 0]
        if openings:
            start = min(openings)
            end = text.rfind("}" if text[start] == "{" else "]")
            if end > start:
                candidates.append(text[start:end + 1])

        for candidate in candidates:
            try:
                return json.loads(candidate)
            except ValueError:
                continue

        raise SynthesisServiceError("The model response did not contain a valid JSON file set.")


class LangChainSynthesisService:
    """Generates a Next.js codebase from ordered screenshots with a vision chat model."""

    def __init__(
        self,
        provider: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
        session_id: Optional[str] = None,
        llm: Optional[Any] = None,
    ):
        """
        Initialize the service.

        Args:
            provider: LLM provider (openai or anthropic). If None, reads SYNTHESIS_PROVIDER.
            model_name: Model name. If None, reads SYNTHESIS_MODEL or uses the provider default.
            temperature: Generation temperature. If None, reads SYNTHESIS_TEMPERATURE.
            max_tokens: Maximum tokens to generate. If None, reads SYNTHESIS_MAX_TOKENS.
            api_key: API key (optional, uses the provider's environment variable).
            session_id: Session identifier attached to LLM call logs.
            llm: Pre-built chat model to use instead of constructing one.
        """
        load_dotenv()

        self.provider = (provider or os.getenv("SYNTHESIS_PROVIDER", "openai")).lower()
        if self.provider not in DEFAULT_MODELS:
            raise ValueError(f"Unsupported provider: {self.provider}")

        self.model_name = model_name or os.getenv("SYNTHESIS_MODEL") or DEFAULT_MODELS[self.provider]
        self.temperature = (
            temperature if temperature is not None
            else float(os.getenv("SYNTHESIS_TEMPERATURE", "0.2"))
        )
        self.max_tokens = (
            max_tokens if max_tokens is not None
            else int(os.getenv("SYNTHESIS_MAX_TOKENS", "8192"))
        )
        self.parser = ResponseParser()

        if llm is None:
            llm = self._build_llm(api_key)

        self.llm = LoggedLLM(
            llm_instance=llm,
            component="synthesizer",
            provider=self.provider,
            model=self.model_name,
            session_id=session_id,
            metadata={"temperature": self.temperature, "max_tokens": self.max_tokens},
        )

    def _build_llm(self, api_key: Optional[str]):
        if self.provider == "openai":
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("OPENAI_API_KEY environment variable not set")
            return ChatOpenAI(
                model=self.model_name,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                api_key=api_key,
            )

        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")
        return ChatAnthropic(
            model=self.model_name,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            api_key=api_key,
        )

    def _image_part(self, src: str) -> dict:
        if self.provider == "openai":
            return {"type": "image_url", "image_url": {"url": src}}

        media_type, data = parse_data_url(src)
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": media_type, "data": data},
        }

    def create_messages(self, images: List[str]) -> List:
        """
        Build the prompt: system instructions plus one human message that
        captions each screenshot with its position in the navigation order.
        """
        content = [{"type": "text", "text": "Here is the sequence of screens to implement:"}]
        for index, src in enumerate(images):
            content.append({"type": "text", "text": f"Screen {index}:"})
            content.append(self._image_part(src))
        content.append({"type": "text", "text": OUTPUT_INSTRUCTIONS})

        return [
            SystemMessage(content=SYSTEM_PROMPT),
            HumanMessage(content=content),
        ]

    async def generate_files(self, images: List[str]) -> ServiceReply:
        """
        Ask the model for a codebase covering the given screens.

        Args:
            images: Screenshot data URLs in navigation order.

        Returns:
            ServiceReply whose payload is the decoded JSON document.
        """
        messages = self.create_messages(images)
        response = await self.llm.ainvoke(messages)

        text = self.parser.response_text(getattr(response, "content", response))
        payload = self.parser.extract_json(text)
        usage = LLMLogger.extract_token_usage(response)

        return ServiceReply(
            payload=payload,
            provider=self.provider,
            model_name=self.model_name,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
