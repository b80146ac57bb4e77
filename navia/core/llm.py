"""Completion/embedding collaborators: LangChain chat models plus the small helpers every caller shares."""
from __future__ import annotations

import json
from typing import Any, Callable, Iterable

from langchain_core.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from navia.core.config.models import LLMConfig


def build_chat_model(config: LLMConfig, fast: bool = False) -> BaseChatModel:
    model = config.fast_model if fast else config.chat_model
    # the fast model does routing and planning, which should be repeatable
    temperature = 0 if fast else config.temperature
    return ChatOpenAI(model=model, temperature=temperature, timeout=config.request_timeout_s)


def build_embeddings(config: LLMConfig) -> Embeddings:
    return OpenAIEmbeddings(model=config.embedding_model)


def message_text(out: Any) -> str:
    content = out.content if hasattr(out, "content") else out
    if isinstance(content, list):
        # content blocks: keep only the text parts
        return "".join(b.get("text", "") if isinstance(b, dict) else str(b) for b in content)
    return str(content)


def parse_json_output(text: str) -> dict[str, Any]:
    """Parse a JSON object from model output, tolerating a markdown fence. Raises ValueError."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
    text = text.strip()
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def to_langchain_messages(messages: Iterable[Any]) -> list[BaseMessage]:
    """Convert {role, content} dicts or ChatMessage models into LangChain messages."""
    out: list[BaseMessage] = []
    for m in messages:
        role = m["role"] if isinstance(m, dict) else m.role
        content = m["content"] if isinstance(m, dict) else m.content
        if role == "system":
            out.append(SystemMessage(content=content))
        elif role == "assistant":
            out.append(AIMessage(content=content))
        else:
            out.append(HumanMessage(content=content))
    return out


async def complete(llm: BaseChatModel, messages: Iterable[Any]) -> str:
    out = await llm.ainvoke(to_langchain_messages(messages))
    return message_text(out)


async def stream_complete(llm: BaseChatModel, messages: Iterable[Any], on_token: Callable[[str], None]) -> str:
    """Stream a completion, handing each token to on_token. Returns the accumulated text."""
    parts: list[str] = []
    async for chunk in llm.astream(to_langchain_messages(messages)):
        token = message_text(chunk)
        if not token:
            continue
        parts.append(token)
        on_token(token)
    return "".join(parts)
