# classes/llm_client.py
from typing import Any, Dict, List, Optional, Protocol

from openai import OpenAI
from langchain_google_vertexai import ChatVertexAI
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from classes import app_config


class ModelCollaborator(Protocol):
    """
    Anything that takes role/content messages plus sampling parameters and
    returns a chat-completions shaped payload:

        {"choices": [{"message": {"content": "..."}}]}
    """

    def invoke(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]: ...


def is_openai_model(model_name) -> bool:
    # keep it simple; adjust if you start using exotic names
    prefixes = ("gpt-", "gpt4", "o1", "o3", "o4")
    return any(model_name.startswith(p) for p in prefixes)


class ChatLlmClient:
    """
    Minimal wrapper for chat-style use:

        payload = chat_llm.invoke([{"role": "user", "content": "..."}], temperature=0.7)

    Under the hood:
    - Vertex (Gemini): ChatVertexAI.invoke(messages)
    - OpenAI: Chat Completions API with messages=[{role, content}, ...]

    One HTTP call per invoke; retries and backoff are the caller's business.
    """

    def __init__(
        self,
        model_name: str,
        *,
        vertex_project: str,
        vertex_region: str,
        timeout: float | None = None,
    ):
        self.provider = "openai" if is_openai_model(model_name) else "vertex"
        self.model_name = model_name
        self._timeout = timeout

        if self.provider == "vertex":
            self._vertex = ChatVertexAI(
                project=vertex_project,
                location=vertex_region,
                model_name=model_name,
                timeout=timeout,
                max_retries=0,
            )
            self._client = None
        elif self.provider == "openai":
            self._vertex = None
            client_kwargs: Dict[str, Any] = {"max_retries": 0}
            if timeout is not None:
                client_kwargs["timeout"] = timeout

            self._client = OpenAI(**client_kwargs)
        else:
            raise ValueError(f"Unknown LLM provider: {self.provider}")

    def _to_langchain_messages(self, messages: List[Dict[str, str]]) -> List[BaseMessage]:
        out: List[BaseMessage] = []
        for m in messages:
            role = (m.get("role") or "").strip().lower()
            content = str(m.get("content", ""))
            if role == "system":
                out.append(SystemMessage(content=content))
            elif role == "assistant":
                out.append(AIMessage(content=content))
            else:
                out.append(HumanMessage(content=content))
        return out

    def invoke(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Single HTTP call without retries/backoff.
        """
        if self.provider == "vertex":
            params: Dict[str, Any] = {}
            if temperature is not None:
                params["temperature"] = temperature
            if max_tokens is not None:
                params["max_output_tokens"] = max_tokens

            resp = self._vertex.invoke(self._to_langchain_messages(messages), **params)
            content = resp if isinstance(resp, str) else getattr(resp, "content", str(resp))
            return {
                "model": self.model_name,
                "choices": [{"message": {"role": "assistant", "content": content}}],
            }

        params = {}
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        resp = self._client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            **params,
        )
        return resp.model_dump()


def build_chat_llm(model_name: str | None = None, timeout: float | None = None) -> ChatLlmClient:
    return ChatLlmClient(
        model_name=model_name or app_config.DEFAULT_MODEL,
        vertex_project=app_config.PROJECT_ID,
        vertex_region=app_config.REGION,
        timeout=timeout or app_config.LLM_TIMEOUT,
    )
