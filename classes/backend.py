# classes/backend.py

import asyncio
import json
import traceback

from classes import app_config
from classes.app_config import logger
from classes.base_utils import BaseUtils
from classes.chat_store import ChatStore
from classes.request_gate import (
    CONVERSATIONS_CACHE,
    SETTINGS_CACHE,
    RequestGate,
    conversations_cache_key,
    settings_cache_key,
)
from classes.response_pipeline import ReasoningServiceError, ResponsePipeline
from classes.section_parser import structured_response_from_message

EXPORT_FORMATS = ("pdf", "markdown")


class ConversationNotFound(ValueError):
    pass


class Backend(BaseUtils):
    def __init__(self, store: ChatStore, gate: RequestGate, pipeline: ResponsePipeline):
        self.store = store
        self.gate = gate
        self.pipeline = pipeline

    async def _db(self, fn, *args, **kwargs):
        # store calls are blocking; keep them off the event loop
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def process_request(self, user: dict, request_data: dict) -> dict:
        """
        Core request handling logic.
        Takes a parsed JSON dict ({type, payload}) and returns the response_data dict.
        """
        request_type = request_data.get("type")
        payload = request_data.get("payload")
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValueError("'payload' must be an object")
        user_id = int(user["id"])

        logger.debug(f"process_request user={user_id} type={request_type}")

        response_data = {
            "status": "success",
            "message": "",
        }

        try:
            if request_type == "get_conversations":
                response_data["data"] = await self.get_conversations(user_id)

            elif request_type == "create_conversation":
                response_data["data"] = await self.create_conversation(user_id, payload)

            elif request_type == "get_conversation":
                response_data["data"] = await self.get_conversation(user_id, payload)

            elif request_type == "update_conversation_title":
                await self.update_conversation_title(user_id, payload)
                response_data["message"] = "Conversation renamed."

            elif request_type == "delete_conversation":
                await self.delete_conversation(user_id, payload)
                response_data["message"] = "Conversation deleted."

            elif request_type == "send_message":
                response_data["data"] = await self.send_message(user_id, payload)

            elif request_type == "get_settings":
                response_data["data"] = await self.get_settings(user_id)

            elif request_type == "update_settings":
                response_data["data"] = await self.update_settings(user_id, payload)
                response_data["message"] = "Settings saved."

            elif request_type == "get_exports":
                response_data["data"] = await self.get_exports(user_id, payload)

            elif request_type == "create_export":
                response_data["data"] = await self.create_export(user_id, payload)

            else:
                response_data["status"] = "error"
                response_data["message"] = f"Unknown request type: {request_type}"

        except (ValueError, ReasoningServiceError) as e:
            logger.info(f"Error while processing {request_type}: {e}")
            raise
        except Exception:
            logger.error(f"Unexpected error while processing {request_type}\n{traceback.format_exc()}")
            raise

        try:
            preview = json.dumps(response_data, indent=2, default=str)
        except (TypeError, ValueError):
            preview = str(response_data)
        logger.debug(f"response {preview}")

        return response_data

    # -----------------------
    # Conversations
    # -----------------------

    async def _owned_conversation(self, user_id: int, payload: dict) -> dict:
        conversation_id = self._require_int(payload, "conversation_id")
        conversation = await self._db(self.store.get_conversation, conversation_id, user_id)
        if not conversation:
            raise ConversationNotFound("Conversation not found")
        return conversation

    async def get_conversations(self, user_id: int) -> list[dict]:
        key = conversations_cache_key(user_id)
        cached = self.gate.cache_get(CONVERSATIONS_CACHE, key)
        if cached is not None:
            return cached

        rows = await self._db(self.store.get_conversations, user_id)
        listing = [
            {"id": r["id"], "title": r["title"], "updated_at": r["updated_at"]}
            for r in rows
        ]
        self.gate.cache_set(CONVERSATIONS_CACHE, key, listing)
        return listing

    async def create_conversation(self, user_id: int, payload: dict) -> dict:
        title = self._optional_str(payload, "title")
        conversation = await self._db(self.store.create_conversation, user_id, title)
        self.gate.invalidate_user_caches(user_id)
        return conversation

    async def get_conversation(self, user_id: int, payload: dict) -> dict:
        conversation = await self._owned_conversation(user_id, payload)
        messages = await self._db(self.store.get_messages, conversation["id"])
        for m in messages:
            if m["role"] == "assistant":
                m["structured"] = structured_response_from_message(m).model_dump()
        return {"conversation": conversation, "messages": messages}

    async def update_conversation_title(self, user_id: int, payload: dict) -> None:
        conversation = await self._owned_conversation(user_id, payload)
        title = self._optional_str(payload, "title")
        if not title or not title.strip():
            raise ValueError("'title' must be a non-empty string")
        await self._db(self.store.update_conversation_title, conversation["id"], title.strip())
        self.gate.invalidate_user_caches(user_id)

    async def delete_conversation(self, user_id: int, payload: dict) -> None:
        conversation = await self._owned_conversation(user_id, payload)
        await self._db(self.store.delete_conversation, conversation["id"])
        self.gate.invalidate_user_caches(user_id)

    # -----------------------
    # Chat
    # -----------------------

    async def send_message(self, user_id: int, payload: dict) -> dict:
        conversation = await self._owned_conversation(user_id, payload)
        content = self._optional_str(payload, "content")
        if not content or not content.strip():
            raise ValueError("'content' must be a non-empty string")

        user_message = await self._db(
            self.store.create_message,
            conversation_id=conversation["id"],
            user_id=user_id,
            role="user",
            content=content,
            is_voice_input=bool(payload.get("is_voice_input", False)),
            voice_transcription=self._optional_str(payload, "voice_transcription"),
        )

        settings = await self.get_settings(user_id)
        temperature = settings.get("temperature")
        temperature = app_config.DEFAULT_TEMPERATURE if temperature is None else float(temperature)
        max_tokens = int(settings.get("max_output_tokens") or app_config.DEFAULT_MAX_OUTPUT_TOKENS)

        try:
            response = await self.pipeline.run(content, temperature=temperature, max_tokens=max_tokens)
        except ReasoningServiceError as e:
            logger.error(f"[Chat] Failed to get AI response: {e}")
            raise ReasoningServiceError("Failed to get response from AI") from e

        assistant_message = await self._db(
            self.store.create_message,
            conversation_id=conversation["id"],
            user_id=user_id,
            role="assistant",
            thinking_status="complete",
            **response.to_message_fields(),
        )
        await self._db(self.store.touch_conversation, conversation["id"])
        self.gate.invalidate_user_caches(user_id)

        return {
            "user_message": user_message,
            "assistant_message": assistant_message,
            "response": response.model_dump(),
        }

    # -----------------------
    # Settings
    # -----------------------

    async def get_settings(self, user_id: int) -> dict:
        key = settings_cache_key(user_id)
        cached = self.gate.cache_get(SETTINGS_CACHE, key)
        if cached is not None:
            return cached

        settings = await self._db(self.store.get_user_settings, user_id) or {}
        self.gate.cache_set(SETTINGS_CACHE, key, settings)
        return settings

    async def update_settings(self, user_id: int, payload: dict) -> dict:
        settings = {
            "temperature": self._optional_number(payload, "temperature", 0, 2),
            "top_p": self._optional_number(payload, "top_p", 0, 1),
            "top_k": self._optional_number(payload, "top_k", 1),
            "max_output_tokens": self._optional_number(payload, "max_output_tokens", 1, 4096),
        }
        saved = await self._db(self.store.upsert_user_settings, user_id, settings)
        self.gate.invalidate_user_caches(user_id)
        return saved

    # -----------------------
    # Exports
    # -----------------------

    async def get_exports(self, user_id: int, payload: dict) -> list[dict]:
        conversation = await self._owned_conversation(user_id, payload)
        return await self._db(self.store.get_exports, user_id, conversation["id"])

    async def create_export(self, user_id: int, payload: dict) -> dict:
        conversation = await self._owned_conversation(user_id, payload)
        export_format = self._optional_str(payload, "format")
        if export_format not in EXPORT_FORMATS:
            raise ValueError(f"'format' must be one of {', '.join(EXPORT_FORMATS)}")
        file_url = self._optional_str(payload, "file_url")
        file_name = self._optional_str(payload, "file_name")
        if not file_url or not file_name:
            raise ValueError("'file_url' and 'file_name' are required")

        return await self._db(
            self.store.create_export,
            user_id,
            conversation["id"],
            export_format,
            file_url,
            file_name,
        )
