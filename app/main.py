from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Body, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import logging
from pydantic import BaseModel, Field
from pymongo import MongoClient

from agent.agent import ReplyGenerator
from agent.core.locks import KeyedLock
from agent.core.memory import ConversationStore, InMemoryConversationStore, MongoConversationStore
from agent.extractor import ProfileExtractor
from agent.gemini import GeminiClient
from agent.pipeline import MessagePipeline
from agent.tools.whatsapp import WhatsAppNotifier
from config.settings import Settings, get_settings


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("whatsapp_relay")


class ConsoleRequest(BaseModel):
    wa: Optional[Dict[str, Any]] = Field(
        default=None,
        description="One webhook entry object, shaped like entry[0] of a delivery",
    )
    prompt: Optional[str] = Field(default=None, description="Persona override for this reply")


def build_store(settings: Settings) -> ConversationStore:
    if not settings.mongo_uri:
        logger.warning("MONGO_URI not set; conversations are kept in memory only")
        return InMemoryConversationStore()
    client: MongoClient = MongoClient(settings.mongo_uri)
    logger.info("Using MongoDB database %s", settings.mongo_db)
    return MongoConversationStore(client[settings.mongo_db])


def build_pipeline(settings: Settings, store: Optional[ConversationStore] = None) -> MessagePipeline:
    store = store if store is not None else build_store(settings)
    reply_client = GeminiClient(settings, settings.gemini_reply_model)
    extract_client = GeminiClient(settings, settings.gemini_extract_model)
    return MessagePipeline(
        settings=settings,
        store=store,
        generator=ReplyGenerator(store, reply_client),
        notifier=WhatsAppNotifier(settings),
        extractor=ProfileExtractor(store, extract_client),
        locks=KeyedLock(),
    )


def create_app(pipeline: Optional[MessagePipeline] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level)
    logger.info(
        "Config: reply_model=%s extract_model=%s key_set=%s whatsapp_configured=%s",
        settings.gemini_reply_model,
        settings.gemini_extract_model,
        bool(settings.gemini_api_key),
        bool(settings.whatsapp_token and settings.phone_number_id),
    )

    pipeline = pipeline or build_pipeline(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store = pipeline.store
        if isinstance(store, MongoConversationStore):
            store.ensure_indexes()
            logger.info("MongoDB Connected")
        yield

    app = FastAPI(title="WhatsApp Gemini Wellness Bot", version="1.0.0", lifespan=lifespan)
    app.state.pipeline = pipeline

    # CORS: allow the local test console during development
    if settings.is_development:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/", response_class=PlainTextResponse)
    def index() -> str:
        return "Welcome to the WhatsApp Gemini Bot!"

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/webhook")
    def verify_webhook(
        mode: Optional[str] = Query(default=None, alias="hub.mode"),
        token: Optional[str] = Query(default=None, alias="hub.verify_token"),
        challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
    ) -> PlainTextResponse:
        answer = app.state.pipeline.verify(mode, token, challenge)
        if answer is None:
            return PlainTextResponse("Forbidden", status_code=403)
        return PlainTextResponse(answer, status_code=200)

    @app.post("/webhook")
    def receive_webhook(payload: Any = Body(default=None)) -> PlainTextResponse:
        try:
            result = app.state.pipeline.handle_webhook(payload)
            if result is not None:
                logger.info("Webhook processed: reply_chars=%s degraded=%s", len(result.text), not result.ok)
        except Exception as e:
            logger.exception("Webhook error: %s", e)
            return PlainTextResponse("Internal Server Error", status_code=500)
        return PlainTextResponse("OK", status_code=200)

    @app.post("/test")
    def test_message(req: ConsoleRequest):
        logger.info("Test request received: prompt_override=%s", bool(req.prompt))
        try:
            result = app.state.pipeline.handle_entry(req.wa, req.prompt)
        except Exception as e:
            logger.exception("Test message processing failed: %s", e)
            return JSONResponse(
                status_code=500,
                content={"status": "error", "message": "Error processing message"},
            )
        return {
            "status": "success",
            "message": "Message processed successfully!",
            "reply": None if result is None else result.text,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=get_settings().port)
