"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (vision provider client)
- Register routes
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.vision.gemini import GeminiVisionProvider, build_vision_client
from config import AppConfig
from session.bootstrap import ServicesFactory, build_services

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    *,
    vision_provider: GeminiVisionProvider | None = None,
    services_factory: ServicesFactory = build_services,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests pass their own config, vision provider and services factory; the
    ASGI entry point passes nothing and gets the environment's.
    """
    config = config or AppConfig.load_from_env()

    app = FastAPI(title="Assistive Vision API")

    app.state.config = config
    app.state.services_factory = services_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One provider client per process; None means "key missing" (401)
    app.state.vision_provider = vision_provider or build_vision_provider(config)

    register_routes(app)

    return app


def build_vision_provider(config: AppConfig) -> GeminiVisionProvider | None:
    """Gemini through its OpenAI-compatible endpoint, when a key is configured."""
    if not config.gemini_api_key:
        return None
    client = build_vision_client(
        api_key=config.gemini_api_key,
        base_url=config.vision_base_url,
    )
    return GeminiVisionProvider(client=client, model=config.vision_model)
