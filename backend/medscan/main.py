"""
Medicine Identification API

FastAPI application wiring the pipeline's collaborators.

Run with:
    uvicorn medscan.main:create_app --factory --reload
"""

from typing import Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import router as medicine_router
from .application.pipeline.orchestrator import PipelineBuilder, PipelineOrchestrator
from .application.services.registry_lookup import RegistryLookup
from .application.services.token_ledger import TokenLedger
from .config.settings import AppConfig
from .cross_cutting.logging import setup_logging
from .domain.ports.registry_store import RegistryStorePort
from .domain.ports.token_store import TokenStorePort
from .domain.ports.vision_model import VisionModelPort
from .infrastructure.llm.factory import VisionModelFactory
from .infrastructure.ledger.factory import TokenStoreFactory
from .infrastructure.registry.factory import RegistryStoreFactory


logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    model: Optional[VisionModelPort] = None,
    registry_store: Optional[RegistryStorePort] = None,
    token_store: Optional[TokenStorePort] = None
) -> FastAPI:
    """
    Build the application.

    Collaborators are created once here and shared through ``app.state``.
    Any of them may be passed in to replace the configured adapter.

    Args:
        config: Application configuration (default: from environment)
        model: Vision model override
        registry_store: Registry store override
        token_store: Token store override
    """
    if config is None:
        load_dotenv()
        config = AppConfig.from_env()

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.log_file,
        format_string=config.logging.format,
    )

    if model is None:
        model = VisionModelFactory.create_from_config(config.llm)
    if registry_store is None:
        registry_store = RegistryStoreFactory.create_from_config(config.registry)
    if token_store is None:
        token_store = TokenStoreFactory.create_from_config(config.ledger)

    ledger = TokenLedger(
        token_store,
        welcome_tokens=config.ledger.welcome_tokens,
        max_decrement_attempts=config.ledger.max_decrement_attempts,
    )
    orchestrator: PipelineOrchestrator = (
        PipelineBuilder()
        .with_model(model)
        .with_ledger(ledger)
        .with_registry_lookup(RegistryLookup(registry_store))
        .with_config(config.pipeline)
        .with_analysis_cost(config.ledger.analysis_cost)
        .build()
    )

    app = FastAPI(
        title="Medicine Identification API",
        description="Packaging photo to verified medicine report - vision model + registry lookup",
        version=__version__,
    )

    # NOTE: tighten allow_origins for production deployments
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.orchestrator = orchestrator
    app.state.ledger = ledger
    app.state.registry_store = registry_store

    app.include_router(medicine_router)

    @app.get("/")
    async def root():
        return {"service": "medscan", "version": __version__, "model": orchestrator.model_name}

    logger.info(
        f"Application ready (model={orchestrator.model_name}, ledger={config.ledger.type}, "
        f"registry={config.registry.path})"
    )
    return app
