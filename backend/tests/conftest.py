"""
Shared fixtures: scripted model responses, in-memory stores and a
pipeline factory.
"""

import base64
import io
import json

import pytest
from PIL import Image

from medscan.application.pipeline.orchestrator import PipelineOrchestrator
from medscan.application.services.registry_lookup import RegistryLookup
from medscan.application.services.token_ledger import TokenLedger
from medscan.config.settings import PipelineConfig, DEFAULT_REGISTRY_PATH
from medscan.infrastructure.ledger.memory_store import InMemoryTokenStore
from medscan.infrastructure.llm.scripted_model import ScriptedVisionModel
from medscan.infrastructure.registry.json_registry import JsonRegistryStore


USER_ID = "user-12345"


def tool_call_text(product_name="Panadol 500mg", confidence=0.95, **params):
    parameters = {
        "product_name": product_name,
        "registration_number": None,
        "active_ingredient": None,
        "manufacturer": None,
        "strength": None,
        "confidence": confidence,
        "all_visible_text": product_name,
    }
    parameters.update(params)
    body = {"tool_call": {"name": "medicine_database_lookup", "parameters": parameters}}
    return "```json\n" + json.dumps(body, indent=2) + "\n```"


def report_text(**fields):
    data = {
        "packaging_detected": "Packaging detected: blister strip of white tablets",
        "medicine_name": "Panadol 500mg Tablet (Paracetamol 500mg)",
        "generic_name": "Paracetamol",
        "purpose": "Relief of mild to moderate pain and fever.",
        "dosage_instructions": "Adults: 1-2 tablets every 4-6 hours, max 8 tablets a day.",
        "side_effects": "Rare: skin rash. Overdose can cause liver damage.",
        "allergy_warning": "Contains paracetamol.",
        "drug_interactions": "Warfarin, alcohol.",
        "safety_notes": "Do not combine with other paracetamol products.",
        "storage": "Store below 30°C.",
    }
    data.update(fields)
    return "```json\n" + json.dumps({"status": "SUCCESS", "data": data}, indent=2) + "\n```"


@pytest.fixture
def png_b64():
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(255, 255, 255)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


@pytest.fixture
def registry_store():
    return JsonRegistryStore(path=DEFAULT_REGISTRY_PATH)


@pytest.fixture
def build_pipeline(registry_store):
    """
    Factory: build_pipeline(responses, balances=None, **config)
    returns (orchestrator, model, token_store).
    """

    def _build(responses, balances=None, delay=0.0, store=None, **config):
        model = ScriptedVisionModel(responses, delay=delay)
        token_store = store if store is not None else InMemoryTokenStore(balances)
        ledger = TokenLedger(token_store, welcome_tokens=30)
        orchestrator = PipelineOrchestrator(
            model=model,
            ledger=ledger,
            registry_lookup=RegistryLookup(registry_store),
            config=PipelineConfig(**config),
        )
        return orchestrator, model, token_store

    return _build
