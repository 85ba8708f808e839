import json

import pytest

from medscan.application.pipeline.prompts import (
    FINAL_REPORT_SCHEMA,
    PromptContext,
    PromptStage,
    TOOL_CALL_SCHEMA,
    TOOL_NAME,
    build_prompt,
)
from medscan.domain.entities.medicine_report import REPORT_FIELDS, DISCLAIMER
from medscan.domain.entities.registry import RegistryOutcome, RegistryRecord, RegistryStatus, SearchMethod


RECORD = RegistryRecord(
    id="1",
    registration_number="MAL19913416XZ",
    product_name="PANADOL 500MG TABLET",
    active_ingredient="Paracetamol 500mg",
    manufacturer="GlaxoSmithKline",
)


def test_initial_prompt_is_deterministic():
    context = PromptContext(user_query="What is this?")
    assert build_prompt(PromptStage.INITIAL, context) == build_prompt(PromptStage.INITIAL, context)


def test_initial_prompt_forbids_memorized_names():
    prompt = build_prompt(PromptStage.INITIAL, PromptContext(user_query="What is this?"))

    assert "Do NOT use prior or memorized knowledge of medicine names" in prompt
    assert TOOL_NAME in prompt
    assert json.dumps(TOOL_CALL_SCHEMA, indent=2) in prompt
    assert "without any JSON" in prompt


def test_query_and_image_note_are_embedded():
    with_image = build_prompt(PromptStage.INITIAL, PromptContext(user_query="  Is it safe?  "))
    without_image = build_prompt(PromptStage.INITIAL, PromptContext(user_query="Is it safe?", has_image=False))

    assert "## USER QUERY\nIs it safe?\n" in with_image
    assert "A packaging photo is attached." in with_image
    assert "No image was provided." in without_image


def test_augmented_prompt_requires_outcome():
    with pytest.raises(ValueError):
        build_prompt(PromptStage.AUGMENTED, PromptContext(user_query="What is this?"))


def test_augmented_prompt_with_registry_hit():
    outcome = RegistryOutcome.found(RECORD, SearchMethod.REGISTRATION_NUMBER, original_product="Panadol")
    prompt = build_prompt(PromptStage.AUGMENTED, PromptContext(user_query="Dose?", registry_outcome=outcome))

    assert "PRODUCT FOUND AND VERIFIED" in prompt
    assert "MAL19913416XZ" in prompt
    assert '"search_method": "registration_number"' in prompt
    assert "Prefer the registry-verified product name" in prompt
    assert "Information unavailable" in prompt
    for name in REPORT_FIELDS:
        assert f'"{name}"' in prompt
    assert DISCLAIMER in prompt


@pytest.mark.parametrize("status, line", [
    (RegistryStatus.NOT_FOUND, "PRODUCT NOT FOUND"),
    (RegistryStatus.TOOL_ERROR, "REGISTRY LOOKUP FAILED"),
    (RegistryStatus.INVALID_SIGNAL, "no usable product name"),
])
def test_augmented_prompt_status_line(status, line):
    outcome = RegistryOutcome.sentinel(status, original_product="Panadol")
    prompt = build_prompt(PromptStage.AUGMENTED, PromptContext(user_query="Dose?", registry_outcome=outcome))

    assert line in prompt
    assert f'"status": "{status.value}"' in prompt


def test_augmented_prompt_is_deterministic():
    outcome = RegistryOutcome.sentinel(RegistryStatus.NOT_FOUND, original_product="Pánadol")
    context = PromptContext(user_query="Dose?", registry_outcome=outcome)

    first = build_prompt(PromptStage.AUGMENTED, context)
    assert first == build_prompt(PromptStage.AUGMENTED, context)
    assert "Pánadol" in first


def test_final_schema_lists_every_section():
    assert list(FINAL_REPORT_SCHEMA["data"]) == list(REPORT_FIELDS) + ["disclaimer"]
