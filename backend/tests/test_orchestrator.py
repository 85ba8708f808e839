"""
End-to-end runs of the pipeline with a scripted model.

Every test checks the token balance as well as the status: a failed run
must leave it untouched and a delivered answer must cost exactly one.
"""

import asyncio
import base64

import pytest

from medscan.application.pipeline.orchestrator import (
    FIRST_CALL_FAILED,
    MODEL_TIMED_OUT,
    SECOND_CALL_FAILED,
    PipelineBuilder,
)
from medscan.application.services.token_ledger import TokenLedger
from medscan.domain.entities.medicine_report import REPORT_FIELDS, DISCLAIMER
from medscan.domain.entities.pipeline_result import PipelineStatus
from medscan.domain.exceptions import (
    LedgerStoreError,
    ModelRateLimitError,
    ModelTimeoutError,
    ModelTransportError,
    PipelineConfigurationError,
)
from medscan.infrastructure.ledger.memory_store import InMemoryTokenStore
from medscan.infrastructure.llm.scripted_model import ScriptedVisionModel

from conftest import USER_ID, tool_call_text, report_text


DIRECT_ANSWER = "Paracetamol relieves mild pain and fever. Adults may take 500mg to 1g every 4-6 hours."


class FailingStore(InMemoryTokenStore):
    async def get_balance(self, user_id):
        raise LedgerStoreError("database is locked", user_id=user_id)


class ReadOnlyStore(InMemoryTokenStore):
    async def set_balance(self, user_id, new_balance, expected_balance):
        raise LedgerStoreError("attempt to write a readonly database", user_id=user_id)


def balance(store):
    return asyncio.run(store.get_balance(USER_ID))


def run(orchestrator, image, query="What is this medicine?"):
    return asyncio.run(orchestrator.run_pipeline(image, query, USER_ID))


def assert_report_shape(data):
    for name in REPORT_FIELDS:
        assert name in data
    assert data["disclaimer"] == DISCLAIMER


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

def test_clear_packaging_with_registry_hit(build_pipeline, png_b64):
    orchestrator, model, store = build_pipeline(
        [tool_call_text("Panadol 500mg", confidence=0.95), report_text()],
        balances={USER_ID: 30},
    )

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SUCCESS
    assert "Panadol" in result.data["medicine_name"]
    assert result.tokens_remaining == 29
    assert balance(store) == 29
    assert model.call_count == 2

    assert result.metadata["registry_status"] == "FOUND"
    assert result.metadata["database_hit"] is True
    assert result.metadata["search_method"] == "product_name"
    assert result.metadata["source"] == "structured"
    assert result.metadata["confidence"] == pytest.approx(0.95)
    assert result.metadata["low_confidence"] is False
    assert result.metadata["debited"] is True
    assert result.data["database_result"]["registration_number"] == "MAL19913416XZ"
    assert result.warnings == []
    assert_report_shape(result.data)


def test_second_call_carries_registry_record_and_image(build_pipeline, png_b64):
    orchestrator, model, _ = build_pipeline([tool_call_text("Panadol 500mg"), report_text()])

    run(orchestrator, png_b64)

    first, second = model.calls
    assert "Do NOT use prior or memorized knowledge" in first.prompt
    assert "PRODUCT FOUND AND VERIFIED" in second.prompt
    assert "MAL19913416XZ" in second.prompt
    assert first.image is not None and second.image is not None
    assert second.image.format == "png"


def test_zero_balance_never_calls_model(build_pipeline, png_b64):
    orchestrator, model, store = build_pipeline([tool_call_text(), report_text()], balances={USER_ID: 0})

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.INSUFFICIENT_TOKENS
    assert result.tokens_remaining == 0
    assert result.data is None
    assert model.call_count == 0
    assert balance(store) == 0
    assert result.metadata["failed_state"] == "token_check"


def test_direct_answer_skips_second_call(build_pipeline):
    orchestrator, model, store = build_pipeline([DIRECT_ANSWER], balances={USER_ID: 5})

    result = run(orchestrator, None, query="What is paracetamol used for?")

    assert result.status == PipelineStatus.SUCCESS
    assert result.data["text"] == DIRECT_ANSWER
    assert result.metadata["source"] == "direct_answer"
    assert result.metadata["registry_status"] == "NO_SIGNAL"
    assert "database_result" not in result.data
    assert model.call_count == 1
    assert balance(store) == 4
    assert list(result.metadata["states"]) == [
        "token_check", "first_call", "signal_parse", "token_debit", "done",
    ]
    assert_report_shape(result.data)


def test_unknown_product_still_gets_report(build_pipeline, png_b64):
    orchestrator, model, store = build_pipeline(
        [tool_call_text("Unknown Brand XYZ"), report_text(medicine_name="Unknown Brand XYZ")],
        balances={USER_ID: 10},
    )

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SUCCESS
    assert result.metadata["registry_status"] == "NOT_FOUND"
    assert result.metadata["database_hit"] is False
    assert result.data["database_result"]["status"] == "NOT_FOUND"
    assert result.data["medicine_name"] == "Unknown Brand XYZ"
    assert "PRODUCT NOT FOUND" in model.prompts[1]
    assert any("No medicine found" in w for w in result.warnings)
    assert balance(store) == 9


# ---------------------------------------------------------------------------
# Charging
# ---------------------------------------------------------------------------

def test_concurrent_runs_with_one_token(build_pipeline, png_b64):
    def respond(prompt, image):
        if "PACKAGING READING" in prompt:
            return tool_call_text("Zyrtec")
        return report_text(medicine_name="Zyrtec 10mg")

    orchestrator, model, store = build_pipeline(respond, balances={USER_ID: 1}, delay=0.01)

    async def both():
        return await asyncio.gather(
            orchestrator.run_pipeline(png_b64, "What is this?", USER_ID),
            orchestrator.run_pipeline(png_b64, "What is this?", USER_ID),
        )

    results = asyncio.run(both())
    statuses = sorted(r.status.value for r in results)

    assert statuses == ["INSUFFICIENT_TOKENS", "SUCCESS"]
    assert balance(store) == 0
    assert model.call_count == 2


def test_sequential_runs_charge_once_each(build_pipeline):
    orchestrator, _, store = build_pipeline([DIRECT_ANSWER], balances={USER_ID: 2})

    assert run(orchestrator, None).status == PipelineStatus.SUCCESS
    assert run(orchestrator, None).status == PipelineStatus.SUCCESS
    third = run(orchestrator, None)

    assert third.status == PipelineStatus.INSUFFICIENT_TOKENS
    assert balance(store) == 0


def test_first_seen_user_is_provisioned(build_pipeline):
    orchestrator, _, store = build_pipeline([DIRECT_ANSWER])

    result = run(orchestrator, None)

    assert result.status == PipelineStatus.SUCCESS
    assert result.tokens_remaining == 29


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("responses, message", [
    ([ModelTransportError("connection reset", provider="gemini")], FIRST_CALL_FAILED),
    ([ModelRateLimitError(retry_after=30)], FIRST_CALL_FAILED),
    ([""], FIRST_CALL_FAILED),
    ([tool_call_text("Panadol 500mg"), ModelTransportError("502 Bad Gateway")], SECOND_CALL_FAILED),
    ([tool_call_text("Panadol 500mg"), "   "], SECOND_CALL_FAILED),
])
def test_model_failure_is_error_without_charge(build_pipeline, png_b64, responses, message):
    orchestrator, _, store = build_pipeline(responses, balances={USER_ID: 3})

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.ERROR
    assert result.message == message
    assert result.tokens_remaining is None
    assert balance(store) == 3
    assert result.metadata["debited"] is False


def test_model_deadline_is_service_unavailable(build_pipeline, png_b64):
    orchestrator, _, store = build_pipeline(
        [tool_call_text()], balances={USER_ID: 3}, delay=0.5, model_timeout_seconds=0.05,
    )

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SERVICE_UNAVAILABLE
    assert result.message == MODEL_TIMED_OUT
    assert result.metadata["failed_state"] == "first_call"
    assert balance(store) == 3


def test_provider_timeout_is_service_unavailable(build_pipeline, png_b64):
    orchestrator, _, store = build_pipeline(
        [tool_call_text("Panadol 500mg"), ModelTimeoutError(60)], balances={USER_ID: 3},
    )

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SERVICE_UNAVAILABLE
    assert result.metadata["failed_state"] == "second_call"
    assert balance(store) == 3


def test_ledger_outage_is_service_unavailable(build_pipeline, png_b64):
    orchestrator, model, _ = build_pipeline([tool_call_text()], store=FailingStore())

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SERVICE_UNAVAILABLE
    assert model.call_count == 0


def test_failed_debit_still_delivers_analysis(build_pipeline, png_b64):
    store = ReadOnlyStore({USER_ID: 5})
    orchestrator, model, _ = build_pipeline([tool_call_text(), report_text()], store=store)

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SUCCESS
    assert result.metadata["debited"] is False
    assert result.tokens_remaining == 5
    assert model.call_count == 2
    assert balance(store) == 5
    assert_report_shape(result.data)


def test_corrupt_image_is_error(build_pipeline):
    orchestrator, model, store = build_pipeline([tool_call_text()], balances={USER_ID: 3})
    junk = base64.b64encode(b"definitely not an image").decode("utf-8")

    result = run(orchestrator, junk)

    assert result.status == PipelineStatus.ERROR
    assert result.metadata["error"]["type"] == "InvalidImageError"
    assert model.call_count == 0
    assert balance(store) == 3


def test_missing_input_is_error(build_pipeline):
    orchestrator, model, _ = build_pipeline([DIRECT_ANSWER])

    result = asyncio.run(orchestrator.run_pipeline(None, "   ", USER_ID))

    assert result.status == PipelineStatus.ERROR
    assert result.metadata["error"]["details"]["field"] == "image_data"
    assert model.call_count == 0


# ---------------------------------------------------------------------------
# Degraded signals
# ---------------------------------------------------------------------------

def test_malformed_tool_call_continues_without_registry(build_pipeline, png_b64):
    orchestrator, model, store = build_pipeline(
        ['```json\n{"tool_call": {"parameters": {"product_name": "Panadol",}}\n```', report_text()],
        balances={USER_ID: 3},
    )

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SUCCESS
    assert result.metadata["registry_status"] == "TOOL_ERROR"
    assert "REGISTRY LOOKUP FAILED" in model.prompts[1]
    assert "registry_lookup" not in result.metadata["states"]
    assert result.data["database_result"]["details"]["reason"].startswith("Malformed tool-call JSON")
    assert balance(store) == 2


def test_empty_product_name_is_invalid_signal(build_pipeline, png_b64):
    orchestrator, model, _ = build_pipeline(
        ['```json\n{"tool_call": {"parameters": {"product_name": ""}}}\n```', report_text()],
    )

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SUCCESS
    assert result.metadata["registry_status"] == "INVALID_SIGNAL"
    assert model.call_count == 2
    assert result.data["database_result"]["details"] == {"reason": "tool_call has no product_name"}


def test_low_confidence_is_flagged_not_blocked(build_pipeline, png_b64):
    orchestrator, _, _ = build_pipeline([tool_call_text("Panadol 500mg", confidence=0.4), report_text()])

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SUCCESS
    assert result.metadata["low_confidence"] is True
    assert any("Low confidence" in w for w in result.warnings)


def test_prose_final_answer_keeps_report_keys(build_pipeline, png_b64):
    prose = "This appears to be Panadol, a paracetamol pain reliever."
    orchestrator, _, store = build_pipeline([tool_call_text("Panadol 500mg"), prose], balances={USER_ID: 3})

    result = run(orchestrator, png_b64)

    assert result.status == PipelineStatus.SUCCESS
    assert result.data["text"] == prose
    assert result.metadata["source"] == "raw_text"
    assert result.data["medicine_name"] == ""
    assert_report_shape(result.data)
    assert balance(store) == 2


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def test_builder_requires_collaborators():
    with pytest.raises(PipelineConfigurationError) as exc_info:
        PipelineBuilder().with_model(ScriptedVisionModel()).build()

    assert exc_info.value.details["missing_components"] == ["ledger", "registry_lookup"]


def test_builder_analysis_cost(registry_store):
    from medscan.application.services.registry_lookup import RegistryLookup

    store = InMemoryTokenStore({USER_ID: 1})
    orchestrator = (
        PipelineBuilder()
        .with_model(ScriptedVisionModel([DIRECT_ANSWER]))
        .with_ledger(TokenLedger(store))
        .with_registry_lookup(RegistryLookup(registry_store))
        .with_analysis_cost(2)
        .build()
    )

    result = run(orchestrator, None)

    assert result.status == PipelineStatus.INSUFFICIENT_TOKENS
    assert result.tokens_remaining == 1
    assert balance(store) == 1
