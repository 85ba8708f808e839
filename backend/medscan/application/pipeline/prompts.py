"""
Prompt Builder

Instruction text for the two model calls of the pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import json

from ...domain.entities.medicine_report import DISCLAIMER, REPORT_FIELDS
from ...domain.entities.registry import RegistryOutcome, RegistryStatus


class PromptStage(Enum):
    """Which model call the prompt is for."""

    INITIAL = "initial"
    AUGMENTED = "augmented"


TOOL_NAME = "medicine_database_lookup"

TOOL_CALL_SCHEMA = {
    "tool_call": {
        "name": TOOL_NAME,
        "parameters": {
            "product_name": "string",
            "registration_number": "string | null",
            "active_ingredient": "string | null",
            "manufacturer": "string | null",
            "strength": "string | null",
            "confidence": "number between 0.0 and 1.0",
            "all_visible_text": "string",
        },
    }
}

_FIELD_GUIDES = {
    "packaging_detected": "Describe the packaging type and the information visible in the image",
    "medicine_name": "Official product name (registry first) with active ingredients and strengths",
    "generic_name": "Generic name of the active ingredient(s)",
    "purpose": "What the medication treats and how it works",
    "dosage_instructions": "Dosage for different age groups",
    "side_effects": "Common and rare side effects, overdose risks",
    "allergy_warning": "Ingredients that commonly cause allergic reactions",
    "drug_interactions": "Interactions with other drugs, food and alcohol",
    "safety_notes": "Warnings for children, pregnancy and other conditions",
    "storage": "Storage instructions",
}

FINAL_REPORT_SCHEMA = {
    "status": "SUCCESS",
    "data": {
        **{name: f"[String: {_FIELD_GUIDES[name]}]" for name in REPORT_FIELDS},
        "disclaimer": DISCLAIMER,
    },
}

_ROLE = """You are a medicine identification specialist. You analyze photos of medicine packaging and questions about medicines, and you give accurate, safety-focused information.
"""

_INITIAL_TASK = """## TASK: PACKAGING READING AND REGISTRY LOOKUP SIGNAL

Read the packaging in the image. Work in this order:
1. Describe the packaging (box, blister, bottle, sachet, tube) and its condition.
2. List ALL visible text, ordered from most prominent (largest, boldest) to least prominent.
3. Take the single most prominent text as the product name.
4. Extract the active ingredient(s) and strength(s) only if they are printed on the packaging.
5. Extract the registration number (MAL/NOT) and manufacturer only if they are printed.
6. Rate your confidence that the product name is read correctly, from 0.0 to 1.0.

## STRICT RULES
- Read ONLY what is visibly present in the image.
- Do NOT use prior or memorized knowledge of medicine names. Never replace, correct or complete a name you cannot read.
- Use null for any parameter that is not visible.
- If there is no image or no packaging, or the question does not need a registry lookup, answer the question directly in plain text without any JSON.

## OUTPUT FORMAT
Your ENTIRE output must be a single JSON object wrapped in ```json tags, following the tool definition below. Do not add greetings or reasoning.

### TOOL DEFINITION
```json
{schema}
```
"""

_AUGMENTED_TASK = """## TASK: MEDICINE REPORT

The registry lookup is complete.

- **Database Status:** {status}
- **Database Data:**
```json
{payload}
```

## RULES
- Prefer the registry-verified product name, active ingredient and manufacturer over anything read or guessed from the image.
- When the registry has no match, rely on the packaging and general pharmacological knowledge.
- Fill purpose, dosage instructions, side effects, drug interactions, safety notes and storage from general pharmacological knowledge.
- If a section is unknown, write "Information unavailable". Do NOT fabricate details.
- Start the packaging_detected field with "Packaging detected:".
- Keep the disclaimer exactly as given.

## OUTPUT FORMAT
Your ENTIRE response must be a single JSON object wrapped in ```json tags:

```json
{schema}
```
"""

_STATUS_LINES = {
    RegistryStatus.FOUND: "PRODUCT FOUND AND VERIFIED in the medicine registry",
    RegistryStatus.NOT_FOUND: "PRODUCT NOT FOUND in the medicine registry",
    RegistryStatus.TOOL_ERROR: "REGISTRY LOOKUP FAILED, registry data unavailable",
    RegistryStatus.INVALID_SIGNAL: "REGISTRY LOOKUP SKIPPED, no usable product name was read",
    RegistryStatus.NO_SIGNAL: "REGISTRY LOOKUP SKIPPED",
}


def _dumps(value) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


@dataclass(frozen=True)
class PromptContext:
    """
    Inputs of the prompt builder.

    Attributes:
        user_query: The user's question
        has_image: Whether a packaging photo accompanies the prompt
        registry_outcome: Registry step result (AUGMENTED only)
    """

    user_query: str
    has_image: bool = True
    registry_outcome: Optional[RegistryOutcome] = None


def build_prompt(stage: PromptStage, context: PromptContext) -> str:
    """
    Build the instruction for one model call.

    Pure and deterministic: equal inputs give identical strings.

    Args:
        stage: INITIAL for the first call, AUGMENTED for the second
        context: Query, image flag and registry outcome

    Returns:
        Prompt text

    Raises:
        ValueError: If an AUGMENTED prompt has no registry outcome
    """
    if stage == PromptStage.INITIAL:
        task = _INITIAL_TASK.format(schema=_dumps(TOOL_CALL_SCHEMA))
    elif stage == PromptStage.AUGMENTED:
        outcome = context.registry_outcome
        if outcome is None:
            raise ValueError("AUGMENTED prompt requires a registry outcome")
        task = _AUGMENTED_TASK.format(
            status=_STATUS_LINES[outcome.status],
            payload=_dumps(outcome.to_payload()),
            schema=_dumps(FINAL_REPORT_SCHEMA),
        )
    else:
        raise ValueError(f"Unknown prompt stage: {stage}")

    image_note = "A packaging photo is attached." if context.has_image else "No image was provided."

    return (
        f"{_ROLE}\n{task}\n"
        f"## USER QUERY\n{context.user_query.strip()}\n\n"
        f"{image_note}\n"
    )
