"""
Pipeline Orchestrator

State machine driving one medicine analysis:

    START -> TOKEN_CHECK -> FIRST_CALL -> SIGNAL_PARSE -> [REGISTRY_LOOKUP]
          -> SECOND_CALL -> FINAL_PARSE -> TOKEN_DEBIT -> DONE

Token and model-transport failures halt the run without a debit. Parse
ambiguities and registry misses are absorbed into sentinels that steer
the next state.
"""

from dataclasses import replace
from typing import Any, Dict, Optional, Union
import asyncio
import logging
import time

from .context import PipelineContext
from .prompts import PromptStage, PromptContext, build_prompt
from .parsing import parse_tool_signal, parse_final_report
from .normalizer import normalize
from ..services.token_ledger import TokenLedger, TokenReservation, TokenCheckReason
from ..services.registry_lookup import RegistryLookup
from ...config.settings import PipelineConfig
from ...cross_cutting.error_handling import ErrorHandler
from ...cross_cutting.logging import PipelineLogger
from ...cross_cutting.validation import validate_image
from ...domain.entities.analysis_request import AnalysisRequest
from ...domain.entities.medicine_report import RawTextFallback
from ...domain.entities.pipeline_result import PipelineResult, PipelineStatus, PipelineState
from ...domain.entities.registry import RegistryOutcome, RegistryStatus
from ...domain.entities.tool_signal import SignalStatus
from ...domain.value_objects.image_data import ImageData
from ...domain.ports.vision_model import VisionModelPort
from ...domain.exceptions import (
    AnalysisError,
    DomainException,
    InsufficientTokensError,
    InvalidImageError,
    InvalidInputError,
    LedgerError,
    ModelError,
    ModelTimeoutError,
    PipelineConfigurationError,
    ServiceUnavailableError,
)


logger = logging.getLogger(__name__)


FIRST_CALL_FAILED = "Error during initial image analysis and tool signal."
SECOND_CALL_FAILED = "Error synthesizing final medical information."
MODEL_TIMED_OUT = "The analysis service did not respond in time. Please try again."
UNEXPECTED_FAILURE = "Unexpected error during medicine analysis."


class PipelineOrchestrator:
    """
    Main pipeline orchestrator for medicine identification.

    Features:
    - Token gate before any model call, debit only after a delivered answer
    - Direct-answer short circuit when the model skips the lookup signal
    - Registry augmentation of the second call
    - Deadline on every model call
    - Never raises: every outcome is a PipelineResult

    Usage:
        orchestrator = PipelineOrchestrator(
            model=gemini_model,
            ledger=token_ledger,
            registry_lookup=registry_lookup,
        )

        result = await orchestrator.run_pipeline(image_b64, "What is this?", user_id)
    """

    def __init__(
        self,
        model: VisionModelPort,
        ledger: TokenLedger,
        registry_lookup: RegistryLookup,
        config: Optional[PipelineConfig] = None,
        analysis_cost: int = 1
    ):
        """
        Initialize the orchestrator.

        Args:
            model: Vision-language model
            ledger: Token ledger
            registry_lookup: Registry strategy chain
            config: Pipeline configuration
            analysis_cost: Tokens charged per successful analysis
        """
        self.config = config or PipelineConfig()
        self.analysis_cost = analysis_cost
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._model = model
        self._ledger = ledger
        self._registry_lookup = registry_lookup

        self.validate_configuration()
        self.logger.info(f"Pipeline initialized with model {model.model_name}")

    @property
    def model_name(self) -> str:
        return self._model.model_name

    def validate_configuration(self) -> bool:
        """
        Validate that every collaborator is present.

        Raises:
            PipelineConfigurationError: If a collaborator is missing
        """
        missing = []

        if self._model is None:
            missing.append("model")
        if self._ledger is None:
            missing.append("ledger")
        if self._registry_lookup is None:
            missing.append("registry_lookup")

        if missing:
            raise PipelineConfigurationError(
                message=f"Pipeline is missing required components: {', '.join(missing)}",
                missing_components=missing
            )

        return True

    async def run_pipeline(
        self,
        image_data: Union[str, bytes, ImageData, None],
        text_query: Optional[str],
        user_id: str
    ) -> PipelineResult:
        """
        Run one analysis from wire values.

        Args:
            image_data: Base64 string or data URL, raw bytes, or None
            text_query: User question, or None
            user_id: Account charged for the analysis

        Returns:
            PipelineResult with one of the four top-level statuses
        """
        try:
            request = AnalysisRequest.create(image_data, text_query, user_id)
        except InvalidInputError as e:
            self.logger.warning(f"Rejected request: {e.message}")
            return PipelineResult.failure(
                PipelineStatus.ERROR,
                e.message,
                metadata={"error": e.to_dict()},
            )

        return await self.run(request)

    async def run(self, request: AnalysisRequest) -> PipelineResult:
        """
        Run one analysis.

        Args:
            request: Validated analysis request

        Returns:
            PipelineResult with one of the four top-level statuses
        """
        start_time = time.time()
        context = PipelineContext(request=request)
        plog = PipelineLogger(context.request_id)

        self.logger.info(
            f"Starting pipeline (request_id={context.request_id}, user={request.user_id}, "
            f"image={'yes' if request.has_image else 'no'})"
        )

        try:
            self._validate_image(context)

            async with self._ledger.reserve(request.user_id, self.analysis_cost) as reservation:
                self._transition(context, plog, PipelineState.TOKEN_CHECK)
                self._check_tokens(reservation)

                await self._analyze(context, plog)

                self._transition(context, plog, PipelineState.TOKEN_DEBIT)
                tokens_remaining = await self._debit(context, reservation)

            self._transition(context, plog, PipelineState.DONE)

        except InsufficientTokensError as e:
            return self._failure(context, plog, e, PipelineStatus.INSUFFICIENT_TOKENS, start_time,
                                 tokens_remaining=e.tokens_remaining)
        except ServiceUnavailableError as e:
            return self._failure(context, plog, e, PipelineStatus.SERVICE_UNAVAILABLE, start_time)
        except (AnalysisError, InvalidImageError) as e:
            return self._failure(context, plog, e, PipelineStatus.ERROR, start_time)
        except Exception as e:
            self.logger.exception(f"Unexpected pipeline failure in state '{context.state.value}'")
            return self._failure(
                context, plog, AnalysisError(UNEXPECTED_FAILURE, stage=context.state.value, details={"error": str(e)}),
                PipelineStatus.ERROR, start_time
            )

        elapsed_ms = (time.time() - start_time) * 1000
        plog.metric("processing_time", round(elapsed_ms, 2), "ms")

        signal = context.signal_outcome.signal if context.signal_outcome else None
        result = normalize(
            context.report,
            context.registry_outcome,
            tokens_remaining,
            signal=signal,
            metadata=self._metadata(context, elapsed_ms),
            warnings=context.warnings,
            low_confidence_threshold=self.config.low_confidence_threshold,
        )

        self.logger.info(
            f"Pipeline completed (request_id={context.request_id}, "
            f"source={result.metadata.get('source')}, total time: {elapsed_ms:.2f}ms)"
        )
        return result

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _validate_image(self, context: PipelineContext) -> None:
        request = context.request
        if not request.has_image or not self.config.validate_images:
            return

        is_valid, error, detected_format = validate_image(request.image)
        if not is_valid:
            raise InvalidImageError(error or "Invalid or corrupted image")

        context.request = replace(request, image=request.image.with_format(detected_format))

    def _check_tokens(self, reservation: TokenReservation) -> None:
        check = reservation.check

        if check.reason == TokenCheckReason.DATABASE_ERROR:
            raise ServiceUnavailableError()

        if not check.available:
            raise InsufficientTokensError(tokens_remaining=check.balance or 0)

    async def _analyze(self, context: PipelineContext, plog: PipelineLogger) -> None:
        request = context.request

        # FIRST_CALL
        self._transition(context, plog, PipelineState.FIRST_CALL)
        first_prompt = build_prompt(
            PromptStage.INITIAL,
            PromptContext(user_query=request.query, has_image=request.has_image),
        )
        context.first_response = await self._call_model(
            first_prompt, request.image, PipelineState.FIRST_CALL, FIRST_CALL_FAILED
        )

        # SIGNAL_PARSE
        self._transition(context, plog, PipelineState.SIGNAL_PARSE)
        outcome = parse_tool_signal(context.first_response)
        context.signal_outcome = outcome
        self.logger.info(f"Signal outcome: {outcome.status.value}")

        if outcome.status == SignalStatus.NO_SIGNAL:
            registry_outcome = RegistryOutcome.sentinel(RegistryStatus.NO_SIGNAL)
            context.registry_outcome = registry_outcome
            context.report = RawTextFallback(
                text=context.first_response.strip(),
                note=registry_outcome.message,
            )
            return

        if outcome.status == SignalStatus.VALID:
            signal = outcome.signal
            if signal.is_low_confidence(self.config.low_confidence_threshold):
                self.logger.warning(
                    f"Low confidence extraction ({signal.confidence}) for '{signal.product_name}'"
                )
                context.add_warning(
                    f"Low confidence reading of the packaging ({signal.confidence}). "
                    "Please verify the product name."
                )

            # REGISTRY_LOOKUP
            self._transition(context, plog, PipelineState.REGISTRY_LOOKUP)
            context.registry_outcome = await self._registry_lookup.lookup(
                signal.product_name,
                reg_number=signal.registration_number,
                active_ingredient=signal.active_ingredient,
            )
        elif outcome.status == SignalStatus.INVALID_SIGNAL:
            context.registry_outcome = RegistryOutcome.sentinel(RegistryStatus.INVALID_SIGNAL, reason=outcome.error)
        else:
            context.registry_outcome = RegistryOutcome.sentinel(RegistryStatus.TOOL_ERROR, reason=outcome.error)

        self.logger.info(f"Registry outcome: {context.registry_outcome.status.value}")
        if not context.registry_outcome.is_hit:
            context.add_warning(context.registry_outcome.message)

        # SECOND_CALL
        self._transition(context, plog, PipelineState.SECOND_CALL)
        second_prompt = build_prompt(
            PromptStage.AUGMENTED,
            PromptContext(
                user_query=request.query,
                has_image=request.has_image,
                registry_outcome=context.registry_outcome,
            ),
        )
        context.second_response = await self._call_model(
            second_prompt, request.image, PipelineState.SECOND_CALL, SECOND_CALL_FAILED
        )

        # FINAL_PARSE
        self._transition(context, plog, PipelineState.FINAL_PARSE)
        context.report = parse_final_report(context.second_response)
        if isinstance(context.report, RawTextFallback):
            self.logger.warning(f"Final output not structured: {context.report.note}")
            context.add_warning(context.report.note)

    async def _call_model(
        self,
        prompt: str,
        image: Optional[ImageData],
        state: PipelineState,
        failure_message: str
    ) -> str:
        try:
            text = await asyncio.wait_for(
                self._model.generate(prompt, image=image),
                timeout=self.config.model_timeout_seconds,
            )
        except (asyncio.TimeoutError, ModelTimeoutError) as e:
            self.logger.error(f"Model call timed out in state '{state.value}': {e}")
            raise ServiceUnavailableError(MODEL_TIMED_OUT, details={"stage": state.value})
        except ModelError as e:
            self.logger.error(f"Model call failed in state '{state.value}': {e}")
            raise AnalysisError(failure_message, stage=state.value, details={"error": e.message})

        if not text or not text.strip():
            raise AnalysisError(failure_message, stage=state.value, details={"error": "empty model response"})

        return text

    async def _debit(self, context: PipelineContext, reservation: TokenReservation) -> Optional[int]:
        user_id = context.request.user_id

        with ErrorHandler(self.logger, context="token_debit", suppress=True):
            context.debited = await reservation.commit()

        if not context.debited:
            self.logger.error(
                f"Token debit failed for {user_id} after a delivered analysis "
                f"(request_id={context.request_id})"
            )

        try:
            return await self._ledger.get_balance(user_id)
        except LedgerError as e:
            self.logger.warning(f"Could not read balance after debit: {e}")
            return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, context: PipelineContext, plog: PipelineLogger, state: PipelineState) -> None:
        previous = context.state
        if previous in context.stage_metrics:
            context.leave(previous)
            plog.stage_end(previous.value)
        context.enter(state)
        plog.stage_start(state.value)

    def _metadata(self, context: PipelineContext, elapsed_ms: float) -> Dict[str, Any]:
        return {
            "request_id": context.request_id,
            "model": self.model_name,
            "processing_time_ms": round(elapsed_ms, 2),
            "states": context.state_durations(),
            "debited": context.debited,
        }

    def _failure(
        self,
        context: PipelineContext,
        plog: PipelineLogger,
        error: DomainException,
        status: PipelineStatus,
        start_time: float,
        tokens_remaining: Optional[int] = None
    ) -> PipelineResult:
        failed_state = context.state
        plog.stage_error(failed_state.value, error)
        context.leave(failed_state)

        elapsed_ms = (time.time() - start_time) * 1000
        metadata = self._metadata(context, elapsed_ms)
        metadata["failed_state"] = failed_state.value
        metadata["error"] = error.to_dict()

        self.logger.info(
            f"Pipeline halted with {status.value} in state '{failed_state.value}' "
            f"(request_id={context.request_id})"
        )
        return PipelineResult.failure(status, error.message, tokens_remaining=tokens_remaining, metadata=metadata)


class PipelineBuilder:
    """
    Builder for constructing pipeline orchestrators.

    Usage:
        pipeline = (
            PipelineBuilder()
            .with_model(gemini_model)
            .with_ledger(token_ledger)
            .with_registry_lookup(registry_lookup)
            .with_config(pipeline_config)
            .build()
        )
    """

    def __init__(self):
        self._model: Optional[VisionModelPort] = None
        self._ledger: Optional[TokenLedger] = None
        self._registry_lookup: Optional[RegistryLookup] = None
        self._config: Optional[PipelineConfig] = None
        self._analysis_cost: int = 1

    def with_model(self, model: VisionModelPort) -> "PipelineBuilder":
        """Set the vision model."""
        self._model = model
        return self

    def with_ledger(self, ledger: TokenLedger) -> "PipelineBuilder":
        """Set the token ledger."""
        self._ledger = ledger
        return self

    def with_registry_lookup(self, registry_lookup: RegistryLookup) -> "PipelineBuilder":
        """Set the registry lookup."""
        self._registry_lookup = registry_lookup
        return self

    def with_config(self, config: PipelineConfig) -> "PipelineBuilder":
        """Set the pipeline configuration."""
        self._config = config
        return self

    def with_analysis_cost(self, cost: int) -> "PipelineBuilder":
        """Set the tokens charged per analysis."""
        self._analysis_cost = cost
        return self

    def build(self) -> PipelineOrchestrator:
        """
        Build the pipeline orchestrator.

        Raises:
            PipelineConfigurationError: If required components are missing
        """
        missing = []

        if self._model is None:
            missing.append("model")
        if self._ledger is None:
            missing.append("ledger")
        if self._registry_lookup is None:
            missing.append("registry_lookup")

        if missing:
            raise PipelineConfigurationError(
                message=f"Cannot build pipeline, missing: {', '.join(missing)}",
                missing_components=missing
            )

        return PipelineOrchestrator(
            model=self._model,
            ledger=self._ledger,
            registry_lookup=self._registry_lookup,
            config=self._config,
            analysis_cost=self._analysis_cost,
        )
