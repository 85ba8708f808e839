"""
Scripted Vision Model

Deterministic model that replays canned responses. Backs the "dummy"
provider and the test suite.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union
import asyncio
import logging

from ...domain.ports.vision_model import VisionModelPort
from ...domain.value_objects.image_data import ImageData


logger = logging.getLogger(__name__)


DEFAULT_RESPONSE = (
    "The vision model is running in offline mode, so the packaging could not be analyzed. "
    "Please configure a model provider and try again."
)

ScriptedReply = Union[str, BaseException]
Responder = Callable[[str, Optional[ImageData]], ScriptedReply]


@dataclass(frozen=True)
class ModelCall:
    """One recorded call."""

    prompt: str
    image: Optional[ImageData] = None


class ScriptedVisionModel(VisionModelPort):
    """
    Replays responses in order.

    Each response is either text to return or an exception to raise. When
    the script runs out, the last response is repeated. A callable may be
    given instead of a list to compute the reply from the prompt.

    Usage:
        model = ScriptedVisionModel([tool_call_json, report_json])
        ...
        assert model.call_count == 2
    """

    def __init__(
        self,
        responses: Union[Sequence[ScriptedReply], Responder, None] = None,
        model_name: str = "scripted",
        delay: float = 0.0
    ):
        """
        Initialize the scripted model.

        Args:
            responses: Replies in call order, or a callable computing them
            model_name: Name reported to the pipeline
            delay: Seconds to sleep before replying
        """
        self._responder: Optional[Responder] = responses if callable(responses) else None
        self._script: List[ScriptedReply] = [] if callable(responses) else list(responses or [DEFAULT_RESPONSE])
        self._model_name = model_name
        self._delay = delay
        self.calls: List[ModelCall] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def prompts(self) -> List[str]:
        return [call.prompt for call in self.calls]

    def _next_reply(self, prompt: str, image: Optional[ImageData]) -> ScriptedReply:
        if self._responder is not None:
            return self._responder(prompt, image)

        index = min(len(self.calls) - 1, len(self._script) - 1)
        return self._script[index]

    async def generate(self, prompt: str, image: Optional[ImageData] = None) -> str:
        self.calls.append(ModelCall(prompt=prompt, image=image))

        if self._delay:
            await asyncio.sleep(self._delay)

        reply = self._next_reply(prompt, image)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @property
    def model_name(self) -> str:
        return self._model_name
