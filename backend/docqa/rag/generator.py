"""
Response generation for RAG.

Generates the answer from the retrieved context with a lazily prepared
generation backend.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from docqa.core.errors import BackendUnavailableError, GenerationFailedError
from docqa.core.llm import GenerationBackend
from docqa.core.models import Answer

logger = logging.getLogger(__name__)


RAG_PROMPT = """Answer the question based on the context below. Be concise and accurate.

Context: {context}

Question: {question}

Answer:"""


def build_prompt(context: str, question: str) -> str:
    return RAG_PROMPT.format(context=context, question=question)


class BackendState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"


class AnswerGenerator:
    """
    Generates answers with a backend that is prepared on first use.

    The backend is prepared at most once at a time: callers arriving while
    preparation is in flight wait for that same attempt. A failed attempt
    leaves the generator unloaded so the next question tries again.

    Usage:
        generator = AnswerGenerator(build_generation_backend())
        answer = await generator.answer(context, "What are the payment terms?")
        print(answer.text, answer.generation_time_ms)
    """

    def __init__(self, backend: GenerationBackend):
        self.backend = backend
        self._state = BackendState.UNLOADED
        self._init_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def model_name(self) -> str:
        return self.backend.model_name

    async def _initialize(self) -> None:
        try:
            await self.backend.prepare()
            self._state = BackendState.LOADED
        except BackendUnavailableError:
            raise
        except Exception as e:
            raise BackendUnavailableError(
                f"Failed to prepare {self.backend.model_name}: {e}"
            ) from e
        finally:
            if self._state is not BackendState.LOADED:
                self._state = BackendState.UNLOADED
                self._init_task = None

    async def ensure_ready(self) -> None:
        """Prepare the backend unless it is already loaded."""
        if self._state is BackendState.LOADED:
            return
        if self._init_task is None:
            self._state = BackendState.LOADING
            self._init_task = asyncio.create_task(self._initialize())
        # A caller that goes away must not abort the load other callers await
        await asyncio.shield(self._init_task)

    async def answer(self, context: str, question: str) -> Answer:
        """
        Generate an answer to question from context.

        Raises:
            BackendUnavailableError: the backend could not be prepared
            GenerationFailedError: the backend call failed
        """
        await self.ensure_ready()

        prompt = build_prompt(context, question)
        logger.info(f"Prompt length: {len(prompt)} chars")

        start = time.perf_counter()
        try:
            text = await self.backend.generate(prompt)
        except GenerationFailedError:
            raise
        except Exception as e:
            logger.error(f"Response generation failed: {e}")
            raise GenerationFailedError(str(e)) from e
        generation_time_ms = int((time.perf_counter() - start) * 1000)

        return Answer(
            text=text,
            generation_time_ms=generation_time_ms,
            prompt_length=len(prompt),
            model=self.backend.model_name,
        )

    async def aclose(self) -> None:
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        await self.backend.aclose()
