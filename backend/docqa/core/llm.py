"""
Generation backends.

Supports:
- Ollama (remote HTTP server; completions through LiteLLM, model
  management through the Ollama REST API)
- Local text2text models run in-process with transformers
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
import litellm
from litellm import acompletion
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from docqa.config import Settings, settings as default_settings
from docqa.core.errors import BackendUnavailableError, GenerationFailedError

logger = logging.getLogger(__name__)

litellm.suppress_debug_info = True


@dataclass(frozen=True)
class GenerationOptions:
    """Fixed sampling controls applied to every generation call."""

    temperature: float = 0.3
    top_p: float = 0.9
    top_k: int = 40
    max_tokens: int = 512

    @classmethod
    def from_settings(cls, config: Settings) -> "GenerationOptions":
        return cls(
            temperature=config.generation_temperature,
            top_p=config.generation_top_p,
            top_k=config.generation_top_k,
            max_tokens=config.generation_max_tokens,
        )


class GenerationBackend(ABC):
    """
    A text-generation model.

    prepare() performs the one-time setup (weight load, remote readiness
    check); generate() turns a single prompt into the full completion.
    """

    model_name: str

    @abstractmethod
    async def prepare(self) -> None:
        """Make the model ready. Raises BackendUnavailableError."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the completion for prompt. Raises GenerationFailedError."""

    async def aclose(self) -> None:
        """Release resources. Override if needed."""


class _ModelNotReady(Exception):
    pass


class OllamaBackend(GenerationBackend):
    """
    Ollama backend.

    On prepare() the server's model list is checked and the model is pulled
    when missing, then polled until it is listed (bounded by
    ready_attempts and ready_timeout).

    Usage:
        backend = OllamaBackend(model_name="llama3.2:3b")
        await backend.prepare()
        text = await backend.generate("Why is the sky blue?")
    """

    def __init__(
        self,
        model_name: str = "llama3.2:3b",
        base_url: str = "http://localhost:11434",
        options: Optional[GenerationOptions] = None,
        timeout: float = 300.0,
        ready_attempts: int = 10,
        ready_timeout: float = 60.0,
        pull_timeout: float = 1800.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.model_name = model_name
        self.base_url = base_url.rstrip("/")
        self.options = options or GenerationOptions()
        self.timeout = timeout
        self.ready_attempts = ready_attempts
        self.ready_timeout = ready_timeout
        self.pull_timeout = pull_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    def _is_listed(self, names: list[str]) -> bool:
        return any(
            name == self.model_name or name == f"{self.model_name}:latest"
            for name in names
        )

    async def _list_models(self) -> list[str]:
        response = await self._client.get("/api/tags")
        response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", [])]

    async def _pull_model(self) -> None:
        async with self._client.stream(
            "POST",
            "/api/pull",
            json={"name": self.model_name},
            timeout=self.pull_timeout,
        ) as response:
            if response.is_error:
                raise BackendUnavailableError(
                    f"Failed to pull model {self.model_name}: HTTP {response.status_code}"
                )
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                progress = json.loads(line)
                if "error" in progress:
                    raise BackendUnavailableError(
                        f"Failed to pull model {self.model_name}: {progress['error']}"
                    )
                logger.debug(f"Pull {self.model_name}: {progress.get('status')}")

    async def _wait_until_listed(self) -> None:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.ready_attempts) | stop_after_delay(self.ready_timeout),
                wait=wait_exponential(multiplier=0.5, max=5),
                retry=retry_if_exception_type((_ModelNotReady, httpx.TransportError)),
                reraise=True,
            ):
                with attempt:
                    if not self._is_listed(await self._list_models()):
                        raise _ModelNotReady(self.model_name)
        except _ModelNotReady:
            raise BackendUnavailableError(
                f"Model {self.model_name} was not ready after pulling"
            )

    async def prepare(self) -> None:
        logger.info(f"Checking if model {self.model_name} is available...")
        try:
            if not self._is_listed(await self._list_models()):
                logger.info(
                    f"Pulling model {self.model_name}... This may take a few minutes."
                )
                await self._pull_model()
                await self._wait_until_listed()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error initializing Ollama: {e}")
            raise BackendUnavailableError(
                f"Failed to connect to Ollama. Ensure it is running on {self.base_url}"
            ) from e
        logger.info(f"Model {self.model_name} is ready.")

    async def generate(self, prompt: str) -> str:
        try:
            response = await acompletion(
                model=f"ollama/{self.model_name}",
                messages=[{"role": "user", "content": prompt}],
                api_base=self.base_url,
                temperature=self.options.temperature,
                top_p=self.options.top_p,
                top_k=self.options.top_k,
                max_tokens=self.options.max_tokens,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Ollama request failed: {e}")
            raise GenerationFailedError(f"Ollama request failed: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise GenerationFailedError(f"Malformed Ollama response: {e}") from e
        if content is None:
            raise GenerationFailedError("Ollama returned no content")

        logger.debug(f"LLM response: {content[:200]}...")
        return content.strip()

    async def aclose(self) -> None:
        await self._client.aclose()


class LocalBackend(GenerationBackend):
    """In-process text2text model loaded with a transformers pipeline."""

    def __init__(
        self,
        model_name: str = "MBZUAI/LaMini-T5-738M",
        options: Optional[GenerationOptions] = None,
    ):
        self.model_name = model_name
        self.options = options or GenerationOptions()
        self._pipeline = None

    def _load(self):
        from transformers import pipeline

        logger.info(f"Loading local model {self.model_name}...")
        return pipeline("text2text-generation", model=self.model_name)

    async def prepare(self) -> None:
        try:
            self._pipeline = await asyncio.to_thread(self._load)
        except Exception as e:
            logger.error(f"Failed to load local model {self.model_name}: {e}")
            raise BackendUnavailableError(
                f"Failed to load local model {self.model_name}: {e}"
            ) from e

    async def generate(self, prompt: str) -> str:
        if self._pipeline is None:
            raise GenerationFailedError(f"Local model {self.model_name} is not loaded")
        try:
            outputs = await asyncio.to_thread(
                self._pipeline,
                prompt,
                max_new_tokens=self.options.max_tokens,
                do_sample=True,
                temperature=self.options.temperature,
                top_p=self.options.top_p,
                top_k=self.options.top_k,
            )
            return outputs[0]["generated_text"].strip()
        except Exception as e:
            logger.error(f"Local generation failed: {e}")
            raise GenerationFailedError(f"Local generation failed: {e}") from e


def build_generation_backend(config: Optional[Settings] = None) -> GenerationBackend:
    """Create the generation backend selected by configuration."""
    config = config or default_settings
    options = GenerationOptions.from_settings(config)

    if config.generation_backend == "ollama":
        return OllamaBackend(
            model_name=config.ollama_model,
            base_url=config.ollama_base_url,
            options=options,
            timeout=config.generation_timeout,
            ready_attempts=config.ollama_ready_attempts,
            ready_timeout=config.ollama_ready_timeout,
            pull_timeout=config.ollama_pull_timeout,
        )
    if config.generation_backend == "local":
        return LocalBackend(model_name=config.local_generation_model, options=options)
    raise ValueError(
        f"Unknown generation backend: {config.generation_backend!r}. "
        f"Supported: 'ollama', 'local'"
    )
