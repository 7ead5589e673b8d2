"""Ollama provider implementation."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from community_search.errors import ProviderTransientError
from community_search.llm.base import EmbeddingResult, LLMProvider, ResponseResult, error_for_status

logger = logging.getLogger(__name__)


class OllamaConfig(BaseModel):
    """Configuration for Ollama provider."""

    host: str = "http://localhost:11434"
    model: str = "llama3.2"
    embedding_model: str = "nomic-embed-text"
    timeout: float = 30.0


class OllamaProvider(LLMProvider):
    """Ollama provider for locally hosted models."""

    name = "ollama"

    def __init__(self, config: OllamaConfig | None = None, **kwargs: Any) -> None:
        """Initialize Ollama provider.

        Args:
            config: Ollama configuration
            **kwargs: Additional configuration options
        """
        self.config = config or OllamaConfig(**kwargs)
        self.client = httpx.AsyncClient(
            base_url=self.config.host,
            timeout=self.config.timeout,
        )

    @property
    def embedding_model(self) -> str:
        return self.config.embedding_model

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.post(path, json=payload)
            logger.debug(f"Ollama {path} response status: {response.status_code}")
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama HTTP error {e.response.status_code}: {e.response.text}")
            raise error_for_status(
                self.name, e.response.status_code, f"Ollama API error: {e.response.text}"
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"Ollama request timed out (model {self.config.model}): {e}")
            raise ProviderTransientError(f"Ollama request timed out: {e}", self.name) from e
        except httpx.RequestError as e:
            logger.error(f"Ollama request failed (host {self.config.host}): {e}")
            raise ProviderTransientError(f"Ollama request failed: {e}", self.name) from e
        except ValueError as e:
            raise ProviderTransientError(f"Ollama returned invalid JSON: {e}", self.name) from e

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding using Ollama's embedding model.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector
        """
        data = await self._post(
            "/api/embed",
            {"model": self.config.embedding_model, "input": text},
        )

        # Ollama returns one embedding per input
        embeddings = data.get("embeddings") or []
        if not embeddings:
            raise ProviderTransientError("Ollama returned no embeddings", self.name)

        return EmbeddingResult(
            embedding=embeddings[0],
            model=self.config.embedding_model,
            provider=self.name,
            token_count=data.get("prompt_eval_count"),
        )

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        json_output: bool = False,
    ) -> ResponseResult:
        """Generate response using Ollama's generate endpoint.

        Args:
            prompt: User prompt or instruction
            context: Optional context information
            json_output: Constrain output to JSON via Ollama's ``format`` option

        Returns:
            ResponseResult with generated response
        """
        full_prompt = prompt
        if context:
            full_prompt = f"Context: {context}\n\n{prompt}"

        payload: dict[str, Any] = {
            "model": self.config.model,
            "prompt": full_prompt,
            "stream": False,
        }
        if json_output:
            payload["format"] = "json"

        logger.debug(f"Sending request to Ollama with model: {self.config.model}")
        data = await self._post("/api/generate", payload)

        if "response" not in data:
            raise ProviderTransientError("Ollama response missing 'response' field", self.name)

        return ResponseResult(
            content=data["response"],
            model=self.config.model,
            provider=self.name,
            token_count=data.get("eval_count"),
            finish_reason=data.get("done_reason"),
        )

    async def health_check(self) -> bool:
        """Check if Ollama service is healthy.

        Returns:
            True if healthy, False otherwise
        """
        try:
            response = await self.client.get("/api/tags")
            return response.status_code == 200
        except Exception as e:
            logger.warning(f"Ollama health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
