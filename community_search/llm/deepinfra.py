"""DeepInfra provider implementation (Llama 3.1 inference, BGE embeddings)."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from community_search.errors import ProviderTransientError
from community_search.llm.base import EmbeddingResult, LLMProvider, ResponseResult, error_for_status

logger = logging.getLogger(__name__)

DEEPINFRA_BASE_URL = "https://api.deepinfra.com/v1/inference"
LLAMA_STOP_SEQUENCES = ["<|eot_id|>", "<|end_of_text|>", "<|eom_id|>"]


class DeepInfraConfig(BaseModel):
    """Configuration for DeepInfra provider."""

    api_key: str
    model: str = "meta-llama/Meta-Llama-3.1-8B-Instruct"
    embedding_model: str = "BAAI/bge-base-en-v1.5"
    base_url: str = DEEPINFRA_BASE_URL
    max_tokens: int = 1000
    temperature: float = 0.3
    timeout: float = 15.0


def format_chat_template(messages: list[dict[str, str]]) -> str:
    """Render chat messages with the Llama 3.1 prompt template."""
    formatted = "<|begin_of_text|>"
    for message in messages:
        formatted += (
            f"<|start_header_id|>{message['role']}<|end_header_id|>\n\n"
            f"{message['content']}<|eot_id|>"
        )
    formatted += "<|start_header_id|>assistant<|end_header_id|>\n\n"
    return formatted


class DeepInfraProvider(LLMProvider):
    """DeepInfra provider using the raw inference endpoints."""

    name = "deepinfra"

    def __init__(self, config: DeepInfraConfig | None = None, **kwargs: Any) -> None:
        """Initialize DeepInfra provider.

        Args:
            config: DeepInfra configuration
            **kwargs: Additional configuration options
        """
        self.config = config or DeepInfraConfig(**kwargs)
        self.client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            headers={"Authorization": f"Bearer {self.config.api_key}"},
        )

    @property
    def embedding_model(self) -> str:
        return self.config.embedding_model

    async def _post(self, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.post(f"/{model}", json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            detail = e.response.text
            logger.error(f"DeepInfra HTTP error {e.response.status_code}: {detail}")
            # DeepInfra reports an overloaded model in the body rather than via status
            if "busy" in detail.lower():
                raise ProviderTransientError(
                    f"DeepInfra model busy: {detail}", self.name, e.response.status_code
                ) from e
            raise error_for_status(
                self.name, e.response.status_code, f"DeepInfra API error: {detail}"
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"DeepInfra request timed out: {e}")
            raise ProviderTransientError(f"DeepInfra request timed out: {e}", self.name) from e
        except httpx.RequestError as e:
            logger.error(f"DeepInfra request failed: {e}")
            raise ProviderTransientError(f"DeepInfra request failed: {e}", self.name) from e
        except ValueError as e:
            raise ProviderTransientError(f"DeepInfra returned invalid JSON: {e}", self.name) from e

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding using the configured BGE model.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector
        """
        data = await self._post(
            self.config.embedding_model,
            {"inputs": [text], "normalize": True},
        )

        embeddings = data.get("embeddings") or []
        if not embeddings or not isinstance(embeddings[0], list):
            raise ProviderTransientError("DeepInfra returned no embeddings", self.name)

        return EmbeddingResult(
            embedding=embeddings[0],
            model=self.config.embedding_model,
            provider=self.name,
            token_count=data.get("input_tokens"),
        )

    async def generate_response(
        self,
        prompt: str,
        context: str | None = None,
        json_output: bool = False,
    ) -> ResponseResult:
        """Generate response using the Llama chat template.

        Args:
            prompt: User prompt or instruction
            context: Optional context information
            json_output: Instruct the model to answer with JSON only

        Returns:
            ResponseResult with generated response
        """
        messages = []
        system = context or ""
        if json_output:
            system = f"{system}\n\nRespond with a single valid JSON object and nothing else.".strip()
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        data = await self._post(
            self.config.model,
            {
                "input": format_chat_template(messages),
                "temperature": self.config.temperature,
                "max_tokens": self.config.max_tokens,
                "stop": LLAMA_STOP_SEQUENCES,
            },
        )

        results = data.get("results") or []
        if not results:
            raise ProviderTransientError("DeepInfra returned no results", self.name)

        status = data.get("inference_status") or {}
        return ResponseResult(
            content=results[0].get("generated_text", "").strip(),
            model=self.config.model,
            provider=self.name,
            token_count=status.get("tokens_generated"),
            finish_reason=status.get("status"),
        )

    async def health_check(self) -> bool:
        """Check if DeepInfra inference endpoint is reachable."""
        try:
            response = await self.client.post(
                f"/{self.config.model}",
                json={"input": "test", "max_tokens": 1},
                timeout=5.0,
            )
            return response.status_code == 200
        except Exception as e:
            logger.warning(f"DeepInfra health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
