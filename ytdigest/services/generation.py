"""Generation capability interface shared by the OpenAI and Claude backends."""

import logging
from dataclasses import dataclass

from pydantic import BaseModel

from ytdigest.errors import GenerationError

logger = logging.getLogger(__name__)

# USD per million tokens: (input, output)
MODEL_PRICES = {
    "gpt-4o": (2.50, 10.00),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4.1": (2.00, 8.00),
    "gpt-4.1-mini": (0.40, 1.60),
    "claude-sonnet-4-20250514": (3.00, 15.00),
    "claude-3-5-haiku-latest": (0.80, 4.00),
}


@dataclass
class GenerationResponse:
    """Parsed response from a generation backend."""

    text: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    model: str


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Calculate estimated cost in USD for one call. Unknown models cost 0."""
    input_price, output_price = MODEL_PRICES.get(model, (0.0, 0.0))
    input_cost = (input_tokens / 1_000_000) * input_price
    output_cost = (output_tokens / 1_000_000) * output_price
    return round(input_cost + output_cost, 6)


class Generator:
    """Base class for generation backends.

    Subclasses implement ``_generate``. Free-text calls pass ``schema=None``;
    schema-constrained calls pass a pydantic model and get its JSON back as
    ``text``. Every successful response is appended to ``usage``.
    """

    provider = "base"

    def __init__(self, settings=None):
        self.settings = settings
        self.usage: list[GenerationResponse] = []

    def generate(
        self,
        messages: list[dict],
        *,
        model: str,
        temperature: float,
        schema: type[BaseModel] | None = None,
    ) -> GenerationResponse:
        response = self._generate(
            messages, model=model, temperature=temperature, schema=schema
        )
        if not response.text or not response.text.strip():
            raise GenerationError(f"{self.provider} returned empty content ({model})")

        self.usage.append(response)
        logger.info(
            "%s call: %d in / %d out tokens, $%.4f (%s)",
            self.provider, response.input_tokens, response.output_tokens,
            response.cost_usd, response.model,
        )
        return response

    def _generate(
        self,
        messages: list[dict],
        *,
        model: str,
        temperature: float,
        schema: type[BaseModel] | None,
    ) -> GenerationResponse:
        raise NotImplementedError


def make_generator(settings) -> Generator:
    """Build the configured generation backend.

    Raises:
        ValueError: Unknown provider or missing API key.
    """
    provider = settings.generation_provider
    if provider == "openai":
        from ytdigest.services.openai_service import OpenAIGenerator

        if not settings.generation_api_key:
            raise ValueError("No OpenAI API key configured. Set OPENAI_API_KEY.")
        return OpenAIGenerator(settings)

    if provider == "anthropic":
        from ytdigest.services.claude_service import ClaudeGenerator

        if not settings.generation_api_key:
            raise ValueError("No Anthropic API key configured. Set ANTHROPIC_API_KEY.")
        return ClaudeGenerator(settings)

    raise ValueError(
        f"Unknown generation provider: {provider!r} (expected 'openai' or 'anthropic')"
    )
