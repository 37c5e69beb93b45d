"""OpenAI chat completions backend with structured outputs."""

import openai
from openai import OpenAI
from pydantic import BaseModel, ValidationError

from ytdigest.errors import GenerationError, SchemaValidationError
from ytdigest.services.generation import (
    GenerationResponse,
    Generator,
    calculate_cost,
)


class OpenAIGenerator(Generator):
    provider = "openai"

    def _client(self) -> OpenAI:
        return OpenAI(
            api_key=self.settings.generation_api_key or None,
            max_retries=self.settings.max_retries,
        )

    def _generate(
        self,
        messages: list[dict],
        *,
        model: str,
        temperature: float,
        schema: type[BaseModel] | None,
    ) -> GenerationResponse:
        try:
            client = self._client()
            if schema is None:
                response = client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=temperature,
                )
            else:
                response = client.chat.completions.parse(
                    model=model,
                    messages=messages,
                    temperature=temperature,
                    response_format=schema,
                )
        except ValidationError as e:
            raise SchemaValidationError(
                f"{schema.__name__} response does not match schema: {e}"
            ) from e
        except openai.OpenAIError as e:
            raise GenerationError(f"OpenAI call failed ({model}): {e}") from e

        message = response.choices[0].message
        if getattr(message, "refusal", None):
            raise GenerationError(f"OpenAI refused the request ({model}): {message.refusal}")

        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        return GenerationResponse(
            text=message.content or "",
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=calculate_cost(model, input_tokens, output_tokens),
            model=model,
        )
