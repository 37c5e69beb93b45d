"""Claude API backend.

Schema-constrained calls force a single tool whose input schema is the
target model's JSON schema; the tool input is returned as JSON text.
"""

import json

from pydantic import BaseModel

from ytdigest.errors import GenerationError, SchemaValidationError
from ytdigest.services.generation import (
    GenerationResponse,
    Generator,
    calculate_cost,
)


def split_messages(messages: list[dict]) -> tuple[str, str]:
    """Fold chat messages into (system prompt, single user turn)."""
    system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
    user = "\n\n".join(m["content"] for m in messages if m["role"] != "system")
    return system, user


class ClaudeGenerator(Generator):
    provider = "anthropic"

    def _generate(
        self,
        messages: list[dict],
        *,
        model: str,
        temperature: float,
        schema: type[BaseModel] | None,
    ) -> GenerationResponse:
        from anthropic import Anthropic, AnthropicError

        system_prompt, user_message = split_messages(messages)
        kwargs = {
            "model": model,
            "max_tokens": self.settings.claude_max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_message}],
        }
        if schema is not None:
            tool_name = schema.__name__.lower()
            kwargs["tools"] = [{
                "name": tool_name,
                "description": (schema.__doc__ or tool_name).strip(),
                "input_schema": schema.model_json_schema(),
            }]
            kwargs["tool_choice"] = {"type": "tool", "name": tool_name}

        try:
            client = Anthropic(
                api_key=self.settings.generation_api_key,
                max_retries=self.settings.max_retries,
            )
            response = client.messages.create(**kwargs)
        except AnthropicError as e:
            raise GenerationError(f"Claude call failed ({model}): {e}") from e

        text = ""
        if schema is None:
            for block in response.content:
                if block.type == "text":
                    text += block.text
        else:
            tool_inputs = [b.input for b in response.content if b.type == "tool_use"]
            if not tool_inputs:
                raise SchemaValidationError(
                    f"Claude returned no {schema.__name__} tool call ({model})"
                )
            text = json.dumps(tool_inputs[0], ensure_ascii=False)

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        return GenerationResponse(
            text=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=calculate_cost(model, input_tokens, output_tokens),
            model=model,
        )
