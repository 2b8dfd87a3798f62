"""
Action generator - turns an operator prompt plus store context into candidate actions.

Uses a local Ollama model in JSON mode. The output is untrusted: callers must run
it through the validator before previewing or executing anything.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

import ollama

from ..core import config
from ..core.action_schema import get_action_schema_prompt
from ..util.logging import logger

_TAG_PATTERN = re.compile(r"<[^>]*>")


class ActionGeneratorError(Exception):
    """The model could not be reached or returned unusable output."""


@dataclass
class GeneratedActions:
    actions: List[Any]
    summary: str
    model: str
    usage: Dict[str, Any] = field(default_factory=dict)


class ActionGenerator:
    """Ollama-backed generator of candidate store actions."""

    def __init__(self, model_name: str = None, temperature: float = None):
        self.model_name = model_name or config.OLLAMA_MODEL
        self.temperature = config.GENERATOR_TEMPERATURE if temperature is None else temperature

    def generate(self, prompt: str, store_context: Dict[str, List[Dict[str, Any]]]) -> GeneratedActions:
        """
        Ask the model for actions.

        Args:
            prompt: Operator instruction in natural language
            store_context: Current records keyed by collection name

        Returns:
            GeneratedActions with the raw candidate list and the model's summary
        """
        messages = [
            {"role": "system", "content": build_system_prompt()},
            {"role": "user", "content": f"{build_store_context(store_context)}\n=== USER REQUEST ===\n{prompt}"},
        ]

        start_time = datetime.now()
        try:
            response = ollama.chat(
                model=self.model_name,
                messages=messages,
                format="json",
                options={"temperature": self.temperature},
            )
        except ollama.ResponseError as e:
            raise ActionGeneratorError(f"Ollama model error: {e}") from e
        except (ConnectionError, OSError) as e:
            raise ActionGeneratorError(f"Ollama service unavailable: {e}") from e

        duration_ms = int((datetime.now() - start_time).total_seconds() * 1000)

        content = response["message"]["content"] if response.get("message") else ""
        if not content:
            logger.log_generator_call(self.model_name, 0, duration_ms, status="failed")
            raise ActionGeneratorError("Model returned an empty response")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            logger.log_generator_call(self.model_name, 0, duration_ms, status="failed")
            raise ActionGeneratorError(f"Model did not return valid JSON: {content[:500]}") from e

        if not isinstance(parsed, dict):
            raise ActionGeneratorError("Model response must be a JSON object with an 'actions' array")

        actions = parsed.get("actions", [])
        logger.log_generator_call(self.model_name, len(actions) if isinstance(actions, list) else 0, duration_ms)

        return GeneratedActions(
            actions=actions,
            summary=parsed.get("summary") or "No summary provided",
            model=response.get("model") or self.model_name,
            usage={
                "prompt_tokens": response.get("prompt_eval_count"),
                "completion_tokens": response.get("eval_count"),
            },
        )


def build_system_prompt() -> str:
    return f"""You are a Shopify store assistant. You help store owners manage their store by generating structured actions.

CRITICAL RULES:
1. Respond with ONLY valid JSON - no markdown, no explanations.
2. The response MUST be a JSON object with an "actions" array.
3. Each action MUST have a "kind" field and the required fields for that kind.
4. When referencing existing products, pages or themes, use the IDs from the store context.
5. Be helpful, but NEVER destructive.

When creating products, describe the wanted product photos in "image_prompts" (1-3 short descriptions).

{get_action_schema_prompt()}
RESPONSE FORMAT:
{{
  "actions": [
    {{"kind": "action_kind", "field1": "value1"}}
  ],
  "summary": "Brief human-readable summary of what these actions will do"
}}

If the request cannot be fulfilled with the allowed actions, return:
{{"actions": [], "summary": "Explanation of why this cannot be done"}}"""


def build_store_context(store_context: Dict[str, List[Dict[str, Any]]]) -> str:
    """Render current store records as plain text for the model."""
    context = "=== CURRENT STORE DATA ===\n\n"

    products = store_context.get("products") or []
    if products:
        context += "PRODUCTS:\n"
        for p in products:
            variants = p.get("variants") or [{}]
            price = variants[0].get("price", "N/A")
            context += f"- ID: {p.get('id')} | Title: \"{p.get('title')}\" | Price: ${price} | Status: {p.get('status')}\n"
            if p.get("body_html"):
                text = _TAG_PATTERN.sub("", p["body_html"])[:200]
                context += f"  Description: {text}\n"
        context += "\n"
    else:
        context += "PRODUCTS: No products in store yet.\n\n"

    for name, label in (("pages", "PAGES"), ("collections", "COLLECTIONS")):
        records = store_context.get(name) or []
        if records:
            context += f"{label}:\n"
            for r in records:
                context += f"- ID: {r.get('id')} | Title: \"{r.get('title')}\"\n"
            context += "\n"

    themes = store_context.get("themes") or []
    if themes:
        context += "THEMES:\n"
        for t in themes:
            context += f"- ID: {t.get('id')} | Name: \"{t.get('name')}\" | Role: {t.get('role')}\n"
        context += "\n"

    return context


def check_ollama_health() -> bool:
    """Check if the Ollama service is reachable."""
    try:
        ollama.list()
        return True
    except Exception:
        return False
