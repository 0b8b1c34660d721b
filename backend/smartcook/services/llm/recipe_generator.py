"""
Generative recipe source backed by dspy.
One prediction per call; the JSON answer is validated into a RecipeCandidate.
Refusals and unparsable answers raise instead of producing a placeholder recipe.
"""

import json
import re
import uuid

import dspy

from smartcook.errors import MalformedRecordError
from smartcook.logging import get_logger
from smartcook.schemas.mix import GenerationRequest, RecipeCandidate, UserConstraints
from smartcook.services.llm.dspy_client import run_with_logging
from smartcook.services.llm.prompts import RECIPE_GENERATE_PROMPT_VERSION, RECIPE_GENERATE_TEMPLATE

logger = get_logger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class GenerationRefused(ValueError):
    """The model answered that no recipe fits the ingredients."""


class RecipeGenerateSignature(dspy.Signature):
    """Create one recipe for the requested cooking technique from the available ingredients."""

    ingredients: str = dspy.InputField(desc="comma-separated available ingredients")
    technique: str = dspy.InputField(desc="cooking technique the recipe must use")
    constraints: str = dspy.InputField(desc="allergies and dietary restrictions to respect")
    prompt_template: str = dspy.InputField()
    recipe_json: str = dspy.OutputField(desc="single JSON object as described in the template")


class RecipeGeneratorModule(dspy.Module):
    def __init__(self) -> None:
        super().__init__()
        self.predict = dspy.Predict(RecipeGenerateSignature)

    def forward(self, ingredients: str, technique: str, constraints: str) -> dspy.Prediction:
        return self.predict(
            ingredients=ingredients,
            technique=technique,
            constraints=constraints,
            prompt_template=RECIPE_GENERATE_TEMPLATE,
        )


def _describe_constraints(constraints: UserConstraints) -> str:
    parts = []
    if constraints.allergies:
        parts.append("allergies: " + ", ".join(constraints.allergies))
    if constraints.dietary_restrictions:
        parts.append("dietary restrictions: " + ", ".join(constraints.dietary_restrictions))
    return "; ".join(parts) or "none"


def parse_recipe_output(raw: str) -> dict:
    """Pull the JSON object out of the model answer (tolerates markdown fences)."""
    match = _JSON_OBJECT.search(raw or "")
    if not match:
        raise MalformedRecordError(None, "no JSON object in model output")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedRecordError(None, f"invalid JSON: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise MalformedRecordError(None, "model output is not an object")
    if parsed.get("success") is False:
        raise GenerationRefused(parsed.get("message") or "model could not create a recipe")
    if isinstance(parsed.get("recipes"), list) and parsed["recipes"]:
        parsed = parsed["recipes"][0]
    return parsed


class DspyRecipeGenerator:
    def generate(self, request: GenerationRequest) -> RecipeCandidate:
        module = RecipeGeneratorModule()
        prediction = run_with_logging(
            prompt_name="recipe_generate",
            prompt_version=RECIPE_GENERATE_PROMPT_VERSION,
            fn=module.forward,
            ingredients=", ".join(request.ingredients),
            technique=request.technique,
            constraints=_describe_constraints(request.constraints),
        )
        record = parse_recipe_output(str(getattr(prediction, "recipe_json", "") or ""))
        record["id"] = f"gen-{uuid.uuid4().hex[:12]}"
        # The call was made for this technique; the gap fill depends on it.
        record["technique"] = request.technique
        record["is_approved"] = False
        record["is_public"] = False
        candidate = RecipeCandidate.from_record(record, "generated")
        logger.info("recipe_generate.done technique=%s title=%s", request.technique, candidate.title)
        return candidate
