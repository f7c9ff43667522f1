"""
Analysis Service - AI interpretation of blood test results
"""
import json
import logging
from typing import Dict, Optional, Union

from anthropic import Anthropic
from pydantic import ValidationError

from jivana.config import Settings, ANALYSIS_SYSTEM_PROMPT
from jivana.schemas.blood_test import Analysis
from jivana.utils.exceptions import AnalysisError

logger = logging.getLogger(__name__)

Results = Dict[str, Union[int, float]]


# Returned whenever the remote analysis fails, so the upload can complete
FALLBACK_ANALYSIS = Analysis(
    summary="Analysis unavailable at the moment",
    insights=["Test results recorded successfully"],
    recommendations=["Please consult with your healthcare provider to interpret results"],
    risk_factors=[],
)

# Returned in development when no API key is configured
DEVELOPMENT_ANALYSIS = Analysis(
    summary="Development mode: mock analysis",
    insights=["Development: Normal hemoglobin levels", "Development: Glucose within range"],
    recommendations=["Development: Continue regular check-ups", "Development: Maintain healthy diet"],
    risk_factors=[],
)


def parse_analysis(text: str) -> Analysis:
    """
    Parse a model response into an Analysis

    Args:
        text: Raw response text, optionally wrapped in a markdown code fence

    Returns:
        Validated Analysis

    Raises:
        AnalysisError: Not JSON, or not exactly the four-field shape
    """
    cleaned = text.strip()

    # Clean JSON
    if cleaned.startswith("```json"):
        cleaned = cleaned.split("```json", 1)[1].split("```", 1)[0].strip()
    elif cleaned.startswith("```"):
        cleaned = cleaned.split("```", 1)[1].split("```", 1)[0].strip()

    try:
        return Analysis.model_validate_json(cleaned)
    except ValidationError as e:
        raise AnalysisError(
            "Analysis response did not match the expected shape",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)}
        )


class AnalysisService:
    """
    Base analysis service

    ``analyze`` never raises: any failure in ``_generate`` is logged and
    replaced by FALLBACK_ANALYSIS.
    """

    fallback = FALLBACK_ANALYSIS

    def analyze(self, results: Results) -> Analysis:
        """
        Analyze blood test results

        Args:
            results: Metric name -> numeric value

        Returns:
            Analysis from the service, or the fallback analysis
        """
        try:
            return self._generate(results)
        except Exception as e:
            logger.warning(f"Analysis failed, using fallback: {e}", exc_info=True)
            return self.fallback.model_copy(deep=True)

    def _generate(self, results: Results) -> Analysis:
        raise NotImplementedError


class DevelopmentAnalysisService(AnalysisService):
    """Placeholder analysis without a remote call"""

    def _generate(self, results: Results) -> Analysis:
        logger.info(f"Development analysis for {len(results)} metrics")
        return DEVELOPMENT_ANALYSIS.model_copy(deep=True)


class ClaudeAnalysisService(AnalysisService):
    """Service for interpreting results with the Anthropic Claude API"""

    def __init__(self, api_key: str, model: str, max_tokens: int = 2000, client: Optional[Anthropic] = None):
        """Initialize Claude client"""
        self.client = client or Anthropic(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens
        logger.info(f"Claude analysis service initialized ({model})")

    def _generate(self, results: Results) -> Analysis:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=ANALYSIS_SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": json.dumps(results)}
                ],
            )
        except Exception as e:
            raise AnalysisError(f"Claude API error: {e}")

        text_blocks = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        if not text_blocks:
            raise AnalysisError("No response from Claude")

        usage = getattr(response, "usage", None)
        logger.info(
            f"Claude response received "
            f"(input tokens: {getattr(usage, 'input_tokens', None)}, "
            f"output tokens: {getattr(usage, 'output_tokens', None)})"
        )
        return parse_analysis("".join(text_blocks))


def build_analysis_service(settings: Settings) -> AnalysisService:
    """Pick the analysis implementation for this deployment"""
    if not settings.ANTHROPIC_API_KEY and not settings.is_production:
        logger.warning("ANTHROPIC_API_KEY not set; using development analysis")
        return DevelopmentAnalysisService()

    return ClaudeAnalysisService(
        api_key=settings.ANTHROPIC_API_KEY,
        model=settings.ANTHROPIC_MODEL,
        max_tokens=settings.ANALYSIS_MAX_TOKENS,
    )
