"""
Doctor chat and symptom analysis on top of the OpenAI chat API.

Configuration is passed in explicitly (``AssistantConfig``) instead of being
read at import time, so a missing key only fails the call that needs it.
"""

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

import openai
from openai import OpenAI

from .config import DEFAULT_ASSISTANT_MODELS, MonitorConfig
from .exceptions import AssistantError, AssistantUnavailable

logger = logging.getLogger(__name__)

LANGUAGE_PROMPTS = {
    "en": "Please respond in English.",
    "hi": "कृपया हिंदी में उत्तर दें।",
}

DOCTOR_PROMPT = (
    "You are a compassionate and knowledgeable medical doctor assistant. "
    "Provide helpful, accurate medical information while being empathetic and professional. "
    "Always recommend consulting with a real healthcare provider for serious concerns. "
    "{language}"
)

SYMPTOM_PROMPT = """As a medical AI assistant, analyze the following symptoms and provide a structured response.
{language}

Symptoms: {symptoms}

Please provide ONLY a valid JSON response with this exact structure:
{{
  "severity": "Mild|Moderate|Severe",
  "matchPercentages": {{"mild": number, "moderate": number, "severe": number}},
  "possibleConditions": ["condition1", "condition2", ...],
  "recommendations": ["recommendation1", "recommendation2", ...],
  "explanation": "brief explanation"
}}

IMPORTANT: Return ONLY the JSON object, no additional text, explanations, or markdown formatting."""

MODELS_UNAVAILABLE = "No assistant model is available for the configured API key."
INVALID_KEY = "The assistant service rejected its API key. Please try again later."
QUOTA_EXCEEDED = "The assistant has exceeded its API quota. Please try again later."
NETWORK_ERROR = "The assistant service could not be reached. Please try again later."
SERVICE_ERROR = "The assistant service failed to answer. Please try again later."
KEY_MISSING = "The assistant is not configured on this server."


@dataclass(frozen=True)
class AssistantConfig:
    provider: str = "openai"
    api_key: Optional[str] = None
    fallback_models: Tuple[str, ...] = DEFAULT_ASSISTANT_MODELS
    temperature: float = 0.7
    max_tokens: int = 1024

    @classmethod
    def from_settings(cls, **overrides):
        config = MonitorConfig.from_settings()
        options = {"api_key": config.openai_api_key, "fallback_models": config.assistant_models}
        options.update(overrides)
        return cls(**options)


@dataclass
class SymptomAnalysis:
    severity: str
    match_percentages: Dict[str, float]
    possible_conditions: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    explanation: str = ""

    @classmethod
    def from_json(cls, data):
        return cls(
            severity=data.get("severity", "Moderate"),
            match_percentages=data.get("matchPercentages") or {},
            possible_conditions=list(data.get("possibleConditions") or []),
            recommendations=list(data.get("recommendations") or []),
            explanation=data.get("explanation", ""),
        )

    @classmethod
    def placeholder(cls, explanation, conditions=None, recommendations=None):
        return cls(
            severity="Moderate",
            match_percentages={"mild": 30, "moderate": 50, "severe": 20},
            possible_conditions=conditions or ["Please consult a healthcare provider for accurate diagnosis"],
            recommendations=recommendations or ["Seek medical attention", "Monitor symptoms"],
            explanation=explanation,
        )

    def to_dict(self):
        return asdict(self)


def language_prompt(language):
    try:
        return LANGUAGE_PROMPTS[language]
    except KeyError:
        raise AssistantError(f"Unsupported language: {language}")


def extract_json(text):
    """Pull the first {...} block out of model output, tolerating trailing commas."""
    match = re.search(r"\{[\s\S]*\}", text or "")
    if not match:
        return None
    cleaned = re.sub(r",(\s*[}\]])", r"\1", match.group(0))
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Model output is not valid JSON")
        return None
    return data if isinstance(data, dict) else None


def _client(config, client):
    if client is not None:
        return client
    if not config.api_key:
        raise AssistantError(KEY_MISSING)
    return OpenAI(api_key=config.api_key)


def complete(config: AssistantConfig, messages, client=None, temperature=None, max_tokens=None) -> str:
    """Run a chat completion, moving to the next model while a model is not found."""
    client = _client(config, client)
    for model in config.fallback_models:
        try:
            response = client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=config.temperature if temperature is None else temperature,
                max_tokens=max_tokens or config.max_tokens,
            )
        except openai.NotFoundError:
            logger.warning("Model %s not available, trying fallback", model)
            continue
        except openai.AuthenticationError as exc:
            raise AssistantError(INVALID_KEY) from exc
        except openai.RateLimitError as exc:
            raise AssistantError(QUOTA_EXCEEDED) from exc
        except openai.APIConnectionError as exc:
            raise AssistantError(NETWORK_ERROR) from exc
        except openai.APIError as exc:
            logger.error("Assistant model %s failed: %s", model, exc)
            raise AssistantUnavailable(SERVICE_ERROR) from exc
        return response.choices[0].message.content.strip()

    logger.error("All assistant models unavailable: %s", ", ".join(config.fallback_models))
    raise AssistantError(MODELS_UNAVAILABLE)


def chat_with_doctor(config: AssistantConfig, message: str, language: str = "en", client=None) -> str:
    messages = [
        {"role": "system", "content": DOCTOR_PROMPT.format(language=language_prompt(language))},
        {"role": "user", "content": message},
    ]
    return complete(config, messages, client=client)


def analyze_symptoms(config: AssistantConfig, symptoms: str, language: str = "en", client=None) -> SymptomAnalysis:
    prompt = SYMPTOM_PROMPT.format(language=language_prompt(language), symptoms=symptoms)
    messages = [{"role": "user", "content": prompt}]
    try:
        text = complete(config, messages, client=client, temperature=0.5, max_tokens=2048)
    except AssistantUnavailable as exc:
        logger.error("Symptom analysis failed: %s", exc.__cause__)
        return SymptomAnalysis.placeholder(
            "There was an error processing your request. Please try again.",
            conditions=["Unable to analyze symptoms due to API error"],
            recommendations=["Please consult a healthcare provider", "Try again later"],
        )

    data = extract_json(text)
    if data is None:
        return SymptomAnalysis.placeholder(text)
    return SymptomAnalysis.from_json(data)
