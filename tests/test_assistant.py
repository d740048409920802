from types import SimpleNamespace

import httpx
import openai
import pytest

from health_monitor_api.assistant import (
    INVALID_KEY,
    KEY_MISSING,
    MODELS_UNAVAILABLE,
    NETWORK_ERROR,
    QUOTA_EXCEEDED,
    SERVICE_ERROR,
    AssistantConfig,
    analyze_symptoms,
    chat_with_doctor,
    extract_json,
)
from health_monitor_api.exceptions import AssistantError, AssistantUnavailable

REQUEST = httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')


def status_error(cls, code):
    return cls('error', response=httpx.Response(code, request=REQUEST), body=None)


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = dict(outcomes)
        self.calls = []

    def create(self, model, messages, **kwargs):
        self.calls.append({'model': model, 'messages': messages, **kwargs})
        outcome = self.outcomes[model]
        if isinstance(outcome, Exception):
            raise outcome
        message = SimpleNamespace(content=outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(**outcomes):
    completions = FakeCompletions(outcomes)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


CONFIG = AssistantConfig(api_key='sk-test', fallback_models=('primary', 'backup'))


def test_chat_returns_model_text():
    client, completions = fake_client(primary='  Drink water.  ')
    assert chat_with_doctor(CONFIG, 'I have a headache', client=client) == 'Drink water.'
    assert completions.calls[0]['messages'][0]['role'] == 'system'
    assert 'Please respond in English.' in completions.calls[0]['messages'][0]['content']


def test_chat_in_hindi():
    client, completions = fake_client(primary='ठीक है')
    chat_with_doctor(CONFIG, 'सिर दर्द', language='hi', client=client)
    assert 'कृपया हिंदी में उत्तर दें।' in completions.calls[0]['messages'][0]['content']


def test_unknown_language_is_rejected():
    client, _ = fake_client(primary='ok')
    with pytest.raises(AssistantError):
        chat_with_doctor(CONFIG, 'hi', language='fr', client=client)


def test_falls_back_when_model_is_not_found():
    client, completions = fake_client(primary=status_error(openai.NotFoundError, 404), backup='From backup')
    assert chat_with_doctor(CONFIG, 'hello', client=client) == 'From backup'
    assert [c['model'] for c in completions.calls] == ['primary', 'backup']


def test_all_models_missing():
    missing = status_error(openai.NotFoundError, 404)
    client, _ = fake_client(primary=missing, backup=missing)
    with pytest.raises(AssistantError, match=MODELS_UNAVAILABLE):
        chat_with_doctor(CONFIG, 'hello', client=client)


@pytest.mark.parametrize('error, message', [
    (status_error(openai.AuthenticationError, 401), INVALID_KEY),
    (status_error(openai.RateLimitError, 429), QUOTA_EXCEEDED),
    (openai.APIConnectionError(request=REQUEST), NETWORK_ERROR),
])
def test_errors_map_to_user_messages(error, message):
    client, completions = fake_client(primary=error, backup='never used')
    with pytest.raises(AssistantError) as excinfo:
        chat_with_doctor(CONFIG, 'hello', client=client)
    assert str(excinfo.value) == message
    assert len(completions.calls) == 1


@pytest.mark.parametrize('cls, code', [
    (openai.InternalServerError, 500),
    (openai.BadRequestError, 400),
    (openai.PermissionDeniedError, 403),
    (openai.UnprocessableEntityError, 422),
])
def test_other_provider_errors_become_assistant_errors(cls, code):
    client, completions = fake_client(primary=status_error(cls, code), backup='never used')
    with pytest.raises(AssistantUnavailable) as excinfo:
        chat_with_doctor(CONFIG, 'hello', client=client)
    assert str(excinfo.value) == SERVICE_ERROR
    assert isinstance(excinfo.value.__cause__, cls)
    assert len(completions.calls) == 1


def test_missing_api_key():
    with pytest.raises(AssistantError) as excinfo:
        chat_with_doctor(AssistantConfig(api_key=None), 'hello')
    assert str(excinfo.value) == KEY_MISSING


@pytest.mark.parametrize('message', [INVALID_KEY, KEY_MISSING, MODELS_UNAVAILABLE, NETWORK_ERROR, SERVICE_ERROR])
def test_error_messages_are_worded_for_api_callers(message):
    assert '.env' not in message
    assert 'internet connection' not in message


def test_extract_json_tolerates_wrapping_and_trailing_commas():
    text = 'Here you go:\n```json\n{"severity": "Mild", "recommendations": ["rest",],}\n```'
    assert extract_json(text) == {'severity': 'Mild', 'recommendations': ['rest']}
    assert extract_json('no json here') is None
    assert extract_json('{not: valid}') is None


def test_analyze_symptoms_parses_structured_reply():
    reply = (
        '{"severity": "Severe", "matchPercentages": {"mild": 5, "moderate": 15, "severe": 80},'
        ' "possibleConditions": ["Angina"], "recommendations": ["Call a doctor"], "explanation": "Chest pain"}'
    )
    client, completions = fake_client(primary=reply)
    analysis = analyze_symptoms(CONFIG, 'chest pain', client=client)
    assert analysis.severity == 'Severe'
    assert analysis.match_percentages['severe'] == 80
    assert analysis.possible_conditions == ['Angina']
    assert completions.calls[0]['max_tokens'] == 2048


def test_analyze_symptoms_falls_back_to_placeholder():
    client, _ = fake_client(primary='I am not sure, please see a doctor.')
    analysis = analyze_symptoms(CONFIG, 'tired', client=client)
    assert analysis.severity == 'Moderate'
    assert analysis.match_percentages == {'mild': 30, 'moderate': 50, 'severe': 20}
    assert analysis.explanation == 'I am not sure, please see a doctor.'


def test_analyze_symptoms_server_error_returns_placeholder():
    client, _ = fake_client(primary=status_error(openai.InternalServerError, 500))
    analysis = analyze_symptoms(CONFIG, 'tired', client=client)
    assert analysis.possible_conditions == ['Unable to analyze symptoms due to API error']


def test_analyze_symptoms_quota_is_reported():
    client, _ = fake_client(primary=status_error(openai.RateLimitError, 429))
    with pytest.raises(AssistantError, match='quota'):
        analyze_symptoms(CONFIG, 'tired', client=client)
