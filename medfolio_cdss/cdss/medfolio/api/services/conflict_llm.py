from ...conflict_prompts import SYSTEM_CONFLICT_CHECK_PROMPT, USER_CONFLICT_CHECK_PROMPT
from ..models.conflict_models import ConflictCheckRequest, ConflictCheckResult
from .errors import InputValidationError, OutputValidationError, RemoteCallError
from .llm_adapter import adapter_for_family

from collections.abc import Mapping
from typing import Any, Dict, Optional, Union
import logging
import os
import re

from openai import OpenAI
from pydantic import ValidationError
import yaml

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def load_settings(config_file: str = "config.yml") -> Dict[str, Any]:
    """Read the service settings from the `config:` list of the YAML file; the last entry wins."""
    with open(config_file, 'r') as file:
        config_data = yaml.safe_load(file) or {}
    settings: Dict[str, Any] = {}
    for c in config_data.get('config', []) or []:
        settings.update(c or {})
    return settings


#
# Medication conflict controller
#
class MedicationConflictLLM:
    """
    Runs the medication conflict flow: one templated prompt, one remote call,
    schema validation of the answer.

    The instance only holds configuration and the SDK client, so a single
    controller can serve concurrent requests.
    """

    def __init__(self, config_file: str = "config.yml", client=None, settings: Optional[Dict[str, Any]] = None):
        self.model = "gpt-4o"
        self.url = None
        self.family = "openai"
        self.temperature = 0
        self.MAX_TOKENS = 1500
        self.timeout = 30

        self._config(settings if settings is not None else load_settings(config_file))
        self.adapter = adapter_for_family(self.family)
        self.client = client if client is not None else self._setLLMClient()
        logger.info("Conflict flow ready: family=%s model=%s", self.family, self.model)

    #
    # Use the yaml configuration to configure the controller
    #
    def _config(self, settings: Dict[str, Any]):
        self.model = settings.get('model', self.model)
        self.url = settings.get('url', "") or None
        self.family = settings.get('family', self.family)
        self.temperature = settings.get('temperature', self.temperature)
        self.MAX_TOKENS = settings.get('max_tokens', self.MAX_TOKENS)
        self.timeout = settings.get('timeout', self.timeout)

    #
    # Set the LLM client to use
    #
    def _setLLMClient(self):
        if self.family == "openai":
            return OpenAI(api_key=os.environ.get("OPENAI_API_KEY"), timeout=self.timeout)
        elif self.family == "openllm":
            return OpenAI(base_url=self.url, api_key=os.environ.get("OPENAI_API_KEY", "EMPTY"), timeout=self.timeout)
        elif self.family == "anthropic":
            import anthropic
            return anthropic.Anthropic(api_key=os.getenv('ANTHROPIC_API_KEY'), timeout=self.timeout)
        # gemini, the family was checked by adapter_for_family
        from google import genai
        from google.genai import types
        return genai.Client(api_key=os.environ.get("GOOGLE_API_KEY"),
                            http_options=types.HttpOptions(timeout=int(self.timeout * 1000)))

    #
    # Perform the LLM call using the right client
    #
    def _callLLM(self, system_prompt: str, user_prompt: str):
        if self.family in ('openai', 'openllm'):
            params = {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ],
                "max_tokens": self.MAX_TOKENS,
                "temperature": self.temperature,
            }
            # JSON mode is only guaranteed on the OpenAI API
            if self.family == "openai":
                params["response_format"] = {"type": "json_object"}
            return self.client.chat.completions.create(**params)

        elif self.family == "anthropic":
            return self.client.messages.create(
                model=self.model,
                max_tokens=self.MAX_TOKENS,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=self.temperature,
            )

        # gemini
        from google.genai import types
        return self.client.models.generate_content(
            model=self.model,
            contents=user_prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_prompt,
                temperature=self.temperature,
                max_output_tokens=self.MAX_TOKENS,
                response_mime_type="application/json",
            ),
        )

    #
    # Call the LLM and read the answer
    #
    def process_response(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        try:
            response = self._callLLM(system_prompt, user_prompt)
        except Exception as e:
            logger.warning("Text generation call failed (%s): %s", type(e).__name__, e)
            raise RemoteCallError(f"Text generation service call failed: {e}") from e

        content = self.adapter.extract_content(response)
        usage = self.adapter.extract_usage(response)
        logger.info("Conflict check usage: input=%s output=%s total=%s",
                    usage['prompt_tokens'], usage['completion_tokens'], usage['total_tokens'])
        return {'content': content, 'usage': usage}

    #
    # Validate the raw answer against the result schema
    #
    @staticmethod
    def parse_result(content: str) -> ConflictCheckResult:
        text = (content or "").strip()
        match = _FENCE.match(text)
        if match:
            text = match.group(1)
        if not text:
            raise OutputValidationError("Empty response from the text generation service")
        try:
            return ConflictCheckResult.model_validate_json(text)
        except ValidationError as e:
            logger.warning("Conflict check answer rejected: %s", e.errors(include_url=False))
            raise OutputValidationError("Response does not match the conflict result schema") from e

    @staticmethod
    def build_prompts(request: ConflictCheckRequest):
        user_prompt = USER_CONFLICT_CHECK_PROMPT.format(
            current_prescriptions=request.current_prescriptions,
            past_medications=request.past_medications,
            allergies=request.allergies,
            health_conditions=request.health_conditions,
            new_medication=request.new_medication,
        )
        return SYSTEM_CONFLICT_CHECK_PROMPT, user_prompt

    #
    # Perform the conflict check
    #
    def check_medication_conflict(self, request: Union[ConflictCheckRequest, Mapping]) -> ConflictCheckResult:
        if not isinstance(request, ConflictCheckRequest):
            if not isinstance(request, Mapping):
                raise InputValidationError("Conflict check request must be a mapping of the five profile fields")
            try:
                request = ConflictCheckRequest.model_validate(dict(request))
            except ValidationError as e:
                raise InputValidationError(f"Invalid conflict check request: {e.error_count()} error(s)") from e

        system_prompt, user_prompt = self.build_prompts(request)
        logger.debug("Conflict check prompt:\n%s", user_prompt)

        result = self.process_response(system_prompt, user_prompt)
        return self.parse_result(result['content'])
