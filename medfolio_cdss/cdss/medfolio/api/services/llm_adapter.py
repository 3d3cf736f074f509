from abc import ABC, abstractmethod
from typing import Dict

#
# Unified adapter to read non-streaming LLM responses
#
class UnifiedAdapter(ABC):

    @abstractmethod
    def extract_content(self, response) -> str:
        pass

    @abstractmethod
    def extract_usage(self, response) -> Dict:
        pass

    @staticmethod
    def _usage(prompt_tokens, completion_tokens) -> Dict:
        prompt_tokens = prompt_tokens or 0
        completion_tokens = completion_tokens or 0
        return {
            'prompt_tokens': prompt_tokens,
            'completion_tokens': completion_tokens,
            'total_tokens': prompt_tokens + completion_tokens
        }

#
# OpenAI adapter
#
class OpenAIUnifiedAdapter(UnifiedAdapter):

    def extract_content(self, response) -> str:
        if (hasattr(response, 'choices') and response.choices and
            hasattr(response.choices[0], 'message') and
            hasattr(response.choices[0].message, 'content')):
            return response.choices[0].message.content or ""
        return ""

    def extract_usage(self, response) -> Dict:
        if hasattr(response, 'usage') and response.usage:
            return self._usage(getattr(response.usage, 'prompt_tokens', 0),
                               getattr(response.usage, 'completion_tokens', 0))
        return self._usage(0, 0)

#
# OpenLLM adapter (OpenAI-compatible server)
#
class OpenLLMUnifiedAdapter(OpenAIUnifiedAdapter):
    pass

#
# Anthropic adapter
#
class AnthropicUnifiedAdapter(UnifiedAdapter):

    def extract_content(self, response) -> str:
        if (hasattr(response, 'content') and response.content and
            hasattr(response.content[0], 'text')):
            return "".join(getattr(block, 'text', '') or '' for block in response.content)
        return ""

    def extract_usage(self, response) -> Dict:
        if hasattr(response, 'usage') and response.usage:
            return self._usage(getattr(response.usage, 'input_tokens', 0),
                               getattr(response.usage, 'output_tokens', 0))
        return self._usage(0, 0)

#
# Gemini adapter
#
class GeminiUnifiedAdapter(UnifiedAdapter):

    def extract_content(self, response) -> str:
        if (hasattr(response, 'candidates') and response.candidates and
            hasattr(response.candidates[0], 'content') and
            hasattr(response.candidates[0].content, 'parts')):
            parts = response.candidates[0].content.parts
            if parts:
                return "".join(getattr(p, 'text', '') or '' for p in parts)
        return ""

    def extract_usage(self, response) -> Dict:
        if hasattr(response, 'usage_metadata') and response.usage_metadata:
            return self._usage(getattr(response.usage_metadata, 'prompt_token_count', 0),
                               getattr(response.usage_metadata, 'candidates_token_count', 0))
        return self._usage(0, 0)


ADAPTERS = {
    "openai": OpenAIUnifiedAdapter,
    "openllm": OpenLLMUnifiedAdapter,
    "anthropic": AnthropicUnifiedAdapter,
    "gemini": GeminiUnifiedAdapter,
}


def adapter_for_family(family: str) -> UnifiedAdapter:
    try:
        return ADAPTERS[family]()
    except KeyError:
        raise ValueError(f"Invalid configuration option for LLM model family: {family}") from None
