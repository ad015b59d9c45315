from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from defi_advisor.config import settings
from defi_advisor.exceptions import AppError
from defi_advisor.llm.config import LLMProvider


class LLMFactory:
    @staticmethod
    def create(
        provider: str | None = None,
        model: str | None = None,
        **kwargs: object,
    ) -> BaseChatModel:
        provider = provider or settings.llm_provider
        model = model or settings.llm_model
        kwargs.setdefault("temperature", settings.llm_temperature)
        kwargs.setdefault("max_tokens", settings.llm_max_tokens)
        kwargs.setdefault("timeout", settings.llm_timeout_seconds)

        match provider:
            case LLMProvider.OPENAI:
                api_key = settings.openai_api_key
                if not api_key:
                    raise AppError("OpenAI API key is not configured", code="LLM_CONFIG_ERROR")
                return ChatOpenAI(model=model, api_key=api_key, **kwargs)  # type: ignore[arg-type]

            case LLMProvider.GROQ:
                # Groq serves an OpenAI-compatible chat completions API.
                api_key = settings.groq_api_key
                if not api_key:
                    raise AppError("Groq API key is not configured", code="LLM_CONFIG_ERROR")
                return ChatOpenAI(
                    model=model,
                    api_key=api_key,  # type: ignore[arg-type]
                    base_url=settings.groq_base_url,
                    **kwargs,  # type: ignore[arg-type]
                )

            case LLMProvider.ANTHROPIC:
                api_key = settings.anthropic_api_key
                if not api_key:
                    raise AppError("Anthropic API key is not configured", code="LLM_CONFIG_ERROR")
                return ChatAnthropic(model=model, api_key=api_key, **kwargs)  # type: ignore[arg-type]

            case _:
                raise AppError(f"Unknown LLM provider: '{provider}'", code="LLM_CONFIG_ERROR")
