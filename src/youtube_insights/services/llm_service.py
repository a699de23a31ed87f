"""LLM completion service and parsing of its YAML answers."""

import logging
from typing import Any, Dict, List, Optional
import yaml
from openai import AsyncOpenAI, OpenAIError, RateLimitError
from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..models import ProcessedQuestion, ProcessedTopic, TopicQuestions
from ..utils.error_handling import (
    ConfigurationError,
    ExternalServiceError,
    LLMResponseParseError,
    RateLimitedError
)

logger = logging.getLogger(__name__)

YAML_FENCE = "```yaml"
FENCE = "```"


class LLMService:
    """Text completion through the OpenAI chat API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """
        Initialize LLM service.

        Args:
            api_key: OpenAI API key (uses settings if not provided)
            model: Chat model name (uses settings if not provided)
        """
        self.api_key = api_key or settings.openai_api_key
        if not self.api_key:
            raise ConfigurationError("OpenAI API key is required", setting="openai_api_key")

        self.client = AsyncOpenAI(api_key=self.api_key)
        self.model = model or settings.llm_model

        logger.info(f"Initialized LLM service with model: {self.model}")

    async def complete(self, prompt: str) -> str:
        """
        Send a single-turn prompt and return the reply text.

        Args:
            prompt: Full prompt

        Returns:
            Reply content, empty string when the model returned none
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}]
            )
        except RateLimitError as e:
            raise RateLimitedError(f"Completion rate limit hit: {e}", service="openai") from e
        except OpenAIError as e:
            raise ExternalServiceError(f"Completion request failed: {e}", service="openai") from e

        if response.usage is not None:
            logger.debug(
                f"LLM usage: prompt={response.usage.prompt_tokens} "
                f"completion={response.usage.completion_tokens}"
            )

        return response.choices[0].message.content or ""


def extract_yaml_content(response: str) -> str:
    """
    Return the body of the first ```yaml fence.

    Responses without the fence are returned unchanged.
    """
    if YAML_FENCE in response:
        parts = response.split(YAML_FENCE, 1)
        return parts[1].split(FENCE, 1)[0].strip()
    return response


def parse_yaml_document(response: str) -> Dict[str, Any]:
    """
    Parse an LLM reply into a mapping.

    Args:
        response: Raw reply, fenced or not

    Returns:
        Parsed YAML mapping

    Raises:
        LLMResponseParseError: If the YAML is invalid or not a mapping
    """
    content = extract_yaml_content(response)

    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise LLMResponseParseError(f"LLM response is not valid YAML: {e}", response=response) from e

    if not isinstance(document, dict):
        raise LLMResponseParseError(
            f"Expected a YAML mapping, got {type(document).__name__}",
            response=response
        )
    return document


def parse_topics(document: Dict[str, Any]) -> List[TopicQuestions]:
    """
    Read the ``topics`` list of a topic-extraction reply.

    Raises:
        LLMResponseParseError: If the list is missing or malformed
    """
    raw_topics = document.get("topics")
    if not isinstance(raw_topics, list) or not raw_topics:
        raise LLMResponseParseError("LLM response has no 'topics' list", response=str(document))

    try:
        return [TopicQuestions.model_validate(topic) for topic in raw_topics]
    except (PydanticValidationError, TypeError) as e:
        raise LLMResponseParseError(f"Malformed topic entry: {e}", response=str(document)) from e


def parse_processed_topic(document: Dict[str, Any], topic: TopicQuestions) -> ProcessedTopic:
    """
    Read a content-rewrite reply for ``topic``.

    Missing rephrasings fall back to the original wording; a missing answer
    is an error.
    """
    raw_questions = document.get("questions") or []
    if not isinstance(raw_questions, list):
        raise LLMResponseParseError("'questions' must be a list", response=str(document))

    questions = []
    try:
        for entry in raw_questions:
            original = str(entry.get("original") or "").strip()
            questions.append(ProcessedQuestion(
                original=original,
                rephrased=str(entry.get("rephrased") or original).strip(),
                answer=str(entry["answer"]).strip()
            ))
    except (AttributeError, KeyError, TypeError) as e:
        raise LLMResponseParseError(f"Malformed question entry: {e}", response=str(document)) from e

    rephrased_title = str(document.get("rephrased_title") or topic.title).strip()
    return ProcessedTopic(title=topic.title, rephrased_title=rephrased_title, questions=questions)
