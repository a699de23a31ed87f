"""Prompt templates sent to the LLM."""

from typing import List

from jinja2 import Template

EXTRACT_TOPICS_PROMPT = """You are an expert content analyzer. Given a YouTube video transcript, identify at least 2 of the most interesting topics discussed and generate at most 3 of the most thought-provoking questions for each topic.
These questions don't need to be directly asked in the video. It's good to have clarification questions.

VIDEO TITLE: {{ title }}

TRANSCRIPT:
{{ transcript }}

Format your response in YAML:

```yaml
topics:
  - title: |
      First Topic Title
    questions:
      - |
        Question 1 about first topic?
      - |
        Question 2 ...
  - title: |
      Second Topic Title
    questions:
      ...
```
"""

PROCESS_CONTENT_PROMPT = """You are a content simplifier for children. Given a topic and questions from a YouTube video, rephrase the topic title and questions to be clearer, and provide simple ELI5 (Explain Like I'm 5) answers.

VIDEO TITLE: {{ title }}

TOPIC: {{ topic }}

QUESTIONS:
{% for question in questions %}
- {{ question }}
{% endfor %}

TRANSCRIPT EXCERPT:
{{ transcript }}

Keep each answer under 100 words and use everyday words.

Format your response in YAML:

```yaml
rephrased_title: |
  Interesting topic title in 10 words
questions:
  - original: |
      {{ questions[0] if questions else "Question" }}
    rephrased: |
      Interesting question in 15 words
    answer: |
      Simple answer that a 5-year-old could understand
  - original: |
      ...
```
"""


def build_topics_prompt(title: str, transcript: str) -> str:
    return Template(EXTRACT_TOPICS_PROMPT).render(title=title, transcript=transcript)


def build_content_prompt(title: str, topic: str, questions: List[str], transcript: str) -> str:
    """Prompt asking to rephrase one topic and answer each of its questions."""
    return Template(PROCESS_CONTENT_PROMPT, trim_blocks=True).render(
        title=title,
        topic=topic,
        questions=questions,
        transcript=transcript
    )
