# question_generation.py

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Protocol

from tenacity import before_sleep_log, retry, stop_after_attempt, wait_exponential

from ..db.models import DIFFICULTIES, Question, Verse
from ..quiz_engine.errors import GenerationError

logger = logging.getLogger(__name__)

CHOICE_PREFIX = re.compile(r"^\s*[A-Da-d][\.\):]\s*")


class LLMClient(Protocol):
    def generate(self, *, system_prompt: str, user_prompt: str) -> str:
        ...


@dataclass
class GeneratedQuestion:
    prompt: str
    choices: List[str]
    answer: str
    difficulty: str
    explanation: str = ""
    topics: List[str] = field(default_factory=list)

    def to_model(self, verse: Verse) -> Question:
        return Question(
            verse_id=verse.id,
            prompt=self.prompt,
            choices=list(self.choices),
            answer=self.answer,
            difficulty=self.difficulty,
            explanation=self.explanation or None,
            source="ai",
            approved_at=None,
        )


# LLM Question Generator

class VerseQuestionGenerator:
    """
    Generates memorization and comprehension MCQs for a single verse.
    Output always goes to the moderation queue, never straight to quizzes.
    """

    SYSTEM_PROMPT = (
        "You are an Islamic education expert specializing in Quranic studies. "
        "Questions must be factually accurate, respect Islamic terminology, and "
        "use the Uthmani script with correct diacritics when quoting Arabic. "
        "Reply with valid JSON only."
    )

    def __init__(self, llm_client: LLMClient):
        self._llm = llm_client

    def generate_for_verse(self, verse: Verse, count: int = 2) -> List[GeneratedQuestion]:
        if count <= 0:
            return []
        logger.info(f"Generating {count} questions for verse {verse.surah}:{verse.ayah}")

        prompt = self._build_prompt(verse, count)
        raw_output = self._call_llm(prompt)
        logger.debug(f"LLM response received, length={len(raw_output)} chars")

        questions = self._parse_response(raw_output, verse)
        if not questions:
            raise GenerationError(f"No valid questions generated for verse {verse.surah}:{verse.ayah}")
        return questions[:count]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=20),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _call_llm(self, prompt: str) -> str:
        return self._llm.generate(system_prompt=self.SYSTEM_PROMPT, user_prompt=prompt)

    # ---------------------------
    # Prompt Construction
    # ---------------------------

    @staticmethod
    def _build_prompt(verse: Verse, count: int) -> str:
        fill_blank = count // 2
        meaning = count - fill_blank
        return f"""Generate {count} multiple choice questions for this Quranic verse.

Surah {verse.surah}, Ayah {verse.ayah}
Arabic: {verse.arabic_text}
English: {verse.translation_en or "(no translation available)"}

QUESTION MIX:
- {meaning} question(s) on the meaning, context or themes of the verse
- {fill_blank} fill-in-the-blank question(s): remove one meaningful Arabic word
  (not a particle such as و، في، إلى) and write the prompt as
  "Complete the verse: <verse with _____ in place of the word>"

REQUIREMENTS:
- Exactly 4 choices per question, one of them correct
- Distractors must be plausible and similar in length to the answer
- Difficulty is one of "easy", "medium", "hard"
- A brief explanation (1-2 sentences) of the correct answer

OUTPUT FORMAT (valid JSON, exactly this structure):
{{
  "questions": [
    {{
      "prompt": "Question text",
      "choices": ["choice 1", "choice 2", "choice 3", "choice 4"],
      "answer": "choice 1",
      "difficulty": "easy",
      "topics": ["theme"],
      "explanation": "Why the answer is correct"
    }}
  ]
}}

Do NOT prefix choices with A), B), C), D). The answer must repeat one choice verbatim.""".strip()

    # ---------------------------
    # Response Parsing & Validation
    # ---------------------------

    def _parse_response(self, raw_output: str, verse: Verse) -> List[GeneratedQuestion]:
        json_payload = self._extract_json(raw_output)
        try:
            data = json.loads(json_payload)
        except json.JSONDecodeError as exc:
            logger.error(
                f"JSON parsing failed for verse {verse.surah}:{verse.ayah}: {exc}",
                extra={"raw_output_preview": raw_output[:500]},
            )
            raise GenerationError("LLM reply was not valid JSON") from exc

        items = data.get("questions", []) if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise GenerationError("LLM reply has no question list")

        questions: List[GeneratedQuestion] = []
        for item in items:
            try:
                questions.append(self._validate_question(item))
            except ValueError as e:
                logger.warning(f"Discarding generated question for verse {verse.surah}:{verse.ayah}: {e}")
        logger.info(f"{len(questions)} of {len(items)} generated questions passed validation")
        return questions

    @staticmethod
    def _extract_json(text: str) -> str:
        """
        Pull the JSON object out of a reply that may carry prose, fenced
        blocks or <think>...</think> sections around it.
        """
        text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL)

        if "```" in text:
            for part in text.split("```")[1:]:
                cleaned = part.strip()
                if cleaned.startswith("json"):
                    cleaned = cleaned[4:].strip()
                if cleaned.startswith("{") and "}" in cleaned:
                    return cleaned

        stripped = text.strip()
        start = stripped.find("{")
        end = stripped.rfind("}")
        if start != -1 and end > start:
            return stripped[start : end + 1]
        return stripped

    @staticmethod
    def _validate_question(item: Dict) -> GeneratedQuestion:
        if not isinstance(item, dict):
            raise ValueError("question is not an object")
        prompt = item.get("prompt")
        choices = item.get("choices")
        answer = item.get("answer")

        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("missing prompt")
        if not isinstance(choices, list) or len(choices) != 4:
            raise ValueError("exactly 4 choices required")
        if not isinstance(answer, str):
            raise ValueError("missing answer")

        cleaned_choices = [CHOICE_PREFIX.sub("", str(c)).strip() for c in choices]
        cleaned_answer = CHOICE_PREFIX.sub("", answer).strip()
        if cleaned_answer not in cleaned_choices:
            raise ValueError(f"answer '{cleaned_answer}' is not one of the choices")
        if len(set(cleaned_choices)) != 4:
            raise ValueError("choices must be distinct")

        difficulty = str(item.get("difficulty", "")).lower()
        if difficulty not in DIFFICULTIES:
            difficulty = "medium"

        explanation = item.get("explanation") or ""
        if isinstance(explanation, dict):
            explanation = json.dumps(explanation, ensure_ascii=False)

        topics = item.get("topics") if isinstance(item.get("topics"), list) else []
        return GeneratedQuestion(
            prompt=prompt.strip(),
            choices=cleaned_choices,
            answer=cleaned_answer,
            difficulty=difficulty,
            explanation=str(explanation),
            topics=[str(t) for t in topics],
        )
