import logging
from typing import Dict, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_huggingface import ChatHuggingFace, HuggingFaceEndpoint

from quran_quiz.config import Settings
from ..quiz_engine.errors import GenerationError

logger = logging.getLogger(__name__)


class HuggingFaceChatClient:
    """
    Chat model behind a Hugging Face inference endpoint, used to draft verse
    questions. Returns the reply text untouched; JSON extraction belongs to
    the question generator.
    """

    def __init__(
        self,
        *,
        repo_id: str,
        api_token: Optional[str] = None,
        max_new_tokens: int = 1024,
        temperature: float = 0.3,
        timeout: int = 60,
        base_url: Optional[str] = None,
    ):
        options: Dict = {
            "repo_id": repo_id,
            "task": "text-generation",
            "max_new_tokens": max_new_tokens,
            "temperature": temperature,
            # Keeps distractors from echoing each other
            "repetition_penalty": 1.03,
            "timeout": timeout,
        }
        if api_token:
            options["huggingfacehub_api_token"] = api_token
        if base_url:
            options["base_url"] = base_url

        self.repo_id = repo_id
        self._chat = ChatHuggingFace(llm=HuggingFaceEndpoint(**options))

    @classmethod
    def from_settings(cls, settings: Settings) -> "HuggingFaceChatClient":
        return cls(
            repo_id=settings.hf_repo_id,
            api_token=settings.hf_token,
            max_new_tokens=settings.hf_max_new_tokens,
        )

    def generate(self, *, system_prompt: str, user_prompt: str) -> str:
        logger.debug(f"Requesting completion from {self.repo_id}")
        reply = self._chat.invoke(
            [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
        )

        content = reply.content
        if isinstance(content, list):
            # Multi-part message: keep the text blocks only
            content = "".join(
                part if isinstance(part, str) else str(part.get("text", ""))
                for part in content
            )
        if not content.strip():
            raise GenerationError(f"Empty reply from {self.repo_id}")

        logger.debug(f"{self.repo_id} replied with {len(content)} chars")
        return content
