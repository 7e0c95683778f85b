"""
Generator Module

WHAT THIS DOES:
Wraps the chat model used for grounded answers, document summaries and tag
extraction. This is the "G" in RAG - the Generation part.

THE GROUNDING PROMPT:
The answer prompt carries only the top retrieved excerpts, each labelled with
its source document title. The model is told to:
1. Answer using only the excerpts
2. Cite the document title when relevant
3. Reply with a fixed fallback phrase, verbatim, when the excerpts are not
   enough

The fallback phrase doubles as a signal: an answer that contains it is
treated as "no answer" and the heuristic path takes over.
"""

from typing import List, Optional, Protocol

from openai import AsyncAzureOpenAI

from config.settings import get_settings
from teamkb.chunking import Chunk
from teamkb.heuristics import NOT_ENOUGH_INFORMATION


DEFAULT_SYSTEM_PROMPT = """You are an AI assistant for a team knowledge base.
Answer questions using ONLY the document excerpts you are given.
Do not make up information."""

SUMMARY_PROMPT = "Summarize the following document in 2-3 sentences:\n\n{content}"

TAGS_PROMPT = (
    "Extract 3-5 relevant tags from this content. "
    "Return only the tags separated by commas:\n\n{content}"
)


class GenerationCapability(Protocol):
    """Anything that turns a prompt into text. May raise on failure."""

    async def generate(self, prompt: str) -> str:
        ...


def build_grounded_prompt(
    question: str,
    excerpts: List[Chunk],
    fallback_phrase: str = NOT_ENOUGH_INFORMATION
) -> str:
    """
    Build the answer prompt from the question and its top excerpts.

    FORMAT:
    Question: "<question>"

    Excerpts:
    Document: <title>
    Content: <chunk text>
    ---
    Document: <title>
    Content: <chunk text>

    Instructions: ...
    """
    excerpt_block = "\n---\n".join(
        f"Document: {chunk.title}\nContent: {chunk.text}" for chunk in excerpts
    )
    return f"""You are an AI assistant answering questions using ONLY the provided document excerpts.

Question: "{question}"

Excerpts:
{excerpt_block}

Instructions:
- Answer using only the excerpts.
- Cite the document title if relevant.
- If the answer is not in the excerpts, reply: "{fallback_phrase}"."""


class Generator:
    """
    Generate text using an Azure OpenAI chat deployment.

    Errors from the SDK propagate to the caller, which decides how to fall
    back.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        deployment: Optional[str] = None,
        api_version: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3
    ):
        """
        Initialize the generator.

        Args:
            endpoint: Azure endpoint (defaults to settings)
            api_key: API key (defaults to settings)
            deployment: Model deployment name (defaults to settings)
            system_prompt: Custom system prompt (defaults to DEFAULT_SYSTEM_PROMPT)
            max_tokens: Maximum tokens in each response
            temperature: Keep low for factual answers
        """
        settings = get_settings()

        self.endpoint = endpoint or settings.azure.endpoint
        self.api_key = api_key or settings.azure.api_key
        self.deployment = deployment or settings.azure.chat_deployment
        self.api_version = api_version or settings.azure.api_version
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self.max_tokens = max_tokens
        self.temperature = temperature

        self.client = AsyncAzureOpenAI(
            azure_endpoint=self.endpoint,
            api_key=self.api_key,
            api_version=self.api_version
        )

    async def generate(self, prompt: str) -> str:
        """Send one prompt and return the stripped reply text."""
        response = await self.client.chat.completions.create(
            model=self.deployment,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt}
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )
        return (response.choices[0].message.content or "").strip()
