"""Claude client for chat replies, conversation analysis and reports."""

import asyncio
import json
import logging
import random
import re
from dataclasses import dataclass
from typing import Any, Literal

from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic, RateLimitError
from anthropic.types import MessageParam, TextBlock

from mindcare.core.config import Settings, get_settings
from mindcare.models.domain.analysis import AnalysisResult, RiskLevel, Sentiment

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Error from the Claude API."""

    def __init__(self, message: str, is_retryable: bool = False) -> None:
        super().__init__(message)
        self.is_retryable = is_retryable


@dataclass
class HistoryMessage:
    """One turn of a chat, in ledger order."""

    role: Literal["user", "assistant"]
    content: str


@dataclass
class ReportChat:
    """A consented chat handed to the report composer."""

    title: str
    messages: list[HistoryMessage]


CBT_SYSTEM_PROMPT = """You are a warm, structured and compassionate mental-health assistant that uses Cognitive Behavioral Therapy (CBT) techniques to help users with stress, anxiety, low mood and everyday problems. Your goal is to teach and practise CBT skills in small, manageable steps.

Never refuse to help with normal emotional struggles. In a crisis (suicidal thoughts, self-harm urges, severe distress) provide immediate emotional support, validation and grounding, and also encourage reaching out to crisis hotlines, trusted people or professionals. Do not abandon the user.

## Scope and Limits
You are a self-help and educational tool, not a doctor, therapist or emergency service. Do not make clinical diagnoses, prescribe medication, or give medical, legal or financial instructions.

## Core CBT Workflow
1) Warm check-in: ask one simple question about how they feel and reflect the emotion back.
2) Clarify the problem: situation, thoughts, emotions (rated 0-10) and behaviours, one question at a time.
3) Choose one micro-module: psychoeducation, identifying automatic thoughts, cognitive restructuring, behavioural activation, problem solving, a brief grounding or breathing exercise, or reviewing previous homework.
4) Guide it step by step with 2-5 small steps, using examples that fit students and young adults.
5) Summarise in 2-4 short lines and offer one small, realistic homework action.
6) Close with encouragement and normalise setbacks.

## Style
- Keep each message short enough to read on a phone (2-4 sentences).
- Ask only one main question per message.
- Validate feelings before offering tools; avoid jargon or explain it briefly.
- Never invent details about the user's life. Only use what they have shared.
- If the user just wants to vent, reflect and validate first, then ask before starting an exercise."""

GUIDANCE_SECTION = """

## Therapist Guidance for This Conversation
Your therapist has provided the following guidance to help direct this conversation:
{guidance}

Please incorporate this guidance naturally into your responses while maintaining the CBT approach."""

ANALYSIS_PROMPT = """Analyze this mental health conversation and provide a comprehensive assessment. Respond ONLY with a valid JSON object (no markdown, no code blocks, just raw JSON) with the following structure:

{{
  "analysis": "A detailed psychological analysis of the conversation",
  "predictions": "Predictions about potential concerns or improvements",
  "sentiment": "one of: positive, neutral, negative, concerning",
  "riskLevel": "one of: low, medium, high"
}}

Conversation:
{conversation}"""

REPORT_PROMPT = """Create a professional mental health report for {patient_name}.

Previous AI Analysis:
{analysis}

Chat History:
{chats}

Create a comprehensive report with:
- Executive Summary
- Key Observations
- Risk Assessment
- Recommendations
- Next Steps

Format the report professionally for mental health professionals."""

FALLBACK_REPLY = "I apologize, I could not generate a response."

# Returned when the model call or its output cannot be used
DEFAULT_ANALYSIS = AnalysisResult(
    analysis="Analysis could not be generated at this time.",
    predictions="Predictions could not be generated at this time.",
    sentiment=Sentiment.NEUTRAL,
    risk_level=RiskLevel.LOW,
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


def build_system_prompt(guidance: str | None) -> str:
    """System prompt for a chat reply, with the therapist's guidance if any."""
    if guidance and guidance.strip():
        return CBT_SYSTEM_PROMPT + GUIDANCE_SECTION.format(guidance=guidance)
    return CBT_SYSTEM_PROMPT


def format_transcript(history: list[HistoryMessage]) -> str:
    """Render messages as ``role: content`` lines."""
    return "\n".join(f"{m.role}: {m.content}" for m in history)


def parse_analysis(raw: str) -> AnalysisResult:
    """Parse the analysis model output, tolerating code fences.

    Missing fields and values outside the known enumerations fall back to
    their defaults individually.

    Raises:
        ValueError: If the text is not a JSON object
    """
    text = raw.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1).strip()

    data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ValueError("Analysis output is not a JSON object")

    try:
        sentiment = Sentiment(str(data.get("sentiment", "")).lower())
    except ValueError:
        sentiment = Sentiment.NEUTRAL
    try:
        risk_level = RiskLevel(str(data.get("riskLevel", "")).lower())
    except ValueError:
        risk_level = RiskLevel.LOW

    return AnalysisResult(
        analysis=str(data.get("analysis") or "Analysis not available"),
        predictions=str(data.get("predictions") or "Predictions not available"),
        sentiment=sentiment,
        risk_level=risk_level,
    )


class LLMClient:
    """Client for the three Claude calls the service makes.

    Rate-limit and server errors are retried with exponential backoff;
    anything else fails immediately with ``LLMError``.
    """

    MAX_RETRIES = 5
    BASE_DELAY = 1.0  # seconds

    def __init__(
        self,
        settings: Settings | None = None,
        model: str | None = None,
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize Claude client.

        Args:
            settings: Application settings. If None, loads from environment.
            model: Claude model to use. Defaults to the configured model.
            client: Pre-built Anthropic client, mainly for tests.
        """
        self.settings = settings or get_settings()
        self.model = model or self.settings.anthropic_model
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        """Get or create Anthropic client (lazy initialization)."""
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        return self._client

    async def close(self) -> None:
        """Close the client."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def generate_reply(
        self,
        history: list[HistoryMessage],
        guidance: str | None = None,
    ) -> str:
        """Generate the assistant's next turn.

        Args:
            history: The complete chat, oldest first, ending with the
                patient's newest message
            guidance: The chat's therapist guidance, if any

        Returns:
            Reply text

        Raises:
            LLMError: If the completion fails
        """
        messages: list[MessageParam] = [
            {"role": m.role, "content": m.content} for m in history
        ]
        content = await self._complete(
            messages,
            system=build_system_prompt(guidance),
            max_tokens=600,
            temperature=0.7,
        )
        return content or FALLBACK_REPLY

    async def analyze(self, history: list[HistoryMessage]) -> AnalysisResult:
        """Assess sentiment and risk of a conversation.

        Never raises: any failure is logged and the safe defaults returned.
        """
        prompt = ANALYSIS_PROMPT.format(conversation=format_transcript(history))
        try:
            raw = await self._complete(
                [{"role": "user", "content": prompt}],
                max_tokens=2048,
                temperature=0.5,
            )
            return parse_analysis(raw)
        except (LLMError, ValueError) as e:
            logger.warning("Analysis degraded to defaults: %s", e)
            return DEFAULT_ANALYSIS.model_copy()

    async def compose_report(
        self,
        patient_name: str,
        chats: list[ReportChat],
        analysis_text: str,
    ) -> str:
        """Write a clinical report from consented chats and an analysis.

        Raises:
            LLMError: If the completion fails or returns no text
        """
        chat_summaries = "\n\n---\n\n".join(
            f"Chat: {chat.title}\n{format_transcript(chat.messages)}" for chat in chats
        )
        prompt = REPORT_PROMPT.format(
            patient_name=patient_name,
            analysis=analysis_text,
            chats=chat_summaries,
        )
        content = await self._complete(
            [{"role": "user", "content": prompt}],
            max_tokens=1500,
            temperature=0.6,
        )
        if not content:
            raise LLMError("Report generation returned no content", is_retryable=True)
        return content

    async def _complete(
        self,
        messages: list[MessageParam],
        max_tokens: int,
        temperature: float,
        system: str | None = None,
    ) -> str:
        """Run one completion with retry logic and return its text.

        Raises:
            LLMError: If all retries fail or the error is not retryable
        """
        last_error: Exception | None = None
        kwargs: dict[str, Any] = {}
        if system:
            kwargs["system"] = system

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await self.client.messages.create(
                    model=self.model,
                    max_tokens=max_tokens,
                    messages=messages,
                    temperature=temperature,
                    **kwargs,
                )
                if response.content and isinstance(response.content[0], TextBlock):
                    return response.content[0].text
                return ""

            except RateLimitError as e:
                last_error = e
                delay = self._calculate_backoff(attempt)
                logger.warning(
                    "Rate limited by Claude, retrying in %.1fs (attempt %d/%d)",
                    delay,
                    attempt + 1,
                    self.MAX_RETRIES,
                )
                await asyncio.sleep(delay)

            except (APIConnectionError, APIStatusError) as e:
                is_server_error = (
                    isinstance(e, APIConnectionError) or e.status_code >= 500
                )
                if is_server_error and attempt < self.MAX_RETRIES - 1:
                    last_error = e
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        "Server error, retrying in %.1fs (attempt %d/%d): %s",
                        delay,
                        attempt + 1,
                        self.MAX_RETRIES,
                        e,
                    )
                    await asyncio.sleep(delay)
                    continue

                raise LLMError(
                    f"Claude request failed: {e}",
                    is_retryable=is_server_error,
                ) from e

        raise LLMError(
            f"Claude request failed after {self.MAX_RETRIES} attempts: {last_error}",
            is_retryable=True,
        )

    def _calculate_backoff(self, attempt: int) -> float:
        """Calculate exponential backoff delay with jitter.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        delay: float = self.BASE_DELAY * (2**attempt)
        jitter: float = delay * 0.25 * (random.random() * 2 - 1)
        return delay + jitter


_llm_client: LLMClient | None = None


def init_llm_client(settings: Settings | None = None) -> LLMClient:
    """Create the process-wide Claude client."""
    global _llm_client
    _llm_client = LLMClient(settings=settings)
    return _llm_client


def get_llm_client() -> LLMClient:
    """FastAPI dependency returning the process-wide Claude client."""
    if _llm_client is None:
        raise RuntimeError("LLM client not initialized. Call init_llm_client() first.")
    return _llm_client


async def close_llm_client() -> None:
    """Close the process-wide Claude client."""
    global _llm_client
    if _llm_client is not None:
        await _llm_client.close()
        _llm_client = None
