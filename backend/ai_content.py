import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Sequence

from google import genai

from errors import GatewayError, GatewayUnconfigured

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"
SUMMARY_FALLBACK = "Unable to generate summary at this time."
RATING_SUMMARY = "Sentiment analysis based on rating."
SENTIMENT_LABELS = {"positive", "neutral", "negative"}
MAX_RECOMMENDATIONS = 3
CHAT_HISTORY_TURNS = 6

PLATFORM_CONTEXT = """You are a helpful AI assistant for StageDeck, an event management platform.

PLATFORM INFORMATION:
- StageDeck helps users discover, browse, and book events
- Users can browse events by category, search, and get personalized recommendations
- Event categories: Technology, Business, Music, Art, Food, Health, Networking, General
- Features: Event booking, QR check-in, feedback, event management

USER CAPABILITIES:
- Browse and search events by category, date, location
- Book event tickets (free or paid events)
- View and cancel registrations
- Get AI-powered event recommendations
- Leave feedback after attending an event

ADMIN CAPABILITIES:
- Create and manage events
- Approve or reject registrations and mark attendance
- Review feedback and refund payments

RESPONSE GUIDELINES:
- Be friendly, helpful, and concise
- Provide specific steps when explaining processes
- Reference actual platform features accurately
- If you don't know something specific, suggest contacting support
- Keep responses under 150 words unless detailed explanation needed"""


def extract_first_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the first balanced {...} block in text that parses as a JSON object."""
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    try:
                        value = json.loads(text[start:index + 1])
                    except ValueError:
                        break
                    if isinstance(value, dict):
                        return value
                    break
        start = text.find("{", start + 1)
    return None


def rating_sentiment(rating: int) -> Dict[str, Any]:
    if rating >= 4:
        label = "positive"
    elif rating >= 3:
        label = "neutral"
    else:
        label = "negative"
    return {"sentiment": label, "score": (rating - 3) / 2, "summary": RATING_SUMMARY}


def _normalize_sentiment(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    label = str(data.get("sentiment") or "").strip().lower()
    if label not in SENTIMENT_LABELS:
        return None
    try:
        score = float(data.get("score", 0))
    except (TypeError, ValueError):
        return None
    score = max(-1.0, min(1.0, score))
    return {"sentiment": label, "score": score, "summary": str(data.get("summary") or "")}


def parse_ranked_indices(text: str, count: int) -> List[int]:
    indices: List[int] = []
    for token in re.findall(r"\d+", text or ""):
        index = int(token) - 1
        if 0 <= index < count and index not in indices:
            indices.append(index)
        if len(indices) == MAX_RECOMMENDATIONS:
            break
    return indices


def _describe_candidate(position: int, candidate) -> str:
    tags = ", ".join(getattr(candidate, "tags", None) or []) or "none"
    category = getattr(candidate, "category", None)
    category = getattr(category, "value", category) or "General"
    return f"{position}. {candidate.title} (Category: {category}, Tags: {tags})"


class AiContentService:
    """Gemini-backed text generation with local fallbacks where they exist."""

    def __init__(self, api_key: Optional[str], model: str = DEFAULT_MODEL, client=None):
        self.model = model or DEFAULT_MODEL
        self._client = client
        if self._client is None and api_key:
            self._client = genai.Client(api_key=api_key)
        if self._client is None:
            logger.warning("GEMINI_API_KEY not found. AI features will use fallbacks where available.")

    @classmethod
    def from_env(cls) -> "AiContentService":
        return cls(
            api_key=os.environ.get("GEMINI_API_KEY"),
            model=os.environ.get("GEMINI_MODEL", DEFAULT_MODEL),
        )

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _generate(self, prompt: str) -> str:
        if not self.configured:
            raise GatewayUnconfigured("AI service is not configured")
        response = self._client.models.generate_content(model=self.model, contents=prompt)
        text = getattr(response, "text", None)
        if not text:
            raise ValueError("Empty response from model")
        return text.strip()

    def generate_description(self, keywords: str) -> str:
        prompt = (
            "Generate a compelling and professional event description for a college event based on these keywords: "
            f'"{keywords}".\n'
            "The description should be:\n"
            "- Between 150-250 words\n"
            "- Engaging and informative\n"
            "- Suitable for college students\n"
            "- Include what attendees will learn or experience\n"
            "- Professional yet friendly tone\n\n"
            "Just provide the description without any additional formatting or labels."
        )
        try:
            return self._generate(prompt)
        except GatewayUnconfigured:
            raise
        except Exception as exc:
            logger.warning("Description generation failed: %s", exc)
            raise GatewayError("Failed to generate event description") from exc

    def analyze_sentiment(self, text: str, rating: int) -> Dict[str, Any]:
        prompt = (
            f"Analyze the sentiment of this event feedback (Rating: {rating}/5):\n"
            f'"{text}"\n\n'
            "Provide a JSON response with:\n"
            '1. sentiment: "positive", "neutral", or "negative"\n'
            "2. score: a number between -1 (very negative) and 1 (very positive)\n"
            "3. summary: a brief 1-sentence analysis\n\n"
            'Response format: {"sentiment": "...", "score": 0.0, "summary": "..."}'
        )
        try:
            reply = self._generate(prompt)
        except Exception as exc:
            logger.warning("Sentiment analysis failed, using rating fallback: %s", exc)
            return rating_sentiment(rating)

        parsed = extract_first_json_object(reply)
        result = _normalize_sentiment(parsed) if parsed else None
        if result is None:
            logger.info("Unparseable sentiment reply, using rating fallback")
            return rating_sentiment(rating)
        return result

    def rank_recommendations(self, interests: Sequence[str], history: Sequence[str], candidates: Sequence[Any]) -> List[Any]:
        candidates = list(candidates)
        if not candidates:
            return []
        listing = "\n".join(_describe_candidate(i + 1, c) for i, c in enumerate(candidates))
        prompt = (
            f"Based on a user's interests: {', '.join(interests) or 'none'} "
            f"and their event history categories: {', '.join(history) or 'none'},\n"
            "recommend the top 3 most relevant events from this list:\n"
            f"{listing}\n\n"
            "Return only the event numbers (1, 2, 3, etc.) as a comma-separated list of the top 3 recommendations.\n"
            "Example: 1,3,5"
        )
        try:
            indices = parse_ranked_indices(self._generate(prompt), len(candidates))
        except Exception as exc:
            logger.warning("Recommendation ranking failed, using first candidates: %s", exc)
            indices = []
        if not indices:
            return candidates[:MAX_RECOMMENDATIONS]
        return [candidates[i] for i in indices]

    def summarize_feedback(self, feedbacks: Sequence[Any]) -> str:
        lines = "\n".join(f"Rating {f.rating}/5: {f.comment}" for f in feedbacks)
        prompt = (
            "Summarize these event feedbacks in 2-3 sentences, highlighting key themes and overall sentiment:\n"
            f"{lines}\n\n"
            "Provide a concise summary that would be useful for event organizers."
        )
        try:
            return self._generate(prompt)
        except Exception as exc:
            logger.warning("Feedback summary failed: %s", exc)
            return SUMMARY_FALLBACK

    def chat_reply(self, message: str, history: Optional[Sequence[Dict[str, Any]]] = None, user_context: Optional[Dict[str, Any]] = None) -> str:
        user_context = user_context or {}
        user_info = ""
        if user_context.get("is_authenticated"):
            user_info = (
                "\nUSER CONTEXT:\n"
                f"- User: {user_context.get('user_name') or 'Guest'}\n"
                f"- Role: {user_context.get('user_role') or 'user'}\n"
                f"- Has bookings: {'Yes' if user_context.get('has_bookings') else 'No'}"
            )
        history_text = ""
        turns = list(history or [])[-CHAT_HISTORY_TURNS:]
        if turns:
            history_text = "\nCONVERSATION HISTORY:\n" + "\n".join(
                f"{'User' if turn.get('sender') == 'user' else 'Assistant'}: {turn.get('text', '')}" for turn in turns
            )
        prompt = (
            f"{PLATFORM_CONTEXT}{user_info}{history_text}\n\n"
            f"Current User Question: {message}\n\n"
            "Provide a helpful and concise response:"
        )
        try:
            return self._generate(prompt)
        except GatewayUnconfigured:
            raise
        except Exception as exc:
            logger.warning("Chat reply failed: %s", exc)
            raise GatewayError("Failed to generate chat response") from exc
