"""
Rule-based intent classifier for utterances that need no generation.

Rules are checked in a fixed order and the first match wins. Listing and
date-filtered intents are resolved on the spot against the event store, so
a matched utterance comes back with a ready answer and its event cards.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from src.events import Clock, EventRecord, SystemClock, display_date
from src.events.clock import today as clock_today
from src.rag.buckets import DateBucket, DateBucketResolver
from src.rag.config import RAGConfig
from src.rag.store import DocumentStore, EventFilter, SortOrder
from src.telemetry import Tracer, default_tracer

from .config import AssistantConfig
from .memory import ConversationTurn
from .names import get_user_name


class IntentKind(str, enum.Enum):
    GREETING = "greeting"
    NAME_REQUEST = "name_request"
    NAME_CAPTURE = "name_capture"
    DATE_QUESTION = "date_question"
    LIST_EVENTS = "list_events"
    DATE_FILTERED_EVENTS = "date_filtered_events"
    FREE_EVENTS = "free_events"
    HELP = "help"
    IDENTITY = "identity"
    NO_MATCH = "no_match"


class ListSort(str, enum.Enum):
    DEFAULT = "default"
    LATEST = "latest"
    POPULAR = "popular"


@dataclass(frozen=True)
class Intent:
    kind: IntentKind
    sort: Optional[ListSort] = None
    bucket: Optional[DateBucket] = None


NO_MATCH = Intent(IntentKind.NO_MATCH)


@dataclass
class IntentResult:
    """Resolved intent: the reply text and any events to show as cards."""

    intent: Intent
    answer: str = ""
    sources: List[EventRecord] = field(default_factory=list)


History = Sequence[ConversationTurn]


@dataclass(frozen=True)
class IntentRule:
    """
    One entry of the rule cascade.

    ``predicate`` receives the lowercased utterance and the history and
    returns the matched Intent (carrying any sort or bucket) or None.
    """

    name: str
    predicate: Callable[[str, History], Optional[Intent]]
    resolver: Callable[[Intent, str, History], IntentResult]


_PUNCT_RE = re.compile(r"[?.,!;:]")
_DATE_WORD_RE = re.compile(r"\b(date|tdy|today|day)\b")
_QUESTION_WORD_RE = re.compile(r"\b(what|what's|whats|tell|show)\b")
_EVENT_VOCAB_RE = re.compile(r"(event|events|happening|going on)")
_SIMPLE_DATE_RE = re.compile(
    r"^(date|today|tdy|what date|what day|tdy date|what is date|whats date|"
    r"what is tdy|whats tdy|what date tdy|what is date tdy)$"
)
_GREETING_RE = re.compile(
    r"^(hi|hello|hey|greetings|good morning|good evening|good afternoon|hii|hiii|heyy|heyyy|"
    r"sup|what's up|wassup|yo|namaste|namaskar)\b(\s+\w+)?[\s!?.,]*$"
)
_UPCOMING_RE = re.compile(r"(?:any\s+)?upcoming\s+events?")

LISTING_PHRASES = (
    "all events",
    "show events",
    "any events",
    "latest events",
    "popular events",
    "all available",
)
HELP_PHRASES = (
    "help",
    "what can you do",
    "what do you do",
    "what can u do",
    "what u do",
    "how does this work",
    "how do i use",
)
AFFIRMATIVES = ("yes", "yeah", "yep", "sure")

HELP_TEXT = (
    "I'm here to help you discover events! 🕵️‍♂️\n\n"
    "You can ask me things like:\n"
    "- 'Show me upcoming music festivals'\n"
    "- 'Are there any free events?'\n"
    "- 'What's happening in Borcelle?'"
)

_BUCKET_FOUND = {
    DateBucket.TODAY: "I found {n} event{s} happening today! 📅",
    DateBucket.TOMORROW: "I found {n} event{s} happening tomorrow! 📅",
    DateBucket.WEEK: "I found {n} event{s} happening this week! 📅",
    DateBucket.FUTURE: "I found {n} upcoming event{s}! 📅",
}
_BUCKET_EMPTY = {
    DateBucket.TODAY: "I couldn't find any events happening today. Would you like to see upcoming events instead?",
    DateBucket.TOMORROW: "I couldn't find any events tomorrow. Would you like to see today's events instead?",
    DateBucket.WEEK: "I couldn't find any events this week. Would you like to see all available events?",
    DateBucket.FUTURE: "I couldn't find any upcoming events. Would you like to see all available events?",
}


def _plural(n: int) -> str:
    return "" if n == 1 else "s"


def format_event_lines(events: Sequence[EventRecord], with_entry: bool = False) -> str:
    lines = []
    for event in events:
        line = f"- {event.name or 'Event'} on {display_date(event)}"
        if with_entry:
            line += f" ({event.entry_type or 'N/A'})"
        lines.append(line)
    return "\n".join(lines)


def _last_assistant_asked(history: History) -> bool:
    for turn in reversed(history):
        if turn.is_assistant:
            return "?" in turn.content
    return False


class IntentClassifier:
    """
    Ordered rule cascade over a lowercased utterance.

    ``match`` only classifies; ``classify`` also resolves the matched intent.
    """

    def __init__(
        self,
        store: DocumentStore,
        buckets: Optional[DateBucketResolver] = None,
        clock: Optional[Clock] = None,
        config: Optional[AssistantConfig] = None,
        rag_config: Optional[RAGConfig] = None,
        tracer: Optional[Tracer] = None,
    ):
        self.store = store
        self.tracer = tracer or default_tracer()
        self.clock = clock or (buckets.clock if buckets is not None else SystemClock())
        self.rag_config = rag_config or RAGConfig()
        self.buckets = buckets or DateBucketResolver(
            store, clock=self.clock, config=self.rag_config, tracer=self.tracer
        )
        self.config = config or AssistantConfig()
        self.rules: List[IntentRule] = [
            IntentRule("today_events", self._match_today_events, self._resolve_bucket),
            IntentRule("date_question", self._match_date_question, self._resolve_date_question),
            IntentRule("greeting", self._match_greeting, self._resolve_greeting),
            IntentRule("list_events", self._match_list_events, self._resolve_list_events),
            IntentRule("date_filtered_events", self._match_date_filtered, self._resolve_bucket),
            IntentRule("free_events", self._match_free_events, self._resolve_free_events),
            IntentRule("help", self._match_help, self._resolve_help),
            IntentRule("identity", self._match_identity, self._resolve_identity),
        ]

    def match(self, utterance: str, history: Optional[History] = None) -> Intent:
        intent, _ = self._first_match(utterance, history or [])
        return intent

    def classify(self, utterance: str, history: Optional[History] = None) -> IntentResult:
        history = history or []
        intent, rule = self._first_match(utterance, history)
        if rule is None:
            return IntentResult(intent=NO_MATCH)
        result = rule.resolver(intent, utterance.lower().strip(), history)
        self.tracer.emit(
            "intent_resolved",
            rule=rule.name,
            intent=intent.kind.value,
            sources=len(result.sources),
        )
        return result

    def _first_match(self, utterance: str, history: History):
        q = (utterance or "").lower().strip()
        if not q:
            return NO_MATCH, None
        for rule in self.rules:
            intent = rule.predicate(q, history)
            if intent is not None:
                self.tracer.emit("intent_matched", rule=rule.name, intent=intent.kind.value)
                return intent, rule
        return NO_MATCH, None

    # Predicates

    def _match_today_events(self, q: str, history: History) -> Optional[Intent]:
        has_today = "today" in q or "tdy" in q
        if not has_today:
            return None
        asks_what = any(w in q for w in ("what", "which", "show"))
        if "event" in q or (asks_what and ("happening" in q or "going on" in q)):
            return Intent(IntentKind.DATE_FILTERED_EVENTS, bucket=DateBucket.TODAY)
        return None

    def _match_date_question(self, q: str, history: History) -> Optional[Intent]:
        if _EVENT_VOCAB_RE.search(q):
            return None
        cleaned = _PUNCT_RE.sub("", q).strip()
        asks_date = bool(_DATE_WORD_RE.search(q) and _QUESTION_WORD_RE.search(q))
        if asks_date or _SIMPLE_DATE_RE.match(cleaned):
            return Intent(IntentKind.DATE_QUESTION)
        return None

    def _match_greeting(self, q: str, history: History) -> Optional[Intent]:
        if _GREETING_RE.match(q):
            return Intent(IntentKind.GREETING)
        return None

    def _match_list_events(self, q: str, history: History) -> Optional[Intent]:
        bare = _PUNCT_RE.sub("", q).strip()
        listing = any(p in q for p in LISTING_PHRASES) or bare == "events"
        if not listing and bare in AFFIRMATIVES:
            listing = _last_assistant_asked(history)
        if not listing:
            return None
        if "latest" in q:
            sort = ListSort.LATEST
        elif "popular" in q:
            sort = ListSort.POPULAR
        else:
            sort = ListSort.DEFAULT
        return Intent(IntentKind.LIST_EVENTS, sort=sort)

    def _match_date_filtered(self, q: str, history: History) -> Optional[Intent]:
        if "today" in q and not any(w in q for w in ("what is", "what's", "whats")):
            if "event" in q or "happening" in q:
                return Intent(IntentKind.DATE_FILTERED_EVENTS, bucket=DateBucket.TODAY)
        if _UPCOMING_RE.search(q) or ("upcoming" in q and ("event" in q or "any" in q)):
            return Intent(IntentKind.DATE_FILTERED_EVENTS, bucket=DateBucket.FUTURE)
        if "this week" in q or ("week" in q and "upcoming" not in q):
            return Intent(IntentKind.DATE_FILTERED_EVENTS, bucket=DateBucket.WEEK)
        if "tomorrow" in q:
            return Intent(IntentKind.DATE_FILTERED_EVENTS, bucket=DateBucket.TOMORROW)
        return None

    def _match_free_events(self, q: str, history: History) -> Optional[Intent]:
        if "free" in q and "event" in q:
            return Intent(IntentKind.FREE_EVENTS)
        return None

    def _match_help(self, q: str, history: History) -> Optional[Intent]:
        if any(p in q for p in HELP_PHRASES):
            return Intent(IntentKind.HELP)
        return None

    def _match_identity(self, q: str, history: History) -> Optional[Intent]:
        if "who are you" in q:
            return Intent(IntentKind.IDENTITY)
        names = (self.config.name.lower(),) + tuple(a.lower() for a in self.config.aliases)
        for n in names:
            if any(f"{prefix} {n}" in q for prefix in ("what is", "who is", "tell me about")):
                return Intent(IntentKind.IDENTITY)
            if " " not in n and "what" in q and n in q:
                return Intent(IntentKind.IDENTITY)
        return None

    # Resolvers

    def _resolve_bucket(self, intent: Intent, q: str, history: History) -> IntentResult:
        bucket = intent.bucket or DateBucket.TODAY
        events = self.buckets.events_for(bucket)
        if not events:
            return IntentResult(intent=intent, answer=_BUCKET_EMPTY[bucket])
        n = len(events)
        header = _BUCKET_FOUND[bucket].format(n=n, s=_plural(n))
        return IntentResult(
            intent=intent,
            answer=f"{header}\n\n{format_event_lines(events)}",
            sources=events,
        )

    def _resolve_date_question(self, intent: Intent, q: str, history: History) -> IntentResult:
        today = clock_today(self.clock)
        return IntentResult(
            intent=intent,
            answer=f"Today is {today:%B} {today.day}, {today.year}. 😊",
        )

    def _resolve_greeting(self, intent: Intent, q: str, history: History) -> IntentResult:
        name = get_user_name(history) if history else None
        return IntentResult(
            intent=intent,
            answer=f"Hey {name or 'there'}! 👋 How can I help you find some awesome events today? 😊",
        )

    def _resolve_list_events(self, intent: Intent, q: str, history: History) -> IntentResult:
        sort = SortOrder.RECENT if intent.sort in (ListSort.LATEST, ListSort.POPULAR) else None
        try:
            total = self.store.count()
            events = self.store.find_all(sort=sort, limit=self.rag_config.listing_limit)
        except Exception as e:
            self.tracer.emit("intent_lookup_failed", intent=intent.kind.value, error=str(e))
            return IntentResult(intent=intent, answer="I couldn't find any events right now.")

        valid = [e for e in events if len(e.name.strip()) > 2]
        n = len(valid)
        if intent.sort == ListSort.LATEST:
            answer = f"Here are the {n} most recently posted events! 📅"
        elif intent.sort == ListSort.POPULAR:
            answer = f"Here are {n} popular events I found for you! 📅"
        elif valid:
            answer = f"Here are {n} events I found for you! 📅"
        elif total > 0:
            answer = f"I found {total} events, but none of them have usable details yet."
        else:
            answer = "I couldn't find any events right now."
        return IntentResult(intent=intent, answer=answer, sources=valid)

    def _resolve_free_events(self, intent: Intent, q: str, history: History) -> IntentResult:
        flt = EventFilter(terms=("free",), fields=("entry_type", "name", "raw_ocr", "full_text"))
        try:
            events = self.store.find_all(flt, limit=self.rag_config.listing_limit)
        except Exception as e:
            self.tracer.emit("intent_lookup_failed", intent=intent.kind.value, error=str(e))
            events = []
        free = [e for e in events if "free" in e.entry_type.lower()]
        if not free:
            return IntentResult(
                intent=intent,
                answer="I couldn't find any free events right now. Would you like to see all available events instead?",
            )
        n = len(free)
        return IntentResult(
            intent=intent,
            answer=f"I found {n} free event{_plural(n)}! 🎉\n\n{format_event_lines(free, with_entry=True)}",
            sources=free,
        )

    def _resolve_help(self, intent: Intent, q: str, history: History) -> IntentResult:
        return IntentResult(intent=intent, answer=HELP_TEXT)

    def _resolve_identity(self, intent: Intent, q: str, history: History) -> IntentResult:
        name = self.config.name
        return IntentResult(
            intent=intent,
            answer=(
                f"I'm {name}! 🤖 {name} is an AI assistant designed to help you discover events "
                f"and information in {self.config.city}. I can help you find events, venues, timings, "
                "and answer questions about what's happening in the city! 😊"
            ),
        )
