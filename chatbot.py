"""
MedFlow assistant: canned replies picked by keyword.

``RULES`` is evaluated in order and the first rule with any keyword contained
in the lower-cased message wins, so a message mentioning both "doctor" and
"help" gets the doctor reply. Reordering the tuple changes behaviour.
"""
import logging
import os
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

CHAT_REPLY_DELAY_SECONDS = float(os.getenv("CHAT_REPLY_DELAY_SECONDS", "0.5"))
CHAT_MAX_CONVERSATIONS = int(os.getenv("CHAT_MAX_CONVERSATIONS", "1000"))


@dataclass(frozen=True)
class Rule:
    name: str
    keywords: Tuple[str, ...]
    response: str

    def matches(self, text: str) -> bool:
        return any(k in text for k in self.keywords)


GREETING = "Hello! I'm your MedFlow AI Assistant. How can I help you today?"

DEFAULT_RESPONSE = (
    "I'm here to help with MedFlow navigation and healthcare workflow questions. "
    "Could you provide more details about what you need?"
)

RULES: Tuple[Rule, ...] = (
    Rule(
        "patients",
        ("patient", "patients"),
        "You can view and manage patient records in the Patient Management section. "
        "Would you like me to guide you there?",
    ),
    Rule(
        "prescriptions",
        ("prescription", "prescriptions"),
        "Prescriptions can be managed through the Doctor Portal or Pharmacy Portal. "
        "The Pharmacy Portal shows all pending prescriptions for fulfillment.",
    ),
    Rule(
        "lab",
        ("lab", "test"),
        "Lab tests can be requested through the Doctor Portal and viewed/updated in the Lab Portal. "
        "Check the Lab Portal for current test statuses.",
    ),
    Rule(
        "doctor",
        ("doctor",),
        "The Doctor Portal allows you to submit prescription and lab test requests for patients. "
        "You can access it from the main dashboard.",
    ),
    Rule(
        "pharmacy",
        ("pharmacy",),
        "The Pharmacy Portal displays all prescription requests. "
        "You can view details and manage fulfillment from there.",
    ),
    Rule(
        "help",
        ("help", "how"),
        "I can help you with:\n"
        "• Navigating patient records\n"
        "• Understanding prescription workflows\n"
        "• Lab test management\n"
        "• Portal access\n"
        "\n"
        "What would you like to know more about?",
    ),
    Rule(
        "greeting",
        ("hello", "hi"),
        "Hello! Welcome to MedFlow. How can I assist you with your healthcare workflow today?",
    ),
    Rule(
        "thanks",
        ("thank",),
        "You're welcome! Is there anything else I can help you with?",
    ),
    Rule(
        "status",
        ("status", "workflow"),
        "MedFlow provides real-time coordination across all departments. You can check the status of "
        "patients, prescriptions, and lab tests from their respective portals.",
    ),
)


def respond(message: str) -> str:
    text = (message or "").lower()
    for rule in RULES:
        if rule.matches(text):
            return rule.response
    return DEFAULT_RESPONSE


Scheduler = Callable[[float, Callable[[], None]], None]


def timer_scheduler(delay: float, callback: Callable[[], None]) -> None:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()


def _message(text: str, sender: str) -> Dict[str, str]:
    return {
        "id": uuid.uuid4().hex,
        "text": text,
        "sender": sender,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class ChatLog:
    """One conversation with the assistant.

    ``send`` records the user's message and returns at once; the reply is
    appended by a timer after ``delay`` seconds. Nothing cancels that timer,
    so a reply may land in a log nobody is reading any more.
    """

    def __init__(self, delay: float = CHAT_REPLY_DELAY_SECONDS, schedule: Scheduler = timer_scheduler):
        self.id = uuid.uuid4().hex
        self.delay = delay
        self._schedule = schedule
        self._lock = threading.Lock()
        self._pending = 0
        self._messages: List[Dict[str, str]] = [_message(GREETING, "bot")]

    @property
    def typing(self) -> bool:
        with self._lock:
            return self._pending > 0

    @property
    def messages(self) -> List[Dict[str, str]]:
        with self._lock:
            return list(self._messages)

    def send(self, text: str) -> Dict[str, str]:
        if not (text or "").strip():
            raise ValueError("Message is empty")
        user_message = _message(text, "user")
        with self._lock:
            self._messages.append(user_message)
            self._pending += 1
        self._schedule(self.delay, lambda: self._reply(text))
        return user_message

    def _reply(self, text: str) -> None:
        bot_message = _message(respond(text), "bot")
        with self._lock:
            self._messages.append(bot_message)
            self._pending -= 1

    def to_dict(self):
        with self._lock:
            return {"id": self.id, "typing": self._pending > 0, "messages": list(self._messages)}


class ChatRegistry:
    """Open conversations, oldest evicted once ``max_conversations`` is reached."""

    def __init__(
        self,
        delay: float = CHAT_REPLY_DELAY_SECONDS,
        schedule: Scheduler = timer_scheduler,
        max_conversations: int = CHAT_MAX_CONVERSATIONS,
    ):
        self.delay = delay
        self.schedule = schedule
        self.max_conversations = max_conversations
        self._lock = threading.Lock()
        self._logs: "OrderedDict[str, ChatLog]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._logs)

    def open(self) -> ChatLog:
        log = ChatLog(delay=self.delay, schedule=self.schedule)
        with self._lock:
            self._logs[log.id] = log
            while len(self._logs) > self.max_conversations:
                evicted, _ = self._logs.popitem(last=False)
                logger.debug("Evicted chat conversation %s", evicted)
        logger.debug("Opened chat conversation %s", log.id)
        return log

    def get(self, conversation_id: str) -> Optional[ChatLog]:
        with self._lock:
            return self._logs.get(conversation_id)

    def close(self, conversation_id: str) -> bool:
        with self._lock:
            return self._logs.pop(conversation_id, None) is not None


registry = ChatRegistry()


def get_chat_registry() -> ChatRegistry:
    return registry
