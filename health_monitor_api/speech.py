# speech.py
"""Voice command session.

Only the command state machine lives here. Audio capture and synthesis stay
on the client, which reports recognition events over the voice websocket:

    IDLE --start--> LISTENING --result--> PROCESSING --respond--> SPEAKING
                        ^                                            |
                        +----------------- speech done --------------+

Recognition ``end`` and non-permission errors go back to LISTENING only while
the assistant is activated.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

WAKE_PHRASE = "hey health assistant"
EMERGENCY_PHRASES = ("send alert", "help me", "emergency", "alert")
PERMISSION_ERRORS = frozenset({"not-allowed", "service-not-allowed"})

GOODBYE = "Goodbye! I'm here whenever you need me. Just say 'Hey Health Assistant' to wake me up."
EMERGENCY_SENT = "Emergency alert sent to your caretaker. They'll receive a notification immediately."

LOCAL_REPLIES = (
    (("show", "ecg"), "Showing your ECG data. You can view it in the Live Heart Data Analysis section."),
    (("check", "heart rate"), "Your latest heart rate reading is being retrieved."),
    (("open", "dashboard"), "Opening your dashboard. You can access all your health data and metrics here."),
    (("help",), "I can help you check heart rate, show ECG data, send alerts, explain health metrics, "
                "and answer health questions. What would you like to do?"),
    (("how are you",), "I'm doing great! I'm here and ready to help you with your health monitoring needs."),
)


class VoiceState(Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"


class CommandKind(Enum):
    WAKE = "wake"
    EXIT = "exit"
    EMERGENCY = "emergency"
    REPLY = "reply"
    QUERY = "query"


@dataclass(frozen=True)
class VoiceCommand:
    kind: CommandKind
    transcript: str
    reply: Optional[str] = None


def greeting(name=None):
    who = f" {name}" if name else ""
    return f"Hello{who}! I'm your Virtual Health Assistant. How can I help you today?"


def is_exit(text):
    return "goodbye" in text and "health assistant" in text


def is_emergency(text):
    return any(phrase in text for phrase in EMERGENCY_PHRASES)


def local_reply(text):
    for keywords, reply in LOCAL_REPLIES:
        if all(k in text for k in keywords):
            return reply
    return None


class VoiceCommandSession:
    def __init__(self, user_name=None):
        self.user_name = user_name
        self.state = VoiceState.IDLE
        self.activated = False
        self.blocked = False

    def start(self):
        if self.blocked:
            logger.info("Voice session blocked by a permission error")
            return self.state
        if self.state is VoiceState.IDLE:
            self.state = VoiceState.LISTENING
        return self.state

    def on_result(self, transcript) -> Optional[VoiceCommand]:
        if self.state is not VoiceState.LISTENING:
            logger.debug("Ignoring transcript in state %s", self.state.value)
            return None
        text = (transcript or "").strip().lower()
        if not text:
            return None

        if not self.activated:
            if WAKE_PHRASE not in text:
                return None
            self.activated = True
            self.state = VoiceState.SPEAKING
            return VoiceCommand(CommandKind.WAKE, transcript, greeting(self.user_name))

        if is_exit(text):
            self.activated = False
            self.state = VoiceState.SPEAKING
            return VoiceCommand(CommandKind.EXIT, transcript, GOODBYE)

        if is_emergency(text):
            self.state = VoiceState.PROCESSING
            return VoiceCommand(CommandKind.EMERGENCY, transcript)

        reply = local_reply(text)
        if reply is not None:
            self.state = VoiceState.SPEAKING
            return VoiceCommand(CommandKind.REPLY, transcript, reply)

        self.state = VoiceState.PROCESSING
        return VoiceCommand(CommandKind.QUERY, transcript)

    def respond(self, reply):
        """Hand a processed reply to the speaker."""
        if self.state is not VoiceState.PROCESSING:
            raise RuntimeError(f"Cannot respond while {self.state.value}")
        self.state = VoiceState.SPEAKING
        return reply

    def on_speech_done(self):
        if self.state is VoiceState.SPEAKING:
            self.state = VoiceState.LISTENING
        return self.state

    def on_end(self):
        if self.state is VoiceState.LISTENING:
            self.state = VoiceState.LISTENING if self.activated else VoiceState.IDLE
        return self.state

    def on_error(self, error):
        logger.warning("Voice recognition error: %s", error)
        if error in PERMISSION_ERRORS:
            self.blocked = True
            self.activated = False
            self.state = VoiceState.IDLE
            return self.state
        self.state = VoiceState.LISTENING if self.activated else VoiceState.IDLE
        return self.state

    def stop(self):
        self.activated = False
        self.state = VoiceState.IDLE
        return self.state
