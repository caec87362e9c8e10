import enum
import logging
from dataclasses import dataclass

from sensa_companion.buffer.session_recorder import SessionStatus

logger = logging.getLogger(__name__)

START_COMMAND = "start"
STOP_COMMAND = "stop"

MESSAGES = {
    SessionStatus.STARTED: (
        "Creating file\n"
        "Starting to record\n"
        'To end the recording session, please use the "stop" command'
    ),
    SessionStatus.ALREADY_ACTIVE: (
        'A recording session is already in progress. Please enter the "stop" '
        "command to end it before attempting\n"
        "to start another one"
    ),
    SessionStatus.STOPPED: "Ending the recording session",
    SessionStatus.NOT_ACTIVE: "There is no recording session in progress",
}


class KeyKind(enum.Enum):
    CHAR = "char"
    BACKSPACE = "backspace"
    SUBMIT = "submit"
    OTHER = "other"


@dataclass(frozen=True)
class KeyEvent:
    kind: KeyKind
    char: str = ""
    released: bool = False

    @classmethod
    def char_key(cls, char):
        return cls(KeyKind.CHAR, char)

    @classmethod
    def submit(cls):
        return cls(KeyKind.SUBMIT)

    @classmethod
    def backspace(cls):
        return cls(KeyKind.BACKSPACE)


class CommandInterpreter:
    """
    Line editor for the command prompt.

    ``start`` and ``stop`` drive the recording session, any other submitted
    line is written verbatim to the device.
    """

    def __init__(self, session, device, notify=print):
        self.session = session
        self.device = device
        self.notify = notify
        self._buffer = []

    @property
    def text(self):
        return "".join(self._buffer)

    def handle(self, event: KeyEvent):
        # some terminals report both press and release
        if event.released:
            return None

        if event.kind is KeyKind.CHAR:
            self._buffer.append(event.char)
        elif event.kind is KeyKind.BACKSPACE:
            if self._buffer:
                self._buffer.pop()
        elif event.kind is KeyKind.SUBMIT:
            command = self.text
            self._buffer.clear()
            return self._submit(command)
        return None

    def _submit(self, command):
        name = command.strip()
        if name == START_COMMAND:
            status = self.session.start()
        elif name == STOP_COMMAND:
            status = self.session.stop()
        else:
            logger.info("Passthrough command: %r", command)
            self.device.write(command.encode("utf-8"))
            return None

        self.notify(MESSAGES[status])
        return status
