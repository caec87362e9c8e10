import contextlib

from blessed import Terminal

from sensa_companion.commands import KeyEvent, KeyKind

COMMAND_PROMPT = "Command: "


class TerminalView:
    """Renders the command field on the top two rows above the raw device output."""

    def __init__(self, term=None):
        self.term = term or Terminal()

    @contextlib.contextmanager
    def session(self):
        with self.term.cbreak(), self.term.hidden_cursor():
            print(self.term.clear, end="")
            # leave the two command rows free for draw_command
            print("\n\n", end="", flush=True)
            yield self

    def wide_line(self, message="", padding="*"):
        width = self.term.width or 80
        fill = max((width - len(message)) // 2 - 1, 0)
        line = f"{padding * fill}{message}{padding * fill}"
        return line[:width]

    def banner(self, title):
        print(self.wide_line(title, "*"), flush=True)

    def notice(self, message):
        print(message, flush=True)

    def echo(self, data: bytes):
        print(data.decode("latin-1"), end="", flush=True)

    def draw_command(self, text):
        term = self.term
        with term.location(0, 0):
            print(term.clear_eol + COMMAND_PROMPT + text, end="")
        with term.location(0, 1):
            print(term.clear_eol + self.wide_line("", "="), end="", flush=True)


class KeyboardInput:
    """Non-blocking keyboard poll. blessed only reports key presses."""

    def __init__(self, term=None):
        self.term = term or Terminal()
        self._submit_codes = {self.term.KEY_ENTER}
        self._erase_codes = {self.term.KEY_BACKSPACE}

    def poll(self):
        key = self.term.inkey(timeout=0)
        if not key:
            return None
        return self.to_event(key)

    def to_event(self, key):
        if key.is_sequence:
            if key.code in self._submit_codes:
                return KeyEvent.submit()
            if key.code in self._erase_codes:
                return KeyEvent.backspace()
            return KeyEvent(KeyKind.OTHER)

        char = str(key)
        if char in ("\r", "\n"):
            return KeyEvent.submit()
        if char in ("\x7f", "\b"):
            return KeyEvent.backspace()
        if char.isprintable():
            return KeyEvent.char_key(char)
        return KeyEvent(KeyKind.OTHER)
