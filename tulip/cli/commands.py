"""Parsing of REPL command lines."""

from __future__ import annotations

from dataclasses import dataclass, field

HELP_TEXT = """\
Commands:
  connect                          start receiving messages
  disconnect                       stop receiving messages
  ping                             check that the server can be reached
  stream <stream> <topic>: <text>  send a message to a stream topic
  private <email>[,<email>]: <text>
                                   send a private message
  config show                      show the current configuration
  config set <name> <value>        change a configuration value
  clear                            clear the screen
  help                             show this help
  quit                             leave tulip"""

CONFIG_USAGE = "Usage: config show | config set <name> <value>"


class CommandError(ValueError):
    """Raised for malformed commands; the message is shown to the user."""


@dataclass(frozen=True)
class Command:
    name: str
    args: tuple[str, ...] = field(default_factory=tuple)


_SIMPLE = {
    "help": "help",
    "?": "help",
    "connect": "connect",
    "disconnect": "disconnect",
    "ping": "ping",
    "clear": "clear",
    "quit": "quit",
    "exit": "quit",
}


def _split_body(rest: str, usage: str) -> tuple[str, str]:
    head, sep, body = rest.partition(":")
    if not sep or not head.strip() or not body.strip():
        raise CommandError(usage)
    return head.strip(), body.strip()


def parse_command(line: str) -> Command | None:
    """Parse one input line. Blank lines yield None.

    A leading ``/`` is accepted and ignored.
    """
    text = line.strip()
    if text.startswith("/"):
        text = text[1:].lstrip()
    if not text:
        return None

    word, _, rest = text.partition(" ")
    word = word.lower()
    rest = rest.strip()

    if word in _SIMPLE:
        return Command(_SIMPLE[word])

    if word == "stream":
        head, body = _split_body(rest, "Usage: stream <stream> <topic>: <text>")
        stream, _, topic = head.partition(" ")
        if not topic.strip():
            raise CommandError("Subject (topic) is required when sending a stream message")
        return Command("stream", (stream, topic.strip(), body))

    if word in ("private", "pm"):
        head, body = _split_body(rest, "Usage: private <email>[,<email>]: <text>")
        return Command("private", (head, body))

    if word == "config":
        parts = rest.split(maxsplit=2)
        if parts and parts[0].lower() == "show" and len(parts) == 1:
            return Command("config_show")
        if len(parts) == 3 and parts[0].lower() == "set":
            return Command("config_set", (parts[1].lower(), parts[2]))
        raise CommandError(CONFIG_USAGE)

    raise CommandError(f"Command does not exist: {word}")
