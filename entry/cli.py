"""
CLI Entry Adapter.

Responsibility:
- Receive user input from terminal
- Normalize to EntryRequest contract
- Recognize slash commands (/select, /oracles, /clear)
- NO intent parsing, NO oracle access
"""

import uuid

from shared.models import EntryRequest

EXIT_WORDS = ("exit", "quit", "q")


class CLIAdapter:
    """Command-line entry adapter."""

    def __init__(self, session_id: str | None = None):
        self.session_id = session_id or str(uuid.uuid4())[:8]

    def read_input(self, raw_input: str) -> EntryRequest:
        """Normalize raw CLI input to EntryRequest."""
        text = raw_input.strip()
        metadata = {"source": "cli"}
        command = self.parse_command(text)
        if command is not None:
            metadata["command"], metadata["argument"] = command
        return EntryRequest(
            session_id=self.session_id,
            input_text=text,
            metadata=metadata,
        )

    @staticmethod
    def parse_command(text: str) -> tuple[str, str] | None:
        """'/select weather' -> ('select', 'weather'); plain text -> None."""
        if text.lower() in EXIT_WORDS:
            return "exit", ""
        if not text.startswith("/"):
            return None
        name, _, argument = text[1:].partition(" ")
        return name.strip().lower(), argument.strip()
