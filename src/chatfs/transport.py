"""Transport protocol and the response values handed to it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from chatfs.session import Session
    from chatfs.text import Text

MARKDOWN_V2 = "MarkdownV2"


@dataclass(frozen=True, slots=True)
class Button:
    """One selectable action: a caption and its command payload."""

    text: str
    data: str


@dataclass
class ActionLayout:
    """Rows of buttons, filled left to right, top to bottom."""

    rows: list[list[Button]] = field(default_factory=lambda: [[]])

    def button(self, *buttons: Button) -> ActionLayout:
        """Append *buttons* to the current row."""
        self.rows[-1].extend(buttons)
        return self

    def new_line(self) -> ActionLayout:
        """Start a new row, unless the current one is still empty."""
        if self.rows[-1]:
            self.rows.append([])
        return self

    def compact(self) -> list[list[Button]]:
        """Rows without empty ones."""
        return [row for row in self.rows if row]

    def payloads(self) -> list[str]:
        """Every button payload, in reading order."""
        return [b.data for row in self.rows for b in row]

    def find(self, payload: str) -> Button | None:
        for row in self.rows:
            for b in row:
                if b.data == payload:
                    return b
        return None


@dataclass(frozen=True, slots=True)
class Attachment:
    """Reference to stored file content sent along with a view."""

    ref: str | None
    name: str
    mime_type: str | None = None


@dataclass
class Response:
    """A fully rendered view."""

    body: str
    layout: ActionLayout
    attachment: Attachment | None = None
    parse_mode: str = MARKDOWN_V2


@dataclass(frozen=True)
class Dialog:
    """A prompt the transport renders as a standalone message.

    Attributes:
        prompt: String key of the prompt text.
        args: Positional arguments formatted into the prompt.
        expects_reply: True when the user is asked to type a reply.
        escaped: False for help texts that carry their own markup.
    """

    prompt: Text
    args: tuple[object, ...] = ()
    expects_reply: bool = True
    escaped: bool = True


@runtime_checkable
class Transport(Protocol):
    """Delivers the outcome of a turn to the user.

    Every turn ends in exactly one call: either ``render_dialog`` or
    ``send_response``.
    """

    async def render_dialog(self, dialog: Dialog, user: Session) -> None: ...

    async def send_response(self, response: Response, user: Session) -> None: ...


class RecordingTransport:
    """In-process transport that keeps every outbound message."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, Dialog | Response]] = []

    async def render_dialog(self, dialog: Dialog, user: Session) -> None:
        self.sent.append((user.id, dialog))

    async def send_response(self, response: Response, user: Session) -> None:
        self.sent.append((user.id, response))

    @property
    def last(self) -> Dialog | Response | None:
        return self.sent[-1][1] if self.sent else None

    @property
    def responses(self) -> list[Response]:
        return [m for _, m in self.sent if isinstance(m, Response)]

    @property
    def dialogs(self) -> list[Dialog]:
        return [m for _, m in self.sent if isinstance(m, Dialog)]
