"""
lircd line protocol: message types and the reply/broadcast parser.

lircd multiplexes two kinds of records over one newline-delimited stream:

Broadcast (unsolicited button press):
    <16 hex digit code> <hex repeat count> <button> <remote>

Reply (answer to exactly one command):
    BEGIN
    <command echo>
    SUCCESS | ERROR
    [DATA
     <n>
     <line 1> ... <line n>]
    END

LineParser consumes one line at a time and returns a finished Event or Reply
once a record is complete. Each parser state has its own transition method
returning ``(next_state, message)``.
"""

import binascii
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from .errors import ProtocolError

logger = logging.getLogger(__name__)


# Reserved protocol tokens
BEGIN = "BEGIN"
END = "END"
SUCCESS = "SUCCESS"
ERROR = "ERROR"
DATA = "DATA"

CODE_BYTES = 8

# Signed base-16 integer, no 0x prefix or digit separators
_REPEAT_RE = re.compile(r"[+-]?[0-9a-fA-F]+")
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1


@dataclass(frozen=True)
class Event:
    """A single infrared reception broadcast by lircd."""
    code: int  # 64-bit scan code
    repeat: int
    button: str
    remote: str


@dataclass(frozen=True)
class Reply:
    """
    Outcome of one command sent to lircd.

    Attributes:
        command: The command line echoed back by the daemon
        success: True for SUCCESS (or a bare END), False for ERROR
        data_length: Number of data lines the reply declared
        data: The data lines in order (empty when there was no DATA section)
    """
    command: str
    success: bool
    data_length: int = 0
    data: Tuple[str, ...] = ()

    @property
    def message(self) -> str:
        """Data lines joined with single spaces, as lircd error text is split."""
        return " ".join(self.data)


Message = Union[Event, Reply]


class ParserState(Enum):
    """Position of the parser within the record grammar."""
    AWAIT = "await"
    REPLY_HEADER = "reply_header"
    STATUS = "status"
    DATA_START = "data_start"
    DATA_LEN = "data_len"
    DATA_BODY = "data_body"
    DATA_END = "data_end"


Transition = Tuple[ParserState, Optional[Message]]


def parse_broadcast(line: str) -> Event:
    """
    Decode a broadcast line into an Event.

    Args:
        line: Raw line without its newline

    Returns:
        Decoded Event

    Raises:
        ProtocolError: If the line does not have four fields, the code is
            not 8 hex-encoded bytes or the repeat count is not a 64-bit
            base-16 integer
    """
    fields = line.split(" ")
    if len(fields) != 4:
        raise ProtocolError(f"expected 4 fields, got {len(fields)}", line=line)

    hex_code, hex_repeat, button, remote = fields

    try:
        raw = binascii.unhexlify(hex_code)
    except (binascii.Error, ValueError) as e:
        raise ProtocolError(f"code not parseable: {hex_code!r}", line=line, cause=e) from e

    if len(raw) != CODE_BYTES:
        raise ProtocolError(f"code has wrong length: {len(raw)} bytes", line=line)

    if not _REPEAT_RE.fullmatch(hex_repeat):
        raise ProtocolError(f"invalid repeat count: {hex_repeat!r}", line=line)
    repeat = int(hex_repeat, 16)
    if not _INT64_MIN <= repeat <= _INT64_MAX:
        raise ProtocolError(f"repeat count out of range: {hex_repeat!r}", line=line)

    # Most significant byte first, matching the hex lircd prints
    code = 0
    for byte in raw:
        code = (code << 8) | byte

    return Event(code=code, repeat=repeat, button=button, remote=remote)


@dataclass
class _ReplyBuilder:
    """Mutable reply under construction; frozen into a Reply on END."""
    command: str = ""
    success: bool = False
    data_length: int = 0
    data: List[str] = field(default_factory=list)
    received: int = 0

    def build(self) -> Reply:
        return Reply(
            command=self.command,
            success=self.success,
            data_length=self.data_length,
            data=tuple(self.data),
        )


class LineParser:
    """
    Finite-state machine classifying lines as broadcast or reply records.

    Broadcast lines are best-effort: malformed ones are logged and skipped.
    Reply framing is strict: any unexpected line discards the reply being
    built and resynchronizes to AWAIT without emitting anything.

    Example:
        >>> parser = LineParser()
        >>> for line in ["BEGIN", "VERSION", "SUCCESS", "END"]:
        ...     message = parser.feed(line)
        >>> message.success
        True
    """

    def __init__(self):
        self.state = ParserState.AWAIT
        self._reply = _ReplyBuilder()
        self.last_error: Optional[ProtocolError] = None
        self._handlers = {
            ParserState.AWAIT: self._on_await,
            ParserState.REPLY_HEADER: self._on_reply_header,
            ParserState.STATUS: self._on_status,
            ParserState.DATA_START: self._on_data_start,
            ParserState.DATA_LEN: self._on_data_len,
            ParserState.DATA_BODY: self._on_data_body,
            ParserState.DATA_END: self._on_data_end,
        }

        self._stats = {
            'lines': 0,
            'events': 0,
            'replies': 0,
            'dropped': 0,
        }

    def feed(self, line: str) -> Optional[Message]:
        """
        Advance the state machine by one line.

        Args:
            line: One line of input, without its newline

        Returns:
            A completed Event or Reply, or None if the record is incomplete
            or the line was dropped
        """
        self._stats['lines'] += 1
        self.state, message = self._handlers[self.state](line)

        if isinstance(message, Event):
            self._stats['events'] += 1
        elif isinstance(message, Reply):
            self._stats['replies'] += 1
        return message

    def reset(self) -> None:
        """Drop any partial reply and return to AWAIT."""
        self.state = ParserState.AWAIT
        self._reply = _ReplyBuilder()

    def get_stats(self):
        """Get parser statistics."""
        return self._stats.copy()

    def _drop(self, error: ProtocolError) -> Transition:
        logger.warning(error.format_log_message())
        self.last_error = error
        self._stats['dropped'] += 1
        return ParserState.AWAIT, None

    def _violation(self, reason: str, line: str) -> Transition:
        return self._drop(ProtocolError(
            f"Invalid lirc reply message received - {reason}",
            line=line,
            context={'state': self.state.value}
        ))

    def _emit(self) -> Transition:
        reply = self._reply.build()
        self._reply = _ReplyBuilder()
        return ParserState.AWAIT, reply

    def _on_await(self, line: str) -> Transition:
        if line == BEGIN:
            return ParserState.REPLY_HEADER, None

        try:
            event = parse_broadcast(line)
        except ProtocolError as e:
            return self._drop(ProtocolError(
                f"Invalid lirc broadcast message received - {e.message}",
                line=line
            ))

        return ParserState.AWAIT, event

    def _on_reply_header(self, line: str) -> Transition:
        self._reply = _ReplyBuilder(command=line)
        return ParserState.STATUS, None

    def _on_status(self, line: str) -> Transition:
        if line == SUCCESS:
            self._reply.success = True
            return ParserState.DATA_START, None
        if line == ERROR:
            self._reply.success = False
            return ParserState.DATA_START, None
        if line == END:
            self._reply.success = True
            return self._emit()
        return self._violation("invalid status", line)

    def _on_data_start(self, line: str) -> Transition:
        if line == END:
            return self._emit()
        if line == DATA:
            return ParserState.DATA_LEN, None
        return self._violation("invalid data start", line)

    def _on_data_len(self, line: str) -> Transition:
        # int() would accept "+3" and " 3"; only plain digits are a count
        if not (line.isascii() and line.isdigit()):
            return self._violation("invalid data len", line)

        self._reply.data_length = int(line)
        self._reply.received = 0
        if self._reply.data_length == 0:
            return ParserState.DATA_END, None
        return ParserState.DATA_BODY, None

    def _on_data_body(self, line: str) -> Transition:
        if self._reply.received < self._reply.data_length:
            self._reply.data.append(line)
        self._reply.received += 1

        if self._reply.received >= self._reply.data_length:
            return ParserState.DATA_END, None
        return ParserState.DATA_BODY, None

    def _on_data_end(self, line: str) -> Transition:
        if line == END:
            return self._emit()
        return self._violation("invalid end", line)
